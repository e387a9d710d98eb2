from django.utils import timezone
from rest_framework import permissions
from rest_framework.response import Response
from rest_framework.views import APIView


class HealthView(APIView):
    permission_classes = [permissions.AllowAny]
    authentication_classes = []

    def get(self, request):
        return Response({
            'success': True,
            'message': 'Serveur TransportConnect en ligne',
            'timestamp': timezone.now().isoformat(),
        })
