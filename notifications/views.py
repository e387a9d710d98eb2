# notifications/views.py
from django.utils import timezone
from django.utils.translation import gettext_lazy as _
from drf_spectacular.utils import extend_schema, extend_schema_view
from rest_framework import mixins, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from .models import Notification
from .serializers import NotificationSerializer


@extend_schema_view(
    list=extend_schema(tags=['notifications']),
    lire=extend_schema(tags=['notifications'], request=None),
    tout_lire=extend_schema(tags=['notifications'], request=None),
    non_lues=extend_schema(tags=['notifications']),
)
class NotificationViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    serializer_class = NotificationSerializer
    filterset_fields = ['type', 'lu']
    ordering = ['-created']

    def get_queryset(self):
        return Notification.objects.filter(user=self.request.user)

    @action(detail=True, methods=['post'])
    def lire(self, request, pk=None):
        notification = self.get_object()
        notification.marquer_lue()
        return Response({
            'success': True,
            'message': _('Notification marquée comme lue'),
            'data': NotificationSerializer(notification).data,
        })

    @action(detail=False, methods=['post'], url_path='tout-lire')
    def tout_lire(self, request):
        count = self.get_queryset().filter(lu=False).update(lu=True, lu_at=timezone.now())
        return Response({
            'success': True,
            'message': _('Toutes les notifications marquées comme lues'),
            'data': {'count': count},
        })

    @action(detail=False, methods=['get'], url_path='non-lues')
    def non_lues(self, request):
        return Response({
            'success': True,
            'message': '',
            'data': {'count': self.get_queryset().filter(lu=False).count()},
        })
