# evaluations/views.py
from django.utils.translation import gettext_lazy as _
from drf_spectacular.utils import extend_schema, extend_schema_view
from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from core.permissions import Action, HasRolePermission, IsActiveAccount
from .models import Evaluation
from .serializers import EvaluationCreateSerializer, EvaluationSerializer
from . import services


@extend_schema_view(
    create=extend_schema(tags=['evaluations'], request=EvaluationCreateSerializer, responses={201: EvaluationSerializer}),
    utilisateur=extend_schema(tags=['evaluations'], responses={200: EvaluationSerializer(many=True)}),
)
class EvaluationViewSet(viewsets.GenericViewSet):
    queryset = Evaluation.objects.select_related('evaluateur', 'evalue')
    serializer_class = EvaluationSerializer
    role_actions = {
        'create': Action.EVALUER,
    }

    def get_permissions(self):
        if self.action == 'utilisateur':
            permission_classes = [permissions.AllowAny]
        else:
            permission_classes = [IsActiveAccount, HasRolePermission]
        return [permission() for permission in permission_classes]

    def create(self, request):
        serializer = EvaluationCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        evaluation = services.evaluer(
            request.user,
            data['demande'],
            data['note'],
            data.get('commentaire', ''),
            data.get('recommande', True),
        )
        return Response({
            'success': True,
            'message': _('Évaluation enregistrée'),
            'data': EvaluationSerializer(evaluation).data,
        }, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=['get'], url_path=r'utilisateur/(?P<user_id>[0-9a-f-]{36})', authentication_classes=[])
    def utilisateur(self, request, user_id=None):
        """Évaluations reçues par un utilisateur"""
        queryset = self.queryset.filter(evalue_id=user_id)
        page = self.paginate_queryset(queryset)
        return self.get_paginated_response(EvaluationSerializer(page, many=True).data)
