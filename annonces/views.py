# annonces/views.py
from django.utils.translation import gettext_lazy as _
from drf_spectacular.utils import extend_schema, extend_schema_view
from rest_framework import mixins, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import NotFound
from rest_framework.response import Response

from core.permissions import Action, HasRolePermission, IsActiveAccount, IsAdmin, IsOwnerOrAdmin
from .filters import AnnonceFilter
from .models import Annonce
from .serializers import AnnonceSerializer, AnnonceWriteSerializer, ModerationSerializer
from . import services


@extend_schema_view(
    list=extend_schema(tags=['annonces'], summary="Rechercher des annonces"),
    retrieve=extend_schema(tags=['annonces']),
    create=extend_schema(tags=['annonces'], request=AnnonceWriteSerializer, responses={201: AnnonceSerializer}),
    update=extend_schema(tags=['annonces'], request=AnnonceWriteSerializer, responses={200: AnnonceSerializer}),
    partial_update=extend_schema(tags=['annonces'], request=AnnonceWriteSerializer, responses={200: AnnonceSerializer}),
    destroy=extend_schema(tags=['annonces']),
    mes_annonces=extend_schema(tags=['annonces']),
)
class AnnonceViewSet(viewsets.ModelViewSet):
    queryset = Annonce.objects.select_related('conducteur')
    filterset_class = AnnonceFilter
    search_fields = ['titre', 'description', 'ville_depart', 'ville_destination']
    ordering_fields = ['date_depart', 'prix_par_kg', 'prix_fixe', 'created', 'nombre_vues']
    ordering = ['date_depart']
    role_actions = {
        'create': Action.CREER_ANNONCE,
    }

    def get_permissions(self):
        if self.action in ['list', 'retrieve']:
            permission_classes = [permissions.AllowAny]
        elif self.action == 'create':
            permission_classes = [IsActiveAccount, HasRolePermission]
        elif self.action in ['update', 'partial_update', 'destroy']:
            permission_classes = [IsActiveAccount, IsOwnerOrAdmin]
        else:
            permission_classes = [permissions.IsAuthenticated]
        return [permission() for permission in permission_classes]

    def get_serializer_class(self):
        if self.action in ['create', 'update', 'partial_update']:
            return AnnonceWriteSerializer
        return AnnonceSerializer

    def get_queryset(self):
        queryset = super().get_queryset()
        # Par défaut, seules les annonces actives sont listées
        if self.action == 'list' and 'statut' not in self.request.query_params:
            queryset = queryset.filter(statut=Annonce.Statut.ACTIVE)
        return queryset

    def retrieve(self, request, *args, **kwargs):
        annonce = self.get_object()
        if not (request.user.is_authenticated and annonce.conducteur_id == request.user.id):
            annonce.incrementer_vues()
        return Response({
            'success': True,
            'message': '',
            'data': AnnonceSerializer(annonce).data,
        })

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        annonce = services.creer_annonce(request.user, serializer.validated_data)
        return Response({
            'success': True,
            'message': _('Annonce créée avec succès'),
            'data': AnnonceSerializer(annonce).data,
        }, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        annonce = self.get_object()
        serializer = self.get_serializer(annonce, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        annonce = serializer.save()
        return Response({
            'success': True,
            'message': _('Annonce mise à jour avec succès'),
            'data': AnnonceSerializer(annonce).data,
        })

    def destroy(self, request, *args, **kwargs):
        annonce = self.get_object()
        services.supprimer_annonce(annonce, request.user)
        return Response({
            'success': True,
            'message': _('Annonce supprimée avec succès'),
        })

    @action(detail=False, methods=['get'], url_path='mes-annonces')
    def mes_annonces(self, request):
        """Annonces publiées par l'utilisateur connecté, tous statuts confondus"""
        queryset = services.annonces_de(request.user)
        statut = request.query_params.get('statut')
        if statut:
            queryset = queryset.filter(statut=statut)

        page = self.paginate_queryset(queryset)
        serializer = AnnonceSerializer(page, many=True)
        return self.get_paginated_response(serializer.data)


@extend_schema_view(
    list=extend_schema(tags=['admin'], summary="Lister toutes les annonces"),
    statut=extend_schema(tags=['admin'], request=ModerationSerializer, responses={200: AnnonceSerializer}),
)
class AdminAnnonceViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    """Modération des annonces, tous statuts confondus"""
    queryset = Annonce.objects.select_related('conducteur').order_by('-created')
    serializer_class = AnnonceSerializer
    permission_classes = [IsActiveAccount, IsAdmin]
    lookup_value_regex = '[0-9a-f-]{36}'
    filterset_fields = ['statut']
    search_fields = ['titre', 'ville_depart', 'ville_destination']

    def get_object(self):
        annonce = Annonce.objects.filter(pk=self.kwargs['pk']).first()
        if annonce is None:
            raise NotFound(_('Annonce non trouvée'))
        return annonce

    @action(detail=True, methods=['put'])
    def statut(self, request, pk=None):
        annonce = self.get_object()
        serializer = ModerationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        statut = serializer.validated_data['statut']
        annonce = services.moderer_annonce(annonce, statut, request.user, serializer.validated_data.get('raison', ''))
        return Response({
            'success': True,
            'message': _("Statut de l'annonce modifié vers \"%(statut)s\" avec succès") % {'statut': statut},
            'data': AnnonceSerializer(annonce).data,
        })
