# demandes/views.py
from django.utils.translation import gettext_lazy as _
from drf_spectacular.utils import extend_schema, extend_schema_view
from rest_framework import mixins, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import NotFound, PermissionDenied
from rest_framework.response import Response

from core.permissions import (
    Action, HasRolePermission, IsActiveAccount, IsAdmin, IsConducteur, IsExpediteur, IsParticipantOrAdmin,
)
from .models import Demande
from .serializers import (
    AnnulationSerializer, CommunicationCreateSerializer, CommunicationSerializer, DemandeCreateSerializer,
    DemandeListSerializer, DemandeSerializer, LitigeListSerializer, LitigeSerializer, PositionSerializer,
    ReponseSerializer, ResolutionSerializer, StatutSerializer, SuiviPublicSerializer,
)
from . import services


def ok(message, data=None, code=status.HTTP_200_OK):
    return Response({'success': True, 'message': message, 'data': data}, status=code)


@extend_schema_view(
    create=extend_schema(tags=['demandes'], request=DemandeCreateSerializer, responses={201: DemandeSerializer}),
    retrieve=extend_schema(tags=['demandes'], responses={200: DemandeSerializer}),
    mes_demandes=extend_schema(tags=['demandes'], responses={200: DemandeListSerializer(many=True)}),
    demandes_recues=extend_schema(tags=['demandes'], responses={200: DemandeListSerializer(many=True)}),
    reponse=extend_schema(tags=['demandes'], request=ReponseSerializer, responses={200: DemandeSerializer}),
    statut=extend_schema(tags=['demandes'], request=StatutSerializer, responses={200: DemandeSerializer}),
    annuler=extend_schema(tags=['demandes'], request=AnnulationSerializer, responses={200: DemandeSerializer}),
    communications=extend_schema(tags=['demandes'], request=CommunicationCreateSerializer, responses={201: CommunicationSerializer}),
    position=extend_schema(tags=['demandes'], request=PositionSerializer, responses={200: DemandeSerializer}),
    litige=extend_schema(tags=['demandes'], request=LitigeSerializer, responses={200: DemandeSerializer}),
    resoudre_litige=extend_schema(tags=['demandes'], request=ResolutionSerializer, responses={200: DemandeSerializer}),
    suivi=extend_schema(tags=['demandes'], responses={200: SuiviPublicSerializer}),
    statistiques=extend_schema(tags=['admin']),
    litiges=extend_schema(tags=['admin'], responses={200: LitigeListSerializer(many=True)}),
)
class DemandeViewSet(mixins.CreateModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    queryset = Demande.objects.select_related('expediteur', 'conducteur', 'annonce')
    serializer_class = DemandeSerializer
    lookup_value_regex = '[0-9a-f-]{36}'
    role_actions = {
        'create': Action.CREER_DEMANDE,
        'reponse': Action.REPONDRE_DEMANDE,
        'statut': Action.MODIFIER_STATUT,
        'position': Action.MODIFIER_POSITION,
        'annuler': Action.ANNULER_DEMANDE,
        'statistiques': Action.VOIR_STATISTIQUES,
        'resoudre_litige': Action.RESOUDRE_LITIGE,
    }

    def get_permissions(self):
        if self.action == 'suivi':
            permission_classes = [permissions.AllowAny]
        elif self.action == 'mes_demandes':
            permission_classes = [IsActiveAccount, IsExpediteur]
        elif self.action == 'demandes_recues':
            permission_classes = [IsActiveAccount, IsConducteur]
        elif self.action in ['statistiques', 'resoudre_litige', 'litiges']:
            permission_classes = [IsActiveAccount, IsAdmin, HasRolePermission]
        else:
            permission_classes = [IsActiveAccount, HasRolePermission, IsParticipantOrAdmin]
        return [permission() for permission in permission_classes]

    def get_object(self):
        demande = Demande.objects.select_related('expediteur', 'conducteur', 'annonce').filter(
            pk=self.kwargs['pk']
        ).first()
        if demande is None:
            raise NotFound(_('Demande non trouvée'))
        self.check_object_permissions(self.request, demande)
        return demande

    def _exiger_participant(self, demande):
        if not demande.est_participant(self.request.user):
            raise PermissionDenied(_('Accès non autorisé à cette demande'))

    def _detail(self, demande):
        return DemandeSerializer(demande).data

    def create(self, request, *args, **kwargs):
        serializer = DemandeCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        annonce_id = data.pop('annonce')

        demande = services.creer_demande(request.user, annonce_id, data)
        return ok(_('Demande envoyée avec succès'), self._detail(demande), status.HTTP_201_CREATED)

    def retrieve(self, request, *args, **kwargs):
        return ok('', self._detail(self.get_object()))

    def _liste(self, queryset):
        statut = self.request.query_params.get('statut')
        if statut:
            queryset = queryset.filter(statut=statut)
        page = self.paginate_queryset(queryset.order_by('-created'))
        return self.get_paginated_response(DemandeListSerializer(page, many=True).data)

    @action(detail=False, methods=['get'], url_path='expediteur/mes-demandes')
    def mes_demandes(self, request):
        return self._liste(self.queryset.filter(expediteur=request.user))

    @action(detail=False, methods=['get'], url_path='conducteur/demandes-recues')
    def demandes_recues(self, request):
        return self._liste(self.queryset.filter(conducteur=request.user))

    # =========================================================================
    # CYCLE DE VIE
    # =========================================================================

    @action(detail=True, methods=['put'])
    def reponse(self, request, pk=None):
        demande = self.get_object()
        serializer = ReponseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        action_ = serializer.validated_data['action']
        demande = services.repondre(demande, action_, request.user, serializer.validated_data.get('commentaire', ''))
        message = _('Demande acceptée avec succès') if action_ == 'accepter' else _('Demande refusée')
        return ok(message, self._detail(demande))

    @action(detail=True, methods=['put'])
    def statut(self, request, pk=None):
        demande = self.get_object()
        serializer = StatutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        demande = services.modifier_statut(
            demande,
            serializer.validated_data['statut'],
            request.user,
            serializer.validated_data.get('commentaire', ''),
            serializer.validated_data.get('lieu', ''),
        )
        return ok(_('Statut mis à jour avec succès'), self._detail(demande))

    @action(detail=True, methods=['put'])
    def annuler(self, request, pk=None):
        demande = self.get_object()
        serializer = AnnulationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        demande = services.annuler(demande, request.user, serializer.validated_data['motif'])
        return ok(_('Demande annulée avec succès'), self._detail(demande))

    # =========================================================================
    # SUIVI ET ÉCHANGES
    # =========================================================================

    @action(detail=True, methods=['post'])
    def communications(self, request, pk=None):
        demande = self.get_object()
        self._exiger_participant(demande)
        serializer = CommunicationCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        communication = services.ajouter_communication(demande, request.user, **serializer.validated_data)
        return ok(_('Message envoyé'), CommunicationSerializer(communication).data, status.HTTP_201_CREATED)

    @action(detail=True, methods=['put'])
    def position(self, request, pk=None):
        demande = self.get_object()
        serializer = PositionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        demande = services.mettre_a_jour_position(demande, request.user, **serializer.validated_data)
        return ok(_('Position mise à jour'), self._detail(demande))

    @action(detail=False, methods=['get'], url_path=r'suivi/(?P<numero_suivi>[^/.]+)', authentication_classes=[])
    def suivi(self, request, numero_suivi=None):
        demande = services.suivi_public(numero_suivi)
        return ok('', SuiviPublicSerializer(demande).data)

    # =========================================================================
    # LITIGES
    # =========================================================================

    @action(detail=True, methods=['post'])
    def litige(self, request, pk=None):
        demande = self.get_object()
        self._exiger_participant(demande)
        serializer = LitigeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        demande = services.signaler_litige(demande, request.user, serializer.validated_data['motif'])
        return ok(_('Litige signalé avec succès. Un administrateur va examiner le cas.'), self._detail(demande))

    @action(detail=True, methods=['put'], url_path='resoudre-litige')
    def resoudre_litige(self, request, pk=None):
        demande = self.get_object()
        serializer = ResolutionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        demande = services.resoudre_litige(
            demande,
            request.user,
            serializer.validated_data['resolution'],
            serializer.validated_data['decision'],
        )
        return ok(_('Litige résolu avec succès'), self._detail(demande))

    # =========================================================================
    # ADMINISTRATION
    # =========================================================================

    @action(detail=False, methods=['get'], url_path='admin/statistiques')
    def statistiques(self, request):
        return ok('', services.statistiques())

    @action(detail=False, methods=['get'], url_path='admin/litiges')
    def litiges(self, request):
        """Litiges signalés, non résolus par défaut (?resolu=true pour l'historique)"""
        resolu = request.query_params.get('resolu', 'false').lower() == 'true'
        page = self.paginate_queryset(services.litiges(resolu))
        return self.get_paginated_response(LitigeListSerializer(page, many=True).data)
