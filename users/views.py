# users/views.py
import logging

from django.contrib.auth import user_logged_in
from django.utils.translation import gettext_lazy as _
from drf_spectacular.utils import extend_schema, extend_schema_view
from rest_framework import generics, mixins, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import NotFound
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.tokens import RefreshToken

from core.permissions import IsActiveAccount, IsAdmin
from core.throttling import LoginRateThrottle, LoginThrottled
from .models import User
from .serializers import (
    LoginSerializer, ProfileUpdateSerializer, RegisterSerializer, StatutUtilisateurSerializer, UserSerializer,
)
from . import services

logger = logging.getLogger('transport_connect.users')


def tokens_for(user):
    refresh = RefreshToken.for_user(user)
    return {
        'refresh': str(refresh),
        'access': str(refresh.access_token),
    }


@extend_schema(tags=['auth'])
class RegisterView(APIView):
    permission_classes = [permissions.AllowAny]
    authentication_classes = []

    @extend_schema(request=RegisterSerializer, responses={201: UserSerializer})
    def post(self, request):
        serializer = RegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()

        logger.info("Nouvel utilisateur inscrit: %s (%s)", user.email, user.role)

        return Response({
            'success': True,
            'message': _('Inscription réussie'),
            'data': {
                'user': UserSerializer(user).data,
                **tokens_for(user),
            },
        }, status=status.HTTP_201_CREATED)


@extend_schema(tags=['auth'])
class LoginView(APIView):
    permission_classes = [permissions.AllowAny]
    authentication_classes = []
    throttle_classes = [LoginRateThrottle]

    def throttled(self, request, wait):
        raise LoginThrottled(wait or 0)

    @extend_schema(request=LoginSerializer, responses={200: UserSerializer})
    def post(self, request):
        serializer = LoginSerializer(data=request.data, context={'request': request})
        serializer.is_valid(raise_exception=True)

        user = serializer.validated_data['user']
        user_logged_in.send(sender=user.__class__, request=request, user=user)
        LoginRateThrottle().reset(request)

        logger.info("Connexion réussie: %s", user.email)

        return Response({
            'success': True,
            'message': _('Connexion réussie'),
            'data': {
                'user': UserSerializer(user).data,
                **tokens_for(user),
            },
        })


@extend_schema(tags=['auth'])
class ProfileView(generics.RetrieveUpdateAPIView):
    http_method_names = ['get', 'patch', 'put', 'head', 'options']

    def get_object(self):
        return self.request.user

    def get_serializer_class(self):
        if self.request.method in ('PUT', 'PATCH'):
            return ProfileUpdateSerializer
        return UserSerializer

    def retrieve(self, request, *args, **kwargs):
        return Response({
            'success': True,
            'message': _('Profil récupéré'),
            'data': UserSerializer(request.user).data,
        })

    def update(self, request, *args, **kwargs):
        serializer = ProfileUpdateSerializer(
            request.user, data=request.data, partial=kwargs.pop('partial', False) or request.method == 'PATCH'
        )
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response({
            'success': True,
            'message': _('Profil mis à jour'),
            'data': UserSerializer(request.user).data,
        })


# =============================================================================
# ADMINISTRATION
# =============================================================================

@extend_schema_view(
    list=extend_schema(tags=['admin'], summary="Lister les utilisateurs"),
    statut=extend_schema(tags=['admin'], request=StatutUtilisateurSerializer, responses={200: UserSerializer}),
)
class AdminUtilisateurViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    queryset = User.objects.all()
    serializer_class = UserSerializer
    permission_classes = [IsActiveAccount, IsAdmin]
    lookup_value_regex = '[0-9a-f-]{36}'
    filterset_fields = ['statut', 'role']
    search_fields = ['nom', 'prenom', 'email']
    ordering_fields = ['date_joined', 'nom', 'note_moyenne']
    ordering = ['-date_joined']

    def get_object(self):
        utilisateur = User.objects.filter(pk=self.kwargs['pk']).first()
        if utilisateur is None:
            raise NotFound(_('Utilisateur non trouvé'))
        return utilisateur

    @action(detail=True, methods=['put'])
    def statut(self, request, pk=None):
        utilisateur = self.get_object()
        serializer = StatutUtilisateurSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        statut = serializer.validated_data['statut']
        services.modifier_statut_utilisateur(
            utilisateur, statut, request.user, serializer.validated_data.get('raison', '')
        )
        return Response({
            'success': True,
            'message': _('Statut utilisateur modifié vers "%(statut)s" avec succès') % {'statut': statut},
            'data': UserSerializer(utilisateur).data,
        })
