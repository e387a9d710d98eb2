from enum import Enum

from rest_framework import permissions
from django.utils.translation import gettext_lazy as _

from users.models import Role, User


# =============================================================================
# TABLE DES PERMISSIONS PAR ACTION
# =============================================================================

class Action(str, Enum):
    CREER_ANNONCE = "creer_annonce"
    CREER_DEMANDE = "creer_demande"
    REPONDRE_DEMANDE = "repondre_demande"
    MODIFIER_STATUT = "modifier_statut"
    MODIFIER_POSITION = "modifier_position"
    ANNULER_DEMANDE = "annuler_demande"
    VOIR_STATISTIQUES = "voir_statistiques"
    RESOUDRE_LITIGE = "resoudre_litige"
    EVALUER = "evaluer"


ROLE_PERMISSIONS = {
    Action.CREER_ANNONCE: frozenset({Role.CONDUCTEUR}),
    Action.CREER_DEMANDE: frozenset({Role.EXPEDITEUR}),
    Action.REPONDRE_DEMANDE: frozenset({Role.CONDUCTEUR}),
    Action.MODIFIER_STATUT: frozenset({Role.CONDUCTEUR}),
    Action.MODIFIER_POSITION: frozenset({Role.CONDUCTEUR}),
    Action.ANNULER_DEMANDE: frozenset({Role.EXPEDITEUR}),
    Action.VOIR_STATISTIQUES: frozenset({Role.ADMIN}),
    Action.RESOUDRE_LITIGE: frozenset({Role.ADMIN}),
    Action.EVALUER: frozenset({Role.CONDUCTEUR, Role.EXPEDITEUR}),
}

ACTION_MESSAGES = {
    Action.CREER_ANNONCE: _("Seuls les conducteurs peuvent créer des annonces"),
    Action.CREER_DEMANDE: _("Seuls les expéditeurs peuvent créer des demandes"),
    Action.REPONDRE_DEMANDE: _("Seul le conducteur peut répondre à cette demande"),
    Action.MODIFIER_STATUT: _("Seul le conducteur peut mettre à jour le statut"),
    Action.MODIFIER_POSITION: _("Seul le conducteur peut mettre à jour la position"),
    Action.ANNULER_DEMANDE: _("Seul l'expéditeur peut annuler cette demande"),
    Action.VOIR_STATISTIQUES: _("Accès réservé aux administrateurs"),
    Action.RESOUDRE_LITIGE: _("Accès réservé aux administrateurs"),
    Action.EVALUER: _("Seuls les utilisateurs ayant effectué une transaction peuvent évaluer"),
}


def role_can(user, action):
    """Vérifie si le rôle de l'utilisateur autorise l'action demandée."""
    if not (user and user.is_authenticated):
        return False
    roles = ROLE_PERMISSIONS[Action(action)]
    if user.role in roles:
        return True
    return Role.ADMIN in roles and user.is_superuser


class HasRolePermission(permissions.BasePermission):
    """
    Consulte la table ROLE_PERMISSIONS pour l'action DRF courante.

    La vue déclare `role_actions = {'create': Action.CREER_DEMANDE, ...}`;
    les actions absentes de ce dictionnaire ne sont pas restreintes par rôle.
    """
    message = _("Accès refusé")

    def has_permission(self, request, view):
        action = getattr(view, 'role_actions', {}).get(view.action)
        if action is None:
            return True
        if role_can(request.user, action):
            return True
        self.message = ACTION_MESSAGES[action]
        return False


# =============================================================================
# PERMISSIONS DE COMPTE ET DE RÔLE
# =============================================================================

class IsActiveAccount(permissions.BasePermission):
    """
    Permission qui nécessite que l'utilisateur soit authentifié et que son compte ne soit pas suspendu.
    """
    message = _("Votre compte est suspendu.")

    def has_permission(self, request, view):
        return bool(
            request.user and
            request.user.is_authenticated and
            request.user.is_active and
            request.user.statut != User.Statut.SUSPENDU
        )


class IsAdmin(permissions.BasePermission):
    """
    Permission personnalisée pour vérifier si l'utilisateur est administrateur.
    """
    message = _("Accès réservé aux administrateurs")

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated and request.user.is_admin())


class IsConducteur(permissions.BasePermission):
    message = _("Seuls les conducteurs peuvent effectuer cette action.")

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated and request.user.is_conducteur())


class IsExpediteur(permissions.BasePermission):
    message = _("Seuls les expéditeurs peuvent effectuer cette action.")

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated and request.user.is_expediteur())


# =============================================================================
# PERMISSIONS DE PROPRIÉTÉ
# =============================================================================

class IsOwnerOrAdmin(permissions.BasePermission):
    """
    Le conducteur propriétaire d'une annonce, ou un administrateur.
    """
    message = _("Non autorisé")

    def has_object_permission(self, request, view, obj):
        if request.method in permissions.SAFE_METHODS:
            return True
        if request.user.is_authenticated and request.user.is_admin():
            return True
        return obj.conducteur_id == request.user.id


class IsParticipantOrAdmin(permissions.BasePermission):
    """
    L'expéditeur ou le conducteur d'une demande, ou un administrateur.
    """
    message = _("Accès non autorisé à cette demande")

    def has_object_permission(self, request, view, obj):
        if request.user.is_admin():
            return True
        return request.user.id in (obj.expediteur_id, obj.conducteur_id)
