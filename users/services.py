# users/services.py
import logging

from django.utils.translation import gettext as _
from rest_framework.exceptions import PermissionDenied

from .models import User

logger = logging.getLogger('transport_connect.users')


def modifier_statut_utilisateur(utilisateur, statut, admin, raison=''):
    """
    Active, suspend ou remet en attente un compte.

    Un administrateur ne peut modifier que son propre statut parmi les comptes admin.
    """
    if utilisateur.is_admin() and utilisateur.pk != admin.pk:
        raise PermissionDenied(_("Impossible de modifier le statut d'un autre administrateur"))

    ancien_statut = utilisateur.statut
    utilisateur.statut = statut
    utilisateur.save(update_fields=['statut', 'updated'])

    log = logger.warning if statut == User.Statut.SUSPENDU else logger.info
    log(
        "Statut de %s changé de %s vers %s par %s (%s)",
        utilisateur.email, ancien_statut, statut, admin.email, raison or '-',
    )
    return utilisateur
