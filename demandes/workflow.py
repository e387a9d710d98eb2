"""
Cycle de vie d'une demande de transport.

Une seule table décrit les passages autorisés entre statuts et le rôle qui peut
déclencher chacun d'eux. Toute écriture de statut passe par `transition`, qui
vérifie la table, enregistre l'étape de suivi et publie `statut_demande_modifie`
pour les effets de bord (compteurs, notifications).
"""
import logging

from django.db import transaction
from django.db.models import F
from django.utils import timezone
from django.utils.translation import gettext as _
from rest_framework.exceptions import PermissionDenied

from core.exceptions import ConcurrentModification, IllegalTransition
from users.models import Role
from .models import Demande, EtapeSuivi
from .signals import statut_demande_modifie

logger = logging.getLogger('transport_connect.demandes')

S = Demande.Statut

ALLOWED_TRANSITIONS = {
    S.EN_ATTENTE: {
        S.ACCEPTEE: frozenset({Role.CONDUCTEUR}),
        S.REFUSEE: frozenset({Role.CONDUCTEUR}),
        S.ANNULEE: frozenset({Role.EXPEDITEUR}),
    },
    S.ACCEPTEE: {
        S.EN_COURS: frozenset({Role.CONDUCTEUR}),
        S.ANNULEE: frozenset({Role.CONDUCTEUR, Role.EXPEDITEUR}),
    },
    S.EN_COURS: {
        S.ENLEVEE: frozenset({Role.CONDUCTEUR}),
        S.ANNULEE: frozenset({Role.CONDUCTEUR}),
    },
    S.ENLEVEE: {
        S.EN_TRANSIT: frozenset({Role.CONDUCTEUR}),
    },
    S.EN_TRANSIT: {
        S.LIVREE: frozenset({Role.CONDUCTEUR}),
    },
    S.LIVREE: {},
    S.ANNULEE: {},
    S.REFUSEE: {},
}

TERMINAL_STATES = frozenset(statut for statut, cibles in ALLOWED_TRANSITIONS.items() if not cibles)


def allowed_targets(statut):
    return frozenset(ALLOWED_TRANSITIONS[statut])


def is_terminal(statut):
    return statut in TERMINAL_STATES


def role_in(demande, user):
    """Rôle joué par l'utilisateur dans cette demande, ou None s'il n'y participe pas."""
    if user is None:
        return None
    if user.pk == demande.conducteur_id:
        return Role.CONDUCTEUR
    if user.pk == demande.expediteur_id:
        return Role.EXPEDITEUR
    return None


def _check(demande, target, actor):
    role = role_in(demande, actor)
    if role is None:
        raise PermissionDenied(_("Accès non autorisé à cette demande"))

    # Un passage réservé à l'autre participant est illégal pour cet acteur
    if role not in ALLOWED_TRANSITIONS[demande.statut].get(target, ()):
        raise IllegalTransition(demande.statut, target)


def can_transition(demande, target, actor):
    """Mêmes règles que `transition`, sans lever d'exception."""
    try:
        _check(demande, target, actor)
    except (IllegalTransition, PermissionDenied):
        return False
    return True


def _effets(demande, target, now):
    """Champs datés qui accompagnent l'arrivée dans un statut."""
    if target == S.ACCEPTEE:
        return {
            'date_reponse': now,
            'numero_suivi': demande.numero_suivi or Demande.generer_numero_suivi(),
            'montant_accepte': F('montant_propose'),
        }
    if target == S.REFUSEE:
        return {'date_reponse': now}
    if target == S.ENLEVEE:
        return {'date_enlevement': now}
    if target == S.LIVREE:
        return {'date_livraison_reelle': now}
    return {}


def transition(demande, target, actor, commentaire=None, lieu=''):
    """
    Fait passer la demande au statut `target`.

    L'écriture est conditionnée par la version lue: si une autre opération a modifié
    la demande entre-temps, rien n'est écrit et ConcurrentModification est levée.
    """
    try:
        _check(demande, target, actor)
    except IllegalTransition:
        logger.warning(
            "Transition refusée pour la demande %s: %s -> %s (%s)",
            demande.pk, demande.statut, target, getattr(actor, 'email', None),
        )
        raise

    ancien_statut = demande.statut
    commentaire = commentaire or _("Statut changé vers: %(statut)s") % {'statut': target}
    now = timezone.now()

    with transaction.atomic():
        updated = Demande.objects.filter(pk=demande.pk, version=demande.version).update(
            statut=target,
            version=F('version') + 1,
            updated=now,
            **_effets(demande, target, now),
        )
        if not updated:
            logger.warning(
                "Conflit de version sur la demande %s (version lue: %s)", demande.pk, demande.version
            )
            raise ConcurrentModification()

        EtapeSuivi.enregistrer(demande, target, actor, commentaire, lieu)
        demande.refresh_from_db()

        statut_demande_modifie.send(
            sender=Demande,
            demande=demande,
            ancien_statut=ancien_statut,
            nouveau_statut=target,
            acteur=actor,
            commentaire=commentaire,
        )

    logger.info("Demande %s: %s -> %s par %s", demande.pk, ancien_statut, target, actor.email)
    return demande
