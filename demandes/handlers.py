"""Effets de bord des changements de statut d'une demande."""
import logging

from django.conf import settings
from django.db import transaction
from django.dispatch import receiver
from django.utils.translation import gettext as _

from notifications.models import Notification
from notifications.services import notify
from .models import Demande
from .signals import statut_demande_modifie

logger = logging.getLogger('transport_connect.demandes')

S = Demande.Statut


def _notifier(user, type, titre, message, demande, lien=''):
    # Une notification en échec ne doit pas annuler la transition
    try:
        with transaction.atomic():
            notify(user, type, titre, message, demande=demande, lien=lien)
    except Exception:
        logger.exception("Échec de la notification %s pour la demande %s", type, demande.pk)


def _lien(demande, suffixe=''):
    return f"{settings.FRONTEND_URL}/demandes/{demande.pk}{suffixe}"


@receiver(statut_demande_modifie, sender=Demande)
def compteurs_acceptation(sender, demande, nouveau_statut, **kwargs):
    if nouveau_statut != S.ACCEPTEE:
        return
    demande.annonce.enregistrer_acceptation()
    demande.conducteur.incrementer('nombre_demandes_acceptees')


@receiver(statut_demande_modifie, sender=Demande)
def notifier_changement(sender, demande, ancien_statut, nouveau_statut, acteur, commentaire, **kwargs):
    titre_annonce = demande.annonce.titre

    if nouveau_statut == S.ACCEPTEE:
        _notifier(
            demande.expediteur, Notification.Type.DEMANDE_ACCEPTEE,
            _("Demande acceptée"),
            _("Votre demande pour « %(annonce)s » a été acceptée. Numéro de suivi: %(numero)s") % {
                'annonce': titre_annonce, 'numero': demande.numero_suivi,
            },
            demande, _lien(demande),
        )
    elif nouveau_statut == S.REFUSEE:
        _notifier(
            demande.expediteur, Notification.Type.DEMANDE_REFUSEE,
            _("Demande refusée"),
            _("Votre demande pour « %(annonce)s » a été refusée. %(commentaire)s") % {
                'annonce': titre_annonce, 'commentaire': commentaire,
            },
            demande, _lien(demande),
        )
    elif nouveau_statut == S.ANNULEE:
        _notifier(
            demande.autre_participant(acteur), Notification.Type.DEMANDE_ANNULEE,
            _("Demande annulée"),
            _("La demande pour « %(annonce)s » a été annulée par %(auteur)s. %(commentaire)s") % {
                'annonce': titre_annonce, 'auteur': acteur.nom_complet, 'commentaire': commentaire,
            },
            demande, _lien(demande),
        )
    elif nouveau_statut in (S.EN_COURS, S.ENLEVEE, S.EN_TRANSIT):
        _notifier(
            demande.expediteur, Notification.Type.STATUT_MODIFIE,
            _("Statut mis à jour"),
            _("Votre colis (%(numero)s) est maintenant: %(statut)s") % {
                'numero': demande.numero_suivi, 'statut': demande.get_statut_display(),
            },
            demande, _lien(demande),
        )
    elif nouveau_statut == S.LIVREE:
        _notifier(
            demande.expediteur, Notification.Type.COLIS_LIVRE,
            _("Colis livré"),
            _("Votre colis (%(numero)s) a été livré. Vous pouvez maintenant évaluer le conducteur.") % {
                'numero': demande.numero_suivi,
            },
            demande, _lien(demande, '/evaluer'),
        )
