# annonces/services.py
import logging

from django.db import transaction
from django.utils import timezone
from django.utils.translation import gettext as _

from core.exceptions import BusinessRuleError
from demandes.models import Demande
from demandes.workflow import transition
from users.models import User
from .models import Annonce

logger = logging.getLogger('transport_connect.annonces')

STATUTS_EN_COURS = (
    Demande.Statut.ACCEPTEE,
    Demande.Statut.EN_COURS,
    Demande.Statut.ENLEVEE,
    Demande.Statut.EN_TRANSIT,
)


def creer_annonce(conducteur, data):
    with transaction.atomic():
        annonce = Annonce.objects.create(conducteur=conducteur, **data)
        conducteur.incrementer('nombre_annonces')
    logger.info("Annonce %s créée par %s", annonce.pk, conducteur.email)
    return annonce


def supprimer_annonce(annonce, acteur):
    """
    Supprime (logiquement) une annonce et ses demandes.

    Refusée tant qu'un transport est engagé. Les demandes en attente sont d'abord
    refusées via le workflow, ce qui notifie chaque expéditeur.
    """
    demandes = Demande.objects.filter(annonce=annonce)
    if demandes.filter(statut__in=STATUTS_EN_COURS).exists():
        raise BusinessRuleError(_('Impossible de supprimer une annonce avec des transports en cours'))

    with transaction.atomic():
        # Le conducteur reste l'auteur des refus, même quand un administrateur supprime
        for demande in demandes.filter(statut=Demande.Statut.EN_ATTENTE):
            transition(demande, Demande.Statut.REFUSEE, annonce.conducteur, _('Annonce supprimée'))

        demandes.delete()
        annonce.statut = Annonce.Statut.ANNULEE
        annonce.save(update_fields=['statut', 'updated'])
        annonce.delete()

        conducteur = annonce.conducteur
        if conducteur.nombre_annonces > 0:
            conducteur.incrementer('nombre_annonces', -1)

    logger.info("Annonce %s supprimée par %s", annonce.pk, acteur.email)


def annonces_de(user: User):
    return Annonce.objects.filter(conducteur=user).select_related('conducteur').order_by('-created')


STATUTS_MODERATION = (
    Annonce.Statut.ACTIVE,
    Annonce.Statut.INACTIVE,
    Annonce.Statut.SUSPENDUE,
    Annonce.Statut.ANNULEE,
)


def moderer_annonce(annonce, statut, admin, raison=''):
    annonce.statut = statut
    annonce.moderee_par = admin
    annonce.date_moderation = timezone.now()
    annonce.raison_moderation = raison or ''
    annonce.save(update_fields=['statut', 'moderee_par', 'date_moderation', 'raison_moderation', 'updated'])

    logger.info("Annonce %s passée en %s par %s", annonce.pk, statut, admin.email)
    return annonce
