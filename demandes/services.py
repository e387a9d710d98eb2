# demandes/services.py
import logging

from django.conf import settings
from django.db import transaction
from django.db.models import Count, Q, Sum
from django.utils import timezone
from django.utils.translation import gettext as _
from rest_framework.exceptions import NotFound

from annonces.models import Annonce
from core.exceptions import BusinessRuleError
from notifications.models import Notification
from notifications.services import notify
from users.models import Role, User
from .models import Communication, Demande, EtapeSuivi
from .workflow import TERMINAL_STATES, transition

logger = logging.getLogger('transport_connect.demandes')

S = Demande.Statut

STATUTS_MODIFIABLES = (S.EN_COURS, S.ENLEVEE, S.EN_TRANSIT, S.LIVREE, S.ANNULEE)
STATUTS_POSITION = (S.ENLEVEE, S.EN_TRANSIT)
STATUTS_ACCEPTES = (S.ACCEPTEE, S.EN_COURS, S.ENLEVEE, S.EN_TRANSIT, S.LIVREE)


# =============================================================================
# CRÉATION
# =============================================================================

def creer_demande(expediteur, annonce_id, data):
    """
    Crée une demande en attente sur une annonce active.

    Toutes les règles sont vérifiées avant la moindre écriture.
    """
    annonce = Annonce.objects.select_related('conducteur').filter(pk=annonce_id).first()
    if annonce is None:
        raise NotFound(_('Annonce non trouvée'))
    if annonce.statut != Annonce.Statut.ACTIVE:
        raise BusinessRuleError(_("Cette annonce n'est plus disponible"))
    if annonce.conducteur_id == expediteur.pk:
        raise BusinessRuleError(_('Vous ne pouvez pas faire une demande sur votre propre annonce'))

    en_cours = Demande.objects.filter(expediteur=expediteur, annonce=annonce).exclude(statut__in=TERMINAL_STATES)
    if en_cours.exists():
        raise BusinessRuleError(_('Vous avez déjà une demande en cours pour cette annonce'))

    dimensions = {key: data[key] for key in ('longueur', 'largeur', 'hauteur')}
    if not annonce.peut_accepter_colis(dimensions, data['poids']):
        raise BusinessRuleError(_('Votre colis dépasse la capacité disponible'))
    if not annonce.accepte_marchandise(data['type_marchandise']):
        raise BusinessRuleError(_('Type de marchandise non accepté pour cette annonce'))

    with transaction.atomic():
        demande = Demande.objects.create(
            expediteur=expediteur,
            conducteur=annonce.conducteur,
            annonce=annonce,
            **data,
        )
        EtapeSuivi.enregistrer(demande, S.EN_ATTENTE, expediteur, _('Demande créée'))
        annonce.enregistrer_demande()
        expediteur.incrementer('nombre_demandes_envoyees')

        notify(
            annonce.conducteur,
            Notification.Type.DEMANDE_RECUE,
            _('Nouvelle demande de transport'),
            _('%(expediteur)s souhaite envoyer un colis sur « %(annonce)s »') % {
                'expediteur': expediteur.nom_complet, 'annonce': annonce.titre,
            },
            demande=demande,
            lien=f"{settings.FRONTEND_URL}/demandes/{demande.pk}",
        )

    logger.info("Demande %s créée par %s sur l'annonce %s", demande.pk, expediteur.email, annonce.pk)
    return demande


# =============================================================================
# CYCLE DE VIE
# =============================================================================

def repondre(demande, action, acteur, commentaire=''):
    if action not in ('accepter', 'refuser'):
        raise BusinessRuleError(_('Action invalide. Utilisez "accepter" ou "refuser"'))
    if demande.statut != S.EN_ATTENTE:
        raise BusinessRuleError(_('Cette demande a déjà reçu une réponse'))

    target = S.ACCEPTEE if action == 'accepter' else S.REFUSEE
    return transition(demande, target, acteur, commentaire)


def modifier_statut(demande, statut, acteur, commentaire='', lieu=''):
    if statut not in STATUTS_MODIFIABLES:
        raise BusinessRuleError(_('Statut invalide'))
    return transition(demande, statut, acteur, commentaire, lieu)


def annuler(demande, acteur, motif):
    if not demande.peut_etre_annulee(acteur):
        raise BusinessRuleError(_('Cette demande ne peut plus être annulée'))
    return transition(demande, S.ANNULEE, acteur, motif)


# =============================================================================
# SUIVI ET ÉCHANGES
# =============================================================================

def ajouter_communication(demande, auteur, message, type=Communication.Type.MESSAGE):
    communication = Communication.objects.create(demande=demande, auteur=auteur, message=message, type=type)
    logger.debug("Communication ajoutée à la demande %s par %s", demande.pk, auteur.email)
    return communication


def mettre_a_jour_position(demande, acteur, latitude, longitude, adresse=''):
    if demande.statut not in STATUTS_POSITION:
        raise BusinessRuleError(_('La position ne peut être mise à jour que pour un colis en transit'))

    demande.position_latitude = latitude
    demande.position_longitude = longitude
    demande.position_adresse = adresse or ''
    demande.position_date = timezone.now()
    demande.save(update_fields=['position_latitude', 'position_longitude', 'position_adresse', 'position_date', 'updated'])
    return demande


def suivi_public(numero_suivi):
    demande = (
        Demande.objects.select_related('annonce')
        .prefetch_related('etapes')
        .filter(numero_suivi=numero_suivi)
        .first()
    )
    if demande is None:
        raise NotFound(_('Numéro de suivi invalide'))
    return demande


# =============================================================================
# LITIGES
# =============================================================================

def signaler_litige(demande, acteur, motif):
    if demande.litige_signale and not demande.litige_resolu:
        raise BusinessRuleError(_('Un litige est déjà en cours pour cette demande'))

    with transaction.atomic():
        demande.litige_signale = True
        demande.litige_motif = motif
        demande.litige_signale_par = acteur
        demande.litige_date = timezone.now()
        demande.litige_resolu = False
        demande.litige_resolution = ''
        demande.litige_decision = ''
        demande.litige_date_resolution = None
        demande.save(update_fields=[
            'litige_signale', 'litige_motif', 'litige_signale_par', 'litige_date',
            'litige_resolu', 'litige_resolution', 'litige_decision', 'litige_date_resolution', 'updated',
        ])

        admins = User.objects.filter(Q(role=Role.ADMIN) | Q(is_superuser=True), is_active=True)
        for admin in admins:
            notify(
                admin,
                Notification.Type.LITIGE_SIGNALE,
                _('Litige signalé'),
                _('Litige sur la demande %(demande)s: %(motif)s') % {
                    'demande': demande.numero_suivi or demande.pk, 'motif': motif,
                },
                demande=demande,
            )

    logger.warning("Litige signalé sur la demande %s par %s", demande.pk, acteur.email)
    return demande


def resoudre_litige(demande, admin, resolution, decision):
    """Clôt le litige avec la décision de l'administrateur; le statut de la demande est inchangé."""
    if not demande.litige_signale:
        raise BusinessRuleError(_('Aucun litige à résoudre'))
    if demande.litige_resolu:
        raise BusinessRuleError(_('Ce litige est déjà résolu'))

    demande.litige_resolu = True
    demande.litige_resolution = resolution
    demande.litige_decision = decision
    demande.litige_date_resolution = timezone.now()
    demande.save(update_fields=[
        'litige_resolu', 'litige_resolution', 'litige_decision', 'litige_date_resolution', 'updated',
    ])

    logger.info("Litige de la demande %s résolu par %s (%s)", demande.pk, admin.email, decision)
    return demande


def litiges(resolu=False):
    return (
        Demande.objects.select_related('expediteur', 'conducteur', 'annonce', 'litige_signale_par')
        .filter(litige_signale=True, litige_resolu=resolu)
        .order_by('-litige_date')
    )


# =============================================================================
# STATISTIQUES
# =============================================================================

def statistiques():
    """Statistiques globales des demandes (administration)."""
    par_statut = {statut: 0 for statut in S.values}
    for ligne in Demande.objects.values('statut').annotate(total=Count('id')):
        par_statut[ligne['statut']] = ligne['total']

    agregats = Demande.objects.aggregate(
        total=Count('id'),
        litiges=Count('id', filter=Q(litige_signale=True)),
        montant_total=Sum('montant_accepte'),
        poids_total=Sum('poids'),
        volume_total=Sum('volume'),
    )

    repondues = agregats['total'] - par_statut[S.EN_ATTENTE]
    acceptees = sum(par_statut[statut] for statut in STATUTS_ACCEPTES)
    taux = round(acceptees * 100 / repondues, 2) if repondues else 0

    return {
        'total_demandes': agregats['total'],
        'par_statut': par_statut,
        'litiges': agregats['litiges'],
        'montant_total_transporte': agregats['montant_total'] or 0,
        'poids_total': agregats['poids_total'] or 0,
        'volume_total': agregats['volume_total'] or 0,
        'taux_acceptation': taux,
    }
