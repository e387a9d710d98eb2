# evaluations/services.py
import logging

from django.db import IntegrityError, transaction
from django.utils.translation import gettext as _
from rest_framework.exceptions import NotFound, PermissionDenied

from core.exceptions import BusinessRuleError
from demandes.models import Demande
from .models import Evaluation

logger = logging.getLogger('transport_connect.evaluations')


def evaluer(evaluateur, demande_id, note, commentaire='', recommande=True):
    demande = Demande.objects.select_related('expediteur', 'conducteur').filter(pk=demande_id).first()
    if demande is None:
        raise NotFound(_('Demande non trouvée'))
    if not demande.est_participant(evaluateur):
        raise PermissionDenied(_('Seuls les utilisateurs ayant effectué une transaction peuvent évaluer'))
    if demande.statut != Demande.Statut.LIVREE:
        raise BusinessRuleError(_("Vous ne pouvez évaluer qu'une demande livrée"))
    if Evaluation.objects.filter(demande=demande, evaluateur=evaluateur).exists():
        raise BusinessRuleError(_('Vous avez déjà évalué cette transaction'))

    if evaluateur.pk == demande.expediteur_id:
        type_evaluation = Evaluation.Type.EXPEDITEUR_VERS_CONDUCTEUR
    else:
        type_evaluation = Evaluation.Type.CONDUCTEUR_VERS_EXPEDITEUR
    evalue = demande.autre_participant(evaluateur)

    try:
        with transaction.atomic():
            evaluation = Evaluation.objects.create(
                demande=demande,
                evaluateur=evaluateur,
                evalue=evalue,
                type_evaluation=type_evaluation,
                note=note,
                commentaire=commentaire,
                recommande=recommande,
            )
            evalue.recalculer_note()
    except IntegrityError:
        # Évaluation concurrente arrivée entre la vérification et l'insertion
        raise BusinessRuleError(_('Vous avez déjà évalué cette transaction'))

    logger.info("Évaluation %s/5 de %s pour %s", note, evaluateur.email, evalue.email)
    return evaluation
