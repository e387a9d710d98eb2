import logging
import re
from datetime import datetime, timezone as dt_timezone

import pytest
from django.db import DatabaseError
from django.utils import timezone
from rest_framework.exceptions import PermissionDenied

from annonces.models import Annonce
from core.exceptions import ConcurrentModification, IllegalTransition
from demandes import workflow
from demandes.models import Demande, EtapeSuivi
from demandes.workflow import ALLOWED_TRANSITIONS, allowed_targets, can_transition, is_terminal, transition
from notifications.models import Notification
from users.models import Role

S = Demande.Statut
TOUS_LES_STATUTS = list(S.values)


def test_table_couvre_tous_les_statuts():
    assert set(ALLOWED_TRANSITIONS) == set(TOUS_LES_STATUTS)
    for cibles in ALLOWED_TRANSITIONS.values():
        assert set(cibles) <= set(TOUS_LES_STATUTS)


def test_statuts_terminaux():
    assert {s for s in TOUS_LES_STATUTS if is_terminal(s)} == {S.LIVREE, S.ANNULEE, S.REFUSEE}
    for statut in (S.LIVREE, S.ANNULEE, S.REFUSEE):
        assert allowed_targets(statut) == frozenset()


def test_allowed_targets():
    assert allowed_targets(S.EN_ATTENTE) == {S.ACCEPTEE, S.REFUSEE, S.ANNULEE}
    assert allowed_targets(S.ACCEPTEE) == {S.EN_COURS, S.ANNULEE}
    assert allowed_targets(S.EN_COURS) == {S.ENLEVEE, S.ANNULEE}
    assert allowed_targets(S.ENLEVEE) == {S.EN_TRANSIT}
    assert allowed_targets(S.EN_TRANSIT) == {S.LIVREE}


@pytest.mark.django_db
@pytest.mark.parametrize('source', TOUS_LES_STATUTS)
@pytest.mark.parametrize('cible', TOUS_LES_STATUTS)
def test_transition_reussit_ssi_dans_la_table(source, cible, demande_en, conducteur, expediteur):
    demande = demande_en(source)
    etapes_avant = demande.etapes.count()
    roles = ALLOWED_TRANSITIONS[source].get(cible)

    if roles is None:
        with pytest.raises(IllegalTransition) as exc:
            transition(demande, cible, conducteur)
        assert str(exc.value.detail) == f'Impossible de passer de "{source}" à "{cible}"'
        demande.refresh_from_db()
        assert demande.statut == source
        assert demande.etapes.count() == etapes_avant
    else:
        acteur = conducteur if Role.CONDUCTEUR in roles else expediteur
        transition(demande, cible, acteur)
        demande.refresh_from_db()
        assert demande.statut == cible
        assert demande.etapes.count() == etapes_avant + 1
        assert demande.etapes.order_by('-ts').first().statut == cible


@pytest.mark.django_db
@pytest.mark.parametrize('statut', TOUS_LES_STATUTS)
def test_meme_statut_refuse(statut, demande_en, conducteur):
    demande = demande_en(statut)
    with pytest.raises(IllegalTransition):
        transition(demande, statut, conducteur)


@pytest.mark.django_db
def test_creation_enregistre_premiere_etape(demande, expediteur):
    etapes = list(demande.etapes.all())
    assert len(etapes) == 1
    assert etapes[0].statut == S.EN_ATTENTE
    assert etapes[0].acteur == expediteur
    assert demande.version == 0


@pytest.mark.django_db
def test_horodatages_strictement_croissants(demande, conducteur, monkeypatch):
    fige = datetime(2026, 1, 15, 10, 0, tzinfo=dt_timezone.utc)
    monkeypatch.setattr(timezone, 'now', lambda: fige)

    for cible in (S.ACCEPTEE, S.EN_COURS, S.ENLEVEE, S.EN_TRANSIT, S.LIVREE):
        demande = transition(demande, cible, conducteur)

    horodatages = list(demande.etapes.order_by('ts').values_list('ts', flat=True))
    assert len(horodatages) == 6
    assert all(a < b for a, b in zip(horodatages, horodatages[1:]))


@pytest.mark.django_db
def test_commentaire_par_defaut(demande, conducteur):
    transition(demande, S.ACCEPTEE, conducteur)
    etape = EtapeSuivi.objects.filter(demande=demande).order_by('-ts').first()
    assert etape.commentaire == 'Statut changé vers: acceptee'
    assert etape.acteur == conducteur


@pytest.mark.django_db
def test_version_incrementee(demande, conducteur):
    demande = transition(demande, S.ACCEPTEE, conducteur)
    assert demande.version == 1
    demande = transition(demande, S.EN_COURS, conducteur)
    assert demande.version == 2


# =============================================================================
# RÔLES
# =============================================================================

@pytest.mark.django_db
def test_expediteur_ne_peut_pas_accepter(demande, expediteur):
    with pytest.raises(IllegalTransition):
        transition(demande, S.ACCEPTEE, expediteur)
    demande.refresh_from_db()
    assert demande.statut == S.EN_ATTENTE


@pytest.mark.django_db
def test_non_participant_refuse(demande, autre_conducteur):
    with pytest.raises(PermissionDenied):
        transition(demande, S.ACCEPTEE, autre_conducteur)


@pytest.mark.django_db
def test_conducteur_ne_peut_pas_annuler_une_demande_en_attente(demande, conducteur):
    with pytest.raises(IllegalTransition):
        transition(demande, S.ANNULEE, conducteur)


@pytest.mark.django_db
def test_expediteur_ne_peut_plus_annuler_en_cours(demande_en, expediteur, conducteur):
    demande = demande_en(S.EN_COURS)
    assert not demande.peut_etre_annulee(expediteur)
    assert demande.peut_etre_annulee(conducteur)
    with pytest.raises(IllegalTransition):
        transition(demande, S.ANNULEE, expediteur)


@pytest.mark.django_db
def test_can_transition_ne_leve_pas(demande, conducteur, expediteur):
    assert can_transition(demande, S.ACCEPTEE, conducteur)
    assert not can_transition(demande, S.ACCEPTEE, expediteur)
    assert not can_transition(demande, S.LIVREE, conducteur)
    assert demande.peut_etre_annulee(expediteur)


# =============================================================================
# CONCURRENCE
# =============================================================================

@pytest.mark.django_db
def test_version_perimee_leve_un_conflit(demande, conducteur):
    premiere = Demande.objects.get(pk=demande.pk)
    seconde = Demande.objects.get(pk=demande.pk)

    transition(premiere, S.ACCEPTEE, conducteur)
    with pytest.raises(ConcurrentModification) as exc:
        transition(seconde, S.REFUSEE, conducteur)
    assert exc.value.status_code == 409

    demande.refresh_from_db()
    assert demande.statut == S.ACCEPTEE
    assert demande.etapes.count() == 2


# =============================================================================
# EFFETS DE BORD
# =============================================================================

@pytest.mark.django_db
def test_acceptation_effets(demande, annonce, conducteur, expediteur):
    demande = transition(demande, S.ACCEPTEE, conducteur)

    assert re.fullmatch(r'TC\d{6}[A-Z0-9]{6}', demande.numero_suivi)
    assert demande.montant_accepte == demande.montant_propose
    assert demande.date_reponse is not None

    annonce = Annonce.objects.get(pk=annonce.pk)
    assert annonce.nombre_demandes == 1
    assert annonce.nombre_demandes_acceptees == 1
    assert annonce.taux_acceptation == 100

    conducteur.refresh_from_db()
    assert conducteur.nombre_demandes_acceptees == 1
    assert Notification.objects.filter(user=expediteur, type=Notification.Type.DEMANDE_ACCEPTEE).count() == 1


@pytest.mark.django_db
def test_dates_des_statuts(demande_en):
    demande = demande_en(S.LIVREE)
    assert demande.date_enlevement is not None
    assert demande.date_livraison_reelle is not None
    assert demande.date_livraison_reelle >= demande.date_enlevement


@pytest.mark.django_db
def test_refus_date_reponse_sans_numero(demande, conducteur, expediteur):
    demande = transition(demande, S.REFUSEE, conducteur, 'Plus de place')
    assert demande.date_reponse is not None
    assert demande.numero_suivi is None
    notification = Notification.objects.get(user=expediteur, type=Notification.Type.DEMANDE_REFUSEE)
    assert 'Plus de place' in notification.message


@pytest.mark.django_db
def test_annulation_notifie_l_autre_participant(demande, conducteur, expediteur):
    transition(demande, S.ANNULEE, expediteur, 'Changement de programme')
    assert Notification.objects.filter(user=conducteur, type=Notification.Type.DEMANDE_ANNULEE).exists()
    assert not Notification.objects.filter(user=expediteur, type=Notification.Type.DEMANDE_ANNULEE).exists()


@pytest.mark.django_db
def test_etapes_intermediaires_notifient_l_expediteur(demande_en, expediteur):
    demande_en(S.EN_TRANSIT)
    assert Notification.objects.filter(user=expediteur, type=Notification.Type.STATUT_MODIFIE).count() == 3


@pytest.mark.django_db
@pytest.mark.parametrize('erreur', [DatabaseError("base indisponible"), RuntimeError("gabarit invalide")])
def test_notification_en_echec_n_annule_pas_la_transition(demande, conducteur, monkeypatch, erreur):
    def echec(*args, **kwargs):
        raise erreur

    monkeypatch.setattr('demandes.handlers.notify', echec)

    demande = transition(demande, S.ACCEPTEE, conducteur)
    demande.refresh_from_db()
    assert demande.statut == S.ACCEPTEE
    assert demande.etapes.count() == 2


@pytest.mark.django_db
def test_transition_illegale_journalisee(demande, conducteur, caplog, monkeypatch):
    monkeypatch.setattr(logging.getLogger('transport_connect'), 'propagate', True)
    with pytest.raises(IllegalTransition):
        workflow.transition(demande, S.LIVREE, conducteur)
    assert any('Transition refusée' in record.getMessage() for record in caplog.records)
