import uuid
from decimal import Decimal

import pytest
from django.db.models import QuerySet

from core.exceptions import BusinessRuleError
from demandes.models import Demande
from evaluations import services
from evaluations.models import Evaluation

pytestmark = pytest.mark.django_db


def evaluer(client, demande, note=5, **extra):
    data = {'demande': str(demande.pk), 'note': note, **extra}
    return client.post('/api/evaluations/', data, format='json')


def test_evaluation_apres_livraison(client_de, expediteur, conducteur, demande_en):
    demande = demande_en(Demande.Statut.LIVREE)

    response = evaluer(client_de(expediteur), demande, 4, commentaire='Ponctuel et soigneux')

    assert response.status_code == 201
    assert response.data['data']['type_evaluation'] == Evaluation.Type.EXPEDITEUR_VERS_CONDUCTEUR
    assert str(response.data['data']['evalue']) == str(conducteur.pk)

    conducteur.refresh_from_db()
    assert conducteur.note_moyenne == Decimal('4.00')
    assert conducteur.nombre_evaluations == 1


def test_note_moyenne_sur_plusieurs_livraisons(client_de, expediteur, conducteur, demande_en):
    evaluer(client_de(expediteur), demande_en(Demande.Statut.LIVREE), 5)
    evaluer(client_de(expediteur), demande_en(Demande.Statut.LIVREE), 4)
    evaluer(client_de(expediteur), demande_en(Demande.Statut.LIVREE), 4)

    conducteur.refresh_from_db()
    assert conducteur.note_moyenne == Decimal('4.33')
    assert conducteur.nombre_evaluations == 3


def test_evaluation_mutuelle(client_de, expediteur, conducteur, demande_en):
    demande = demande_en(Demande.Statut.LIVREE)
    evaluer(client_de(expediteur), demande, 5)

    response = evaluer(client_de(conducteur), demande, 3)
    assert response.status_code == 201
    assert response.data['data']['type_evaluation'] == Evaluation.Type.CONDUCTEUR_VERS_EXPEDITEUR

    expediteur.refresh_from_db()
    assert expediteur.note_moyenne == Decimal('3.00')


def test_evaluation_avant_livraison(client_de, expediteur, demande_en):
    demande = demande_en(Demande.Statut.EN_TRANSIT)
    response = evaluer(client_de(expediteur), demande)
    assert response.status_code == 400
    assert response.data['message'] == "Vous ne pouvez évaluer qu'une demande livrée"


def test_double_evaluation(client_de, expediteur, demande_en):
    demande = demande_en(Demande.Statut.LIVREE)
    evaluer(client_de(expediteur), demande)

    response = evaluer(client_de(expediteur), demande, 1)
    assert response.status_code == 400
    assert response.data['message'] == 'Vous avez déjà évalué cette transaction'
    assert Evaluation.objects.count() == 1


def test_evaluation_par_un_tiers(client_de, autre_expediteur, demande_en):
    demande = demande_en(Demande.Statut.LIVREE)
    response = evaluer(client_de(autre_expediteur), demande)
    assert response.status_code == 403


def test_demande_inconnue(client_de, expediteur):
    response = client_de(expediteur).post(
        '/api/evaluations/', {'demande': str(uuid.uuid4()), 'note': 5}, format='json'
    )
    assert response.status_code == 404
    assert response.data['message'] == 'Demande non trouvée'


def test_note_hors_bornes(client_de, expediteur, demande_en):
    demande = demande_en(Demande.Statut.LIVREE)
    response = evaluer(client_de(expediteur), demande, 6)
    assert response.status_code == 400
    assert 'note' in response.data['errors']


def test_evaluations_publiques_d_un_utilisateur(client_de, expediteur, conducteur, demande_en):
    evaluer(client_de(expediteur), demande_en(Demande.Statut.LIVREE), 5, commentaire='Parfait')

    response = client_de().get(f'/api/evaluations/utilisateur/{conducteur.pk}/')
    assert response.status_code == 200
    assert response.data['data']['count'] == 1
    assert response.data['data']['results'][0]['commentaire'] == 'Parfait'


def test_evaluation_concurrente(expediteur, demande_en, monkeypatch):
    demande = demande_en(Demande.Statut.LIVREE)
    services.evaluer(expediteur, demande.pk, 5)

    # La seconde évaluation passe la vérification comme si la première n'était pas encore écrite
    monkeypatch.setattr(QuerySet, 'exists', lambda self: False)

    with pytest.raises(BusinessRuleError) as exc:
        services.evaluer(expediteur, demande.pk, 2)
    assert str(exc.value.detail) == 'Vous avez déjà évalué cette transaction'
    assert Evaluation.objects.count() == 1
