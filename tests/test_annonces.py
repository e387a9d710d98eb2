from datetime import timedelta

import pytest
from django.utils import timezone

from annonces import services
from annonces.models import Annonce
from demandes.models import Demande
from notifications.models import Notification
from tests.conftest import donnees_annonce

pytestmark = pytest.mark.django_db


def payload(**extra):
    data = donnees_annonce(**extra)
    for key, value in data.items():
        if key == 'date_depart':
            data[key] = value.isoformat()
        elif not isinstance(value, list):
            data[key] = str(value)
    return data


# =============================================================================
# CRÉATION
# =============================================================================

def test_creation_par_un_conducteur(client_de, conducteur):
    response = client_de(conducteur).post('/api/annonces/', payload(), format='json')

    assert response.status_code == 201
    assert response.data['success'] is True
    data = response.data['data']
    assert data['statut'] == Annonce.Statut.ACTIVE
    assert data['conducteur']['id'] == str(conducteur.pk)
    assert data['types_marchandise'] == ['mobilier', 'electromenager', 'autre']

    annonce = Annonce.objects.get(pk=data['id'])
    assert annonce.volume_max == 200 * 150 * 150
    assert annonce.date_arrivee_estimee == annonce.date_depart + timedelta(hours=1.5)

    conducteur.refresh_from_db()
    assert conducteur.nombre_annonces == 1


def test_creation_reservee_aux_conducteurs(client_de, expediteur):
    response = client_de(expediteur).post('/api/annonces/', payload(), format='json')
    assert response.status_code == 403
    assert response.data['message'] == 'Seuls les conducteurs peuvent créer des annonces'


def test_creation_date_passee(client_de, conducteur):
    response = client_de(conducteur).post(
        '/api/annonces/', payload(date_depart=timezone.now() - timedelta(hours=1)), format='json'
    )
    assert response.status_code == 400
    assert response.data['errors']['date_depart'] == ['La date de départ doit être dans le futur']


def test_creation_prix_fixe_manquant(client_de, conducteur):
    response = client_de(conducteur).post(
        '/api/annonces/', payload(type_tarification='prix_fixe'), format='json'
    )
    assert response.status_code == 400
    assert 'prix_fixe' in response.data['errors']


def test_creation_type_de_marchandise_inconnu(client_de, conducteur):
    response = client_de(conducteur).post(
        '/api/annonces/', payload(types_marchandise=['meteorites']), format='json'
    )
    assert response.status_code == 400
    assert 'types_marchandise' in response.data['errors']


# =============================================================================
# RECHERCHE ET CONSULTATION
# =============================================================================

def test_liste_publique_des_annonces_actives(client_de, conducteur, annonce):
    inactive = services.creer_annonce(conducteur, donnees_annonce(titre='Trajet complet'))
    Annonce.objects.filter(pk=inactive.pk).update(statut=Annonce.Statut.COMPLETE)

    response = client_de().get('/api/annonces/')
    assert response.status_code == 200
    assert response.data['success'] is True
    assert response.data['data']['count'] == 1
    assert response.data['data']['results'][0]['id'] == str(annonce.pk)

    response = client_de().get('/api/annonces/?statut=complete')
    assert [item['id'] for item in response.data['data']['results']] == [str(inactive.pk)]


def test_filtres(client_de, conducteur, annonce):
    services.creer_annonce(conducteur, donnees_annonce(
        titre='Marrakech vers Agadir', ville_depart='Marrakech', ville_destination='Agadir',
        types_marchandise=['documents'],
    ))
    client = client_de()

    response = client.get('/api/annonces/', {'ville_depart': 'casa'})
    assert [item['id'] for item in response.data['data']['results']] == [str(annonce.pk)]

    response = client.get('/api/annonces/', {'type_marchandise': 'documents'})
    assert [item['ville_depart'] for item in response.data['data']['results']] == ['Marrakech']

    response = client.get('/api/annonces/', {'type_marchandise': 'medicaments'})
    assert response.data['data']['count'] == 0

    response = client.get('/api/annonces/', {'prix_max': '5'})
    assert response.data['data']['count'] == 0


def test_pagination(client_de, conducteur):
    for numero in range(3):
        services.creer_annonce(conducteur, donnees_annonce(titre=f'Trajet {numero}'))

    response = client_de().get('/api/annonces/', {'limit': 2})
    data = response.data['data']
    assert data['count'] == 3
    assert data['pages'] == 2
    assert data['page'] == 1
    assert len(data['results']) == 2
    assert data['next'] is not None


def test_consultation_incremente_les_vues(client_de, conducteur, expediteur, annonce):
    client_de().get(f'/api/annonces/{annonce.pk}/')
    response = client_de(expediteur).get(f'/api/annonces/{annonce.pk}/')
    assert response.data['data']['nombre_vues'] == 2

    # Le propriétaire ne compte pas
    client_de(conducteur).get(f'/api/annonces/{annonce.pk}/')
    annonce.refresh_from_db()
    assert annonce.nombre_vues == 2


def test_mes_annonces_tous_statuts(client_de, conducteur, autre_conducteur, annonce):
    Annonce.objects.filter(pk=annonce.pk).update(statut=Annonce.Statut.INACTIVE)
    services.creer_annonce(autre_conducteur, donnees_annonce())

    response = client_de(conducteur).get('/api/annonces/mes-annonces/')
    assert response.status_code == 200
    assert [item['id'] for item in response.data['data']['results']] == [str(annonce.pk)]


# =============================================================================
# MODIFICATION
# =============================================================================

def test_modification_par_le_proprietaire(client_de, conducteur, annonce):
    response = client_de(conducteur).patch(
        f'/api/annonces/{annonce.pk}/', {'titre': 'Casablanca vers Rabat express'}, format='json'
    )
    assert response.status_code == 200
    assert response.data['data']['titre'] == 'Casablanca vers Rabat express'


def test_modification_par_un_autre_conducteur(client_de, autre_conducteur, annonce):
    response = client_de(autre_conducteur).patch(
        f'/api/annonces/{annonce.pk}/', {'titre': 'Détournée'}, format='json'
    )
    assert response.status_code == 403


# =============================================================================
# SUPPRESSION
# =============================================================================

def test_suppression_refuse_les_demandes_en_attente(client_de, conducteur, expediteur, annonce, demande):
    response = client_de(conducteur).delete(f'/api/annonces/{annonce.pk}/')
    assert response.status_code == 200
    assert response.data['message'] == 'Annonce supprimée avec succès'

    demande = Demande.all_objects.get(pk=demande.pk)
    assert demande.statut == Demande.Statut.REFUSEE
    assert demande.is_deleted is True
    assert demande.etapes.order_by('-ts').first().commentaire == 'Annonce supprimée'
    assert Notification.objects.filter(user=expediteur, type=Notification.Type.DEMANDE_REFUSEE).exists()

    annonce = Annonce.all_objects.get(pk=annonce.pk)
    assert annonce.statut == Annonce.Statut.ANNULEE
    assert annonce.is_deleted is True

    conducteur.refresh_from_db()
    assert conducteur.nombre_annonces == 0

    assert client_de().get(f'/api/annonces/{annonce.pk}/').status_code == 404


def test_suppression_impossible_avec_transport_engage(client_de, conducteur, annonce, demande_en):
    demande = demande_en(Demande.Statut.ACCEPTEE)

    response = client_de(conducteur).delete(f'/api/annonces/{annonce.pk}/')
    assert response.status_code == 400
    assert response.data['message'] == 'Impossible de supprimer une annonce avec des transports en cours'

    assert Annonce.objects.filter(pk=annonce.pk).exists()
    demande.refresh_from_db()
    assert demande.statut == Demande.Statut.ACCEPTEE


def test_suppression_conserve_l_historique_termine(conducteur, annonce, demande_en):
    livree = demande_en(Demande.Statut.LIVREE)

    services.supprimer_annonce(annonce, conducteur)

    livree = Demande.all_objects.get(pk=livree.pk)
    assert livree.statut == Demande.Statut.LIVREE
    assert livree.is_deleted is True


def test_suppression_par_un_tiers(client_de, autre_conducteur, annonce):
    response = client_de(autre_conducteur).delete(f'/api/annonces/{annonce.pk}/')
    assert response.status_code == 403
    assert Annonce.objects.filter(pk=annonce.pk).exists()
