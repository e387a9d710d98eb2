import pytest

from tests.conftest import creer_utilisateur
from users.models import Role, User

pytestmark = pytest.mark.django_db

INSCRIPTION = {
    'email': 'Nouveau@Example.com',
    'password': 'motdepasse',
    'nom': 'Benali',
    'prenom': 'Amine',
    'telephone': '+212611223344',
    'ville': 'Fès',
    'role': 'expediteur',
}


def connexion(client, email, password='secret123'):
    return client.post('/api/auth/login/', {'email': email, 'password': password}, format='json')


# =============================================================================
# INSCRIPTION
# =============================================================================

def test_inscription(client_de):
    response = client_de().post('/api/auth/register/', INSCRIPTION, format='json')

    assert response.status_code == 201
    data = response.data['data']
    assert data['user']['email'] == 'nouveau@example.com'
    assert data['user']['role'] == Role.EXPEDITEUR
    assert data['access'] and data['refresh']

    user = User.objects.get(email='nouveau@example.com')
    assert user.check_password('motdepasse')
    assert user.statut == User.Statut.ACTIF


def test_inscription_role_admin_refuse(client_de):
    response = client_de().post('/api/auth/register/', dict(INSCRIPTION, role='admin'), format='json')
    assert response.status_code == 400
    assert 'role' in response.data['errors']


def test_inscription_mot_de_passe_trop_court(client_de):
    response = client_de().post('/api/auth/register/', dict(INSCRIPTION, password='abc'), format='json')
    assert response.status_code == 400
    assert 'password' in response.data['errors']


def test_inscription_email_deja_utilise(client_de, conducteur):
    response = client_de().post(
        '/api/auth/register/', dict(INSCRIPTION, email='CONDUCTEUR@example.com'), format='json'
    )
    assert response.status_code == 400
    assert response.data['errors']['email'] == ['Un utilisateur avec cet email existe déjà']


# =============================================================================
# CONNEXION
# =============================================================================

def test_connexion(client_de, conducteur):
    response = connexion(client_de(), 'Conducteur@example.com')

    assert response.status_code == 200
    assert response.data['message'] == 'Connexion réussie'
    assert response.data['data']['user']['id'] == str(conducteur.pk)
    assert response.data['data']['access']

    conducteur.refresh_from_db()
    assert conducteur.last_login is not None


def test_connexion_jeton_utilisable(client_de, conducteur):
    client = client_de()
    access = connexion(client, conducteur.email).data['data']['access']

    client.credentials(HTTP_AUTHORIZATION=f'Bearer {access}')
    response = client.get('/api/auth/profile/')
    assert response.status_code == 200
    assert response.data['data']['email'] == conducteur.email


def test_rafraichissement_du_jeton(client_de, conducteur):
    client = client_de()
    refresh = connexion(client, conducteur.email).data['data']['refresh']

    response = client.post('/api/auth/token/refresh/', {'refresh': refresh}, format='json')
    assert response.status_code == 200
    assert 'access' in response.data


def test_connexion_mot_de_passe_incorrect(client_de, conducteur):
    response = connexion(client_de(), conducteur.email, 'mauvais')
    assert response.status_code == 400
    assert response.data['success'] is False
    assert response.data['message'] == 'Email ou mot de passe incorrect'


def test_connexion_compte_suspendu(client_de):
    creer_utilisateur('suspendu@example.com', Role.EXPEDITEUR, statut=User.Statut.SUSPENDU)
    response = connexion(client_de(), 'suspendu@example.com')
    assert response.status_code == 400
    assert response.data['message'] == 'Votre compte est suspendu.'


def test_connexion_limitee_apres_cinq_tentatives(client_de, conducteur):
    client = client_de()
    for _ in range(5):
        assert connexion(client, conducteur.email, 'mauvais').status_code == 400

    response = connexion(client, conducteur.email)
    assert response.status_code == 429
    assert response.data == {
        'success': False,
        'message': 'Trop de tentatives de connexion. Réessayez dans 15 minutes.',
    }


def test_connexion_reussie_remet_le_compteur_a_zero(client_de, conducteur):
    client = client_de()
    for _ in range(4):
        connexion(client, conducteur.email, 'mauvais')
    assert connexion(client, conducteur.email).status_code == 200

    for _ in range(5):
        assert connexion(client, conducteur.email, 'mauvais').status_code == 400


def test_limitation_par_adresse_client(client_de, conducteur):
    client = client_de()
    for _ in range(5):
        connexion(client, conducteur.email, 'mauvais')

    autre = client_de()
    autre.defaults['REMOTE_ADDR'] = '10.0.0.2'
    assert connexion(autre, conducteur.email).status_code == 200


# =============================================================================
# PROFIL
# =============================================================================

def test_profil(client_de, expediteur):
    response = client_de(expediteur).get('/api/auth/profile/')
    assert response.status_code == 200
    assert response.data['data']['nom_complet'] == 'Salma Alaoui'


def test_profil_non_authentifie(client_de):
    response = client_de().get('/api/auth/profile/')
    assert response.status_code == 401
    assert response.data['success'] is False


def test_modification_du_profil(client_de, expediteur):
    response = client_de(expediteur).patch(
        '/api/auth/profile/', {'ville': 'Tanger', 'role': 'admin'}, format='json'
    )
    assert response.status_code == 200
    assert response.data['data']['ville'] == 'Tanger'

    expediteur.refresh_from_db()
    assert expediteur.ville == 'Tanger'
    assert expediteur.role == Role.EXPEDITEUR


# =============================================================================
# MODÈLE
# =============================================================================

def test_roles(conducteur, expediteur, admin):
    assert conducteur.is_conducteur() and not conducteur.is_expediteur()
    assert expediteur.is_expediteur() and not expediteur.is_admin()
    assert admin.is_admin()


def test_superuser_est_administrateur(db):
    user = User.objects.create_superuser(email='root@example.com', password='secret123', nom='Root', prenom='Admin')
    assert user.role == Role.ADMIN
    assert user.is_admin()


def test_health(client_de, db):
    response = client_de().get('/api/health/')
    assert response.status_code == 200
    assert response.data['success'] is True
