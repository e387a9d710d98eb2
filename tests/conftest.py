from datetime import timedelta
from decimal import Decimal

import pytest
from django.core.cache import cache
from django.utils import timezone
from rest_framework.test import APIClient

from annonces import services as annonce_services
from demandes import services as demande_services
from demandes.models import Demande
from demandes.workflow import transition
from users.models import Role, User

S = Demande.Statut

# Chemin le plus court depuis en_attente vers chaque statut
CHEMINS = {
    S.EN_ATTENTE: [],
    S.ACCEPTEE: [S.ACCEPTEE],
    S.REFUSEE: [S.REFUSEE],
    S.ANNULEE: [S.ANNULEE],
    S.EN_COURS: [S.ACCEPTEE, S.EN_COURS],
    S.ENLEVEE: [S.ACCEPTEE, S.EN_COURS, S.ENLEVEE],
    S.EN_TRANSIT: [S.ACCEPTEE, S.EN_COURS, S.ENLEVEE, S.EN_TRANSIT],
    S.LIVREE: [S.ACCEPTEE, S.EN_COURS, S.ENLEVEE, S.EN_TRANSIT, S.LIVREE],
}


@pytest.fixture(autouse=True)
def _environnement(settings):
    settings.PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']
    cache.clear()
    yield
    cache.clear()


def creer_utilisateur(email, role, **extra):
    return User.objects.create_user(
        email=email,
        password='secret123',
        nom=extra.pop('nom', 'Alaoui'),
        prenom=extra.pop('prenom', 'Karim'),
        telephone=extra.pop('telephone', '+212612345678'),
        role=role,
        **extra,
    )


@pytest.fixture
def conducteur(db):
    return creer_utilisateur('conducteur@example.com', Role.CONDUCTEUR, prenom='Youssef')


@pytest.fixture
def autre_conducteur(db):
    return creer_utilisateur('conducteur2@example.com', Role.CONDUCTEUR, prenom='Omar')


@pytest.fixture
def expediteur(db):
    return creer_utilisateur('expediteur@example.com', Role.EXPEDITEUR, prenom='Salma')


@pytest.fixture
def autre_expediteur(db):
    return creer_utilisateur('expediteur2@example.com', Role.EXPEDITEUR, prenom='Nadia')


@pytest.fixture
def admin(db):
    return creer_utilisateur('admin@example.com', Role.ADMIN, prenom='Admin')


@pytest.fixture
def client_de():
    def _client(user=None):
        client = APIClient()
        if user is not None:
            client.force_authenticate(user=user)
        return client
    return _client


def donnees_annonce(**extra):
    data = {
        'titre': 'Casablanca vers Rabat',
        'description': 'Trajet hebdomadaire',
        'ville_depart': 'Casablanca',
        'ville_destination': 'Rabat',
        'date_depart': timezone.now() + timedelta(days=2),
        'duree_estimee_h': Decimal('1.5'),
        'longueur_max': Decimal('200'),
        'largeur_max': Decimal('150'),
        'hauteur_max': Decimal('150'),
        'poids_max': Decimal('500'),
        'types_marchandise': ['mobilier', 'electromenager', 'autre'],
        'type_tarification': 'par_kg',
        'prix_par_kg': Decimal('10'),
        'type_vehicule': 'camionnette',
        'paiements_acceptes': ['especes', 'virement'],
    }
    data.update(extra)
    return data


def donnees_colis(**extra):
    data = {
        'description': 'Un canapé deux places',
        'longueur': Decimal('180'),
        'largeur': Decimal('90'),
        'hauteur': Decimal('80'),
        'poids': Decimal('45'),
        'type_marchandise': 'mobilier',
        'enlevement_nom': 'Salma Bennani',
        'enlevement_telephone': '+212612345678',
        'enlevement_adresse': '12 rue des Lilas',
        'enlevement_ville': 'Casablanca',
        'livraison_nom': 'Hicham Bennani',
        'livraison_telephone': '+212698765432',
        'livraison_adresse': '5 avenue Mohammed V',
        'livraison_ville': 'Rabat',
        'montant_propose': Decimal('450'),
        'methode_paiement': 'especes',
    }
    data.update(extra)
    return data


@pytest.fixture
def annonce(conducteur):
    return annonce_services.creer_annonce(conducteur, donnees_annonce())


@pytest.fixture
def demande(annonce, expediteur):
    return demande_services.creer_demande(expediteur, annonce.pk, donnees_colis())


@pytest.fixture
def demande_en(annonce, expediteur, conducteur):
    """Crée une demande puis la fait avancer jusqu'au statut voulu via le workflow."""
    def _demande_en(statut):
        demande = demande_services.creer_demande(expediteur, annonce.pk, donnees_colis())
        for cible in CHEMINS[statut]:
            acteur = expediteur if cible == S.ANNULEE else conducteur
            demande = transition(demande, cible, acteur)
        return demande
    return _demande_en
