from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import F
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from core.models import TimeStampedModel


# =============================================================================
# CHOIX PARTAGÉS
# =============================================================================

class TypeMarchandise(models.TextChoices):
    ELECTROMENAGER = "electromenager", _("Électroménager")
    MOBILIER = "mobilier", _("Mobilier")
    VETEMENTS = "vetements", _("Vêtements")
    ALIMENTATION = "alimentation", _("Alimentation")
    ELECTRONIQUE = "electronique", _("Électronique")
    DOCUMENTS = "documents", _("Documents")
    MEDICAMENTS = "medicaments", _("Médicaments")
    FRAGILE = "fragile", _("Fragile")
    PRODUITS_CHIMIQUES = "produits_chimiques", _("Produits chimiques")
    MATERIAUX_CONSTRUCTION = "materiaux_construction", _("Matériaux de construction")
    AUTRE = "autre", _("Autre")


class MethodePaiement(models.TextChoices):
    ESPECES = "especes", _("Espèces")
    VIREMENT = "virement", _("Virement")
    PAYPAL = "paypal", _("PayPal")
    CARTE_BANCAIRE = "carte_bancaire", _("Carte bancaire")


class Devise(models.TextChoices):
    MAD = "MAD", _("Dirham marocain")
    EUR = "EUR", _("Euro")
    USD = "USD", _("Dollar américain")


class Annonce(TimeStampedModel):
    """Trajet publié par un conducteur, avec capacité et tarification"""

    class Statut(models.TextChoices):
        ACTIVE = "active", _("Active")
        INACTIVE = "inactive", _("Inactive")
        COMPLETE = "complete", _("Complète")
        ANNULEE = "annulee", _("Annulée")
        SUSPENDUE = "suspendue", _("Suspendue")

    class TypeTarification(models.TextChoices):
        PAR_KG = "par_kg", _("Par kilogramme")
        PRIX_FIXE = "prix_fixe", _("Prix fixe")
        NEGOCIABLE = "negociable", _("Négociable")

    class TypeVehicule(models.TextChoices):
        CAMIONNETTE = "camionnette", _("Camionnette")
        CAMION = "camion", _("Camion")
        FOURGON = "fourgon", _("Fourgon")
        VOITURE = "voiture", _("Voiture")
        MOTO = "moto", _("Moto")

    conducteur = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="annonces", verbose_name=_("Conducteur")
    )
    titre = models.CharField(max_length=100, verbose_name=_("Titre"))
    description = models.TextField(max_length=500, blank=True, verbose_name=_("Description"))

    # Trajet
    ville_depart = models.CharField(max_length=100, verbose_name=_("Ville de départ"))
    adresse_depart = models.CharField(max_length=255, blank=True, verbose_name=_("Adresse de départ"))
    ville_destination = models.CharField(max_length=100, verbose_name=_("Ville de destination"))
    adresse_destination = models.CharField(max_length=255, blank=True, verbose_name=_("Adresse de destination"))
    distance_km = models.DecimalField(
        max_digits=8, decimal_places=2, null=True, blank=True,
        validators=[MinValueValidator(0)], verbose_name=_("Distance (km)")
    )
    duree_estimee_h = models.DecimalField(
        max_digits=6, decimal_places=2, null=True, blank=True,
        validators=[MinValueValidator(0)], verbose_name=_("Durée estimée (h)")
    )

    # Planning
    date_depart = models.DateTimeField(verbose_name=_("Date de départ"))
    date_arrivee_estimee = models.DateTimeField(null=True, blank=True, verbose_name=_("Arrivée estimée"))

    # Capacité
    longueur_max = models.DecimalField(max_digits=8, decimal_places=2, validators=[MinValueValidator(0)], verbose_name=_("Longueur max (cm)"))
    largeur_max = models.DecimalField(max_digits=8, decimal_places=2, validators=[MinValueValidator(0)], verbose_name=_("Largeur max (cm)"))
    hauteur_max = models.DecimalField(max_digits=8, decimal_places=2, validators=[MinValueValidator(0)], verbose_name=_("Hauteur max (cm)"))
    poids_max = models.DecimalField(max_digits=8, decimal_places=2, validators=[MinValueValidator(0)], verbose_name=_("Poids max (kg)"))
    volume_max = models.DecimalField(max_digits=16, decimal_places=2, default=0, editable=False, verbose_name=_("Volume max (cm³)"))
    types_marchandise = models.JSONField(default=list, verbose_name=_("Types de marchandise acceptés"))

    # Tarification
    type_tarification = models.CharField(max_length=20, choices=TypeTarification.choices, verbose_name=_("Type de tarification"))
    prix_par_kg = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True,
        validators=[MinValueValidator(0)], verbose_name=_("Prix par kg")
    )
    prix_fixe = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True,
        validators=[MinValueValidator(0)], verbose_name=_("Prix fixe")
    )
    devise = models.CharField(max_length=3, choices=Devise.choices, default=Devise.MAD, verbose_name=_("Devise"))

    # Véhicule et conditions
    type_vehicule = models.CharField(max_length=20, choices=TypeVehicule.choices, verbose_name=_("Type de véhicule"))
    paiements_acceptes = models.JSONField(default=list, verbose_name=_("Paiements acceptés"))

    statut = models.CharField(max_length=20, choices=Statut.choices, default=Statut.ACTIVE, verbose_name=_("Statut"))

    # Modération
    moderee_par = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
        related_name="annonces_moderees", verbose_name=_("Modérée par")
    )
    date_moderation = models.DateTimeField(null=True, blank=True, verbose_name=_("Date de modération"))
    raison_moderation = models.CharField(max_length=500, blank=True, verbose_name=_("Raison de la modération"))

    # Statistiques
    nombre_vues = models.PositiveIntegerField(default=0, verbose_name=_("Nombre de vues"))
    nombre_demandes = models.PositiveIntegerField(default=0, verbose_name=_("Nombre de demandes"))
    nombre_demandes_acceptees = models.PositiveIntegerField(default=0, verbose_name=_("Demandes acceptées"))
    taux_acceptation = models.DecimalField(
        max_digits=5, decimal_places=2, default=0,
        validators=[MinValueValidator(0), MaxValueValidator(100)], verbose_name=_("Taux d'acceptation (%)")
    )

    class Meta:
        verbose_name = _("Annonce")
        verbose_name_plural = _("Annonces")
        ordering = ["date_depart"]
        indexes = [
            models.Index(fields=["ville_depart", "ville_destination"]),
            models.Index(fields=["date_depart"]),
            models.Index(fields=["statut"]),
            models.Index(fields=["ville_depart", "ville_destination", "date_depart", "statut"]),
        ]

    def __str__(self):
        return f"{self.titre} ({self.ville_depart} → {self.ville_destination})"

    def save(self, *args, **kwargs):
        self.volume_max = (self.longueur_max or 0) * (self.largeur_max or 0) * (self.hauteur_max or 0)
        if not self.date_arrivee_estimee and self.duree_estimee_h and self.date_depart:
            self.date_arrivee_estimee = self.date_depart + timedelta(hours=float(self.duree_estimee_h))
        super().save(*args, **kwargs)

    @property
    def est_active(self):
        return self.statut == self.Statut.ACTIVE and self.date_depart > timezone.now()

    # =========================================================================
    # CAPACITÉ
    # =========================================================================

    def peut_accepter_colis(self, dimensions, poids):
        """
        Vérifie qu'un colis tient dans la capacité de l'annonce.

        `dimensions` est un dict {longueur, largeur, hauteur}; chaque valeur et le poids
        doivent être inférieurs ou égaux aux maximums.
        """
        return (
            Decimal(str(dimensions['longueur'])) <= self.longueur_max and
            Decimal(str(dimensions['largeur'])) <= self.largeur_max and
            Decimal(str(dimensions['hauteur'])) <= self.hauteur_max and
            Decimal(str(poids)) <= self.poids_max
        )

    def accepte_marchandise(self, type_marchandise):
        return type_marchandise in (self.types_marchandise or [])

    # =========================================================================
    # STATISTIQUES
    # =========================================================================

    def incrementer_vues(self):
        Annonce.objects.filter(pk=self.pk).update(nombre_vues=F('nombre_vues') + 1)
        self.refresh_from_db(fields=['nombre_vues'])

    def enregistrer_demande(self):
        Annonce.objects.filter(pk=self.pk).update(nombre_demandes=F('nombre_demandes') + 1)
        self._recalculer_taux()

    def enregistrer_acceptation(self):
        Annonce.objects.filter(pk=self.pk).update(nombre_demandes_acceptees=F('nombre_demandes_acceptees') + 1)
        self._recalculer_taux()

    def _recalculer_taux(self):
        self.refresh_from_db(fields=['nombre_demandes', 'nombre_demandes_acceptees'])
        taux = Decimal(0)
        if self.nombre_demandes:
            taux = Decimal(self.nombre_demandes_acceptees * 100) / Decimal(self.nombre_demandes)
        self.taux_acceptation = min(taux, Decimal(100)).quantize(Decimal('0.01'))
        Annonce.objects.filter(pk=self.pk).update(taux_acceptation=self.taux_acceptation)
