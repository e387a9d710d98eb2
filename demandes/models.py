import secrets
import string
import uuid
from datetime import timedelta

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from annonces.models import Devise, MethodePaiement, TypeMarchandise
from core.models import TimeStampedModel


class Demande(TimeStampedModel):
    """Demande de transport d'un colis sur une annonce"""

    class Statut(models.TextChoices):
        EN_ATTENTE = "en_attente", _("En attente")
        ACCEPTEE = "acceptee", _("Acceptée")
        REFUSEE = "refusee", _("Refusée")
        EN_COURS = "en_cours", _("En cours")
        ENLEVEE = "enlevee", _("Enlevée")
        EN_TRANSIT = "en_transit", _("En transit")
        LIVREE = "livree", _("Livrée")
        ANNULEE = "annulee", _("Annulée")

    class DecisionLitige(models.TextChoices):
        FAVEUR_EXPEDITEUR = "faveur_expediteur", _("En faveur de l'expéditeur")
        FAVEUR_CONDUCTEUR = "faveur_conducteur", _("En faveur du conducteur")
        PARTAGE = "partage", _("Partagé")

    # Relations
    expediteur = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="demandes_envoyees", verbose_name=_("Expéditeur")
    )
    conducteur = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="demandes_recues", verbose_name=_("Conducteur")
    )
    annonce = models.ForeignKey("annonces.Annonce", on_delete=models.PROTECT, related_name="demandes", verbose_name=_("Annonce"))

    statut = models.CharField(max_length=20, choices=Statut.choices, default=Statut.EN_ATTENTE, verbose_name=_("Statut"))
    version = models.PositiveIntegerField(default=0, verbose_name=_("Version"))

    # Colis
    description = models.TextField(max_length=500, verbose_name=_("Description du colis"))
    longueur = models.DecimalField(max_digits=8, decimal_places=2, validators=[MinValueValidator(0.1)], verbose_name=_("Longueur (cm)"))
    largeur = models.DecimalField(max_digits=8, decimal_places=2, validators=[MinValueValidator(0.1)], verbose_name=_("Largeur (cm)"))
    hauteur = models.DecimalField(max_digits=8, decimal_places=2, validators=[MinValueValidator(0.1)], verbose_name=_("Hauteur (cm)"))
    poids = models.DecimalField(max_digits=8, decimal_places=2, validators=[MinValueValidator(0.1)], verbose_name=_("Poids (kg)"))
    volume = models.DecimalField(max_digits=16, decimal_places=2, default=0, editable=False, verbose_name=_("Volume (cm³)"))
    type_marchandise = models.CharField(max_length=30, choices=TypeMarchandise.choices, verbose_name=_("Type de marchandise"))
    valeur_declaree = models.DecimalField(max_digits=10, decimal_places=2, default=0, validators=[MinValueValidator(0)], verbose_name=_("Valeur déclarée"))
    fragile = models.BooleanField(default=False, verbose_name=_("Fragile"))

    # Adresse d'enlèvement
    enlevement_nom = models.CharField(max_length=120, verbose_name=_("Nom (enlèvement)"))
    enlevement_telephone = models.CharField(max_length=30, verbose_name=_("Téléphone (enlèvement)"))
    enlevement_adresse = models.CharField(max_length=255, verbose_name=_("Adresse d'enlèvement"))
    enlevement_ville = models.CharField(max_length=100, verbose_name=_("Ville d'enlèvement"))
    enlevement_instructions = models.CharField(max_length=200, blank=True, verbose_name=_("Instructions (enlèvement)"))

    # Adresse de livraison
    livraison_nom = models.CharField(max_length=120, verbose_name=_("Nom (livraison)"))
    livraison_telephone = models.CharField(max_length=30, verbose_name=_("Téléphone (livraison)"))
    livraison_adresse = models.CharField(max_length=255, verbose_name=_("Adresse de livraison"))
    livraison_ville = models.CharField(max_length=100, verbose_name=_("Ville de livraison"))
    livraison_instructions = models.CharField(max_length=200, blank=True, verbose_name=_("Instructions (livraison)"))

    # Tarification
    montant_propose = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)], verbose_name=_("Montant proposé"))
    montant_accepte = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True, verbose_name=_("Montant accepté"))
    devise = models.CharField(max_length=3, choices=Devise.choices, default=Devise.MAD, verbose_name=_("Devise"))
    methode_paiement = models.CharField(max_length=20, choices=MethodePaiement.choices, verbose_name=_("Méthode de paiement"))
    paiement_effectue = models.BooleanField(default=False, verbose_name=_("Paiement effectué"))

    # Suivi
    numero_suivi = models.CharField(max_length=20, unique=True, null=True, blank=True, verbose_name=_("Numéro de suivi"))
    position_latitude = models.DecimalField(
        max_digits=9, decimal_places=6, null=True, blank=True,
        validators=[MinValueValidator(-90), MaxValueValidator(90)], verbose_name=_("Latitude")
    )
    position_longitude = models.DecimalField(
        max_digits=9, decimal_places=6, null=True, blank=True,
        validators=[MinValueValidator(-180), MaxValueValidator(180)], verbose_name=_("Longitude")
    )
    position_adresse = models.CharField(max_length=255, blank=True, verbose_name=_("Adresse actuelle"))
    position_date = models.DateTimeField(null=True, blank=True, verbose_name=_("Position mise à jour le"))

    # Dates
    date_reponse = models.DateTimeField(null=True, blank=True, verbose_name=_("Date de réponse"))
    date_enlevement_prevue = models.DateTimeField(null=True, blank=True, verbose_name=_("Enlèvement prévu"))
    date_enlevement = models.DateTimeField(null=True, blank=True, verbose_name=_("Date d'enlèvement"))
    date_livraison_prevue = models.DateTimeField(null=True, blank=True, verbose_name=_("Livraison prévue"))
    date_livraison_reelle = models.DateTimeField(null=True, blank=True, verbose_name=_("Livraison effective"))

    # Litige
    litige_signale = models.BooleanField(default=False, verbose_name=_("Litige signalé"))
    litige_motif = models.TextField(max_length=500, blank=True, verbose_name=_("Motif du litige"))
    litige_signale_par = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
        related_name="litiges_signales", verbose_name=_("Litige signalé par")
    )
    litige_date = models.DateTimeField(null=True, blank=True, verbose_name=_("Date du signalement"))
    litige_resolu = models.BooleanField(default=False, verbose_name=_("Litige résolu"))
    litige_resolution = models.TextField(max_length=1000, blank=True, verbose_name=_("Résolution"))
    litige_decision = models.CharField(max_length=20, choices=DecisionLitige.choices, blank=True, verbose_name=_("Décision"))
    litige_date_resolution = models.DateTimeField(null=True, blank=True, verbose_name=_("Date de résolution"))

    class Meta:
        verbose_name = _("Demande")
        verbose_name_plural = _("Demandes")
        ordering = ["-created"]
        indexes = [
            models.Index(fields=["expediteur", "statut"]),
            models.Index(fields=["conducteur", "statut"]),
            models.Index(fields=["annonce"]),
            models.Index(fields=["statut", "created"]),
        ]

    def __str__(self):
        return f"{self.numero_suivi or self.pk} - {self.get_statut_display()}"

    def save(self, *args, **kwargs):
        self.volume = (self.longueur or 0) * (self.largeur or 0) * (self.hauteur or 0)
        super().save(*args, **kwargs)

    # =========================================================================
    # ÉTAT
    # =========================================================================

    @property
    def est_active(self):
        return self.statut in (
            self.Statut.EN_ATTENTE, self.Statut.ACCEPTEE, self.Statut.EN_COURS,
            self.Statut.ENLEVEE, self.Statut.EN_TRANSIT,
        )

    @property
    def en_retard(self):
        if self.date_livraison_prevue and not self.date_livraison_reelle:
            return timezone.now() > self.date_livraison_prevue
        return False

    def est_participant(self, user):
        return user.pk in (self.expediteur_id, self.conducteur_id)

    def autre_participant(self, user):
        return self.conducteur if user.pk == self.expediteur_id else self.expediteur

    def peut_etre_annulee(self, acteur):
        from .workflow import can_transition
        return can_transition(self, self.Statut.ANNULEE, acteur)

    # =========================================================================
    # NUMÉRO DE SUIVI
    # =========================================================================

    @classmethod
    def generer_numero_suivi(cls):
        """
        Génère un numéro de suivi unique
        Format: TC + YYMMDD + 6 caractères alphanumériques majuscules
        """
        prefix = settings.TRANSPORT_CONNECT['TRACKING_PREFIX']
        alphabet = string.ascii_uppercase + string.digits

        for _attempt in range(10):
            date_part = timezone.now().strftime('%y%m%d')
            random_part = ''.join(secrets.choice(alphabet) for _ in range(6))
            numero = f"{prefix}{date_part}{random_part}"

            if not cls.all_objects.filter(numero_suivi=numero).exists():
                return numero

        # Repli sur un UUID après plusieurs collisions
        return f"{prefix}{timezone.now().strftime('%y%m%d')}{uuid.uuid4().hex[:6].upper()}"


class EtapeSuivi(TimeStampedModel):
    """Événement horodaté de l'historique d'une demande (ajout uniquement)"""

    demande = models.ForeignKey(Demande, on_delete=models.CASCADE, related_name="etapes", verbose_name=_("Demande"))
    statut = models.CharField(max_length=20, choices=Demande.Statut.choices, verbose_name=_("Statut"))
    ts = models.DateTimeField(default=timezone.now, db_index=True, verbose_name=_("Horodatage"))
    acteur = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
        related_name="etapes_suivi", verbose_name=_("Acteur")
    )
    commentaire = models.CharField(max_length=500, blank=True, verbose_name=_("Commentaire"))
    lieu = models.CharField(max_length=255, blank=True, verbose_name=_("Lieu"))

    class Meta:
        ordering = ["ts"]
        verbose_name = _("Étape de suivi")
        verbose_name_plural = _("Étapes de suivi")
        indexes = [
            models.Index(fields=["demande", "ts"]),
        ]

    def __str__(self):
        return f"{self.demande_id} - {self.get_statut_display()} ({self.ts:%d/%m/%Y %H:%M})"

    @classmethod
    def enregistrer(cls, demande, statut, acteur, commentaire="", lieu=""):
        """Ajoute une étape dont l'horodatage est strictement postérieur à la précédente."""
        ts = timezone.now()
        derniere = cls.objects.filter(demande=demande).order_by('-ts').values_list('ts', flat=True).first()
        if derniere is not None and ts <= derniere:
            ts = derniere + timedelta(microseconds=1)

        return cls.objects.create(
            demande=demande,
            statut=statut,
            ts=ts,
            acteur=acteur,
            commentaire=commentaire,
            lieu=lieu,
        )


class Communication(TimeStampedModel):
    """Message échangé entre l'expéditeur et le conducteur d'une demande"""

    class Type(models.TextChoices):
        MESSAGE = "message", _("Message")
        NOTIFICATION = "notification", _("Notification")
        ALERTE = "alerte", _("Alerte")

    demande = models.ForeignKey(Demande, on_delete=models.CASCADE, related_name="communications", verbose_name=_("Demande"))
    auteur = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="communications", verbose_name=_("Auteur")
    )
    message = models.TextField(max_length=1000, verbose_name=_("Message"))
    type = models.CharField(max_length=20, choices=Type.choices, default=Type.MESSAGE, verbose_name=_("Type"))
    lu = models.BooleanField(default=False, verbose_name=_("Lu"))

    class Meta:
        ordering = ["created"]
        verbose_name = _("Communication")
        verbose_name_plural = _("Communications")

    def __str__(self):
        return f"{self.auteur} - {self.message[:50]}"
