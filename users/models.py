from decimal import Decimal

from django.db import models
from django.db.models import Avg, F
from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin, BaseUserManager
from django.utils import timezone
from django.utils.translation import gettext_lazy as _
from phonenumber_field.modelfields import PhoneNumberField

from core.models import TimeStampedModel


class Role(models.TextChoices):
    CONDUCTEUR = "conducteur", _("Conducteur")
    EXPEDITEUR = "expediteur", _("Expéditeur")
    ADMIN = "admin", _("Administrateur")


class UserManager(BaseUserManager):
    """Gestionnaire personnalisé pour le modèle User"""

    use_in_migrations = True

    def get_queryset(self):
        return super().get_queryset().filter(is_deleted=False)

    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError(_("L'email est requis"))

        email = self.normalize_email(email).lower()
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)
        extra_fields.setdefault("is_active", True)
        extra_fields.setdefault("role", Role.ADMIN)

        return self.create_user(email, password, **extra_fields)


class User(AbstractBaseUser, PermissionsMixin, TimeStampedModel):
    """Utilisateur de la plateforme: conducteur, expéditeur ou administrateur"""

    Role = Role

    class Statut(models.TextChoices):
        ACTIF = "actif", _("Actif")
        SUSPENDU = "suspendu", _("Suspendu")
        EN_ATTENTE = "en_attente", _("En attente")

    # Informations personnelles
    nom = models.CharField(max_length=50, verbose_name=_("Nom"))
    prenom = models.CharField(max_length=50, verbose_name=_("Prénom"))
    email = models.EmailField(unique=True, verbose_name=_("Adresse email"))
    telephone = PhoneNumberField(blank=True, verbose_name=_("Téléphone"))
    ville = models.CharField(max_length=100, blank=True, verbose_name=_("Ville"))

    # Rôle et statut
    role = models.CharField(max_length=20, choices=Role.choices, verbose_name=_("Rôle"))
    statut = models.CharField(max_length=20, choices=Statut.choices, default=Statut.ACTIF, verbose_name=_("Statut"))
    is_active = models.BooleanField(default=True, verbose_name=_("Compte activé"))
    is_staff = models.BooleanField(default=False, verbose_name=_("Accès administration"))

    # Statistiques
    nombre_annonces = models.PositiveIntegerField(default=0, verbose_name=_("Nombre d'annonces"))
    nombre_demandes_envoyees = models.PositiveIntegerField(default=0, verbose_name=_("Demandes envoyées"))
    nombre_demandes_acceptees = models.PositiveIntegerField(default=0, verbose_name=_("Demandes acceptées"))
    note_moyenne = models.DecimalField(max_digits=3, decimal_places=2, default=0, verbose_name=_("Note moyenne"))
    nombre_evaluations = models.PositiveIntegerField(default=0, verbose_name=_("Nombre d'évaluations"))

    # Préférences
    notifications_email = models.BooleanField(default=True, verbose_name=_("Notifications par email"))

    date_joined = models.DateTimeField(default=timezone.now, verbose_name=_("Date d'inscription"))

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = ["nom", "prenom"]
    objects = UserManager()

    class Meta:
        verbose_name = _("Utilisateur")
        verbose_name_plural = _("Utilisateurs")
        ordering = ["-date_joined"]
        indexes = [
            models.Index(fields=["role"]),
            models.Index(fields=["statut"]),
        ]

    def __str__(self):
        return f"{self.nom_complet} ({self.get_role_display()})"

    @property
    def nom_complet(self):
        return f"{self.prenom} {self.nom}".strip()

    # =========================================================================
    # MÉTHODES DE RÔLE
    # =========================================================================

    def is_conducteur(self):
        return self.role == Role.CONDUCTEUR

    def is_expediteur(self):
        return self.role == Role.EXPEDITEUR

    def is_admin(self):
        return self.role == Role.ADMIN or self.is_superuser

    def is_suspended(self):
        return self.statut == self.Statut.SUSPENDU

    # =========================================================================
    # STATISTIQUES
    # =========================================================================

    def incrementer(self, champ, valeur=1):
        """Incrémente un compteur de statistiques sans perdre les mises à jour concurrentes."""
        User.objects.filter(pk=self.pk).update(**{champ: F(champ) + valeur})
        self.refresh_from_db(fields=[champ])

    def recalculer_note(self):
        """Recalcule la note moyenne à partir des évaluations reçues"""
        stats = self.evaluations_recues.aggregate(moyenne=Avg('note'), total=models.Count('id'))
        self.note_moyenne = Decimal(str(round(stats['moyenne'] or 0, 2)))
        self.nombre_evaluations = stats['total']
        self.save(update_fields=['note_moyenne', 'nombre_evaluations', 'updated'])
