from django.conf import settings
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from core.models import TimeStampedModel


class Notification(TimeStampedModel):
    """Notification affichée dans l'application"""

    class Type(models.TextChoices):
        DEMANDE_RECUE = "demande_recue", _("Nouvelle demande")
        DEMANDE_ACCEPTEE = "demande_acceptee", _("Demande acceptée")
        DEMANDE_REFUSEE = "demande_refusee", _("Demande refusée")
        DEMANDE_ANNULEE = "demande_annulee", _("Demande annulée")
        STATUT_MODIFIE = "statut_modifie", _("Statut modifié")
        COLIS_LIVRE = "colis_livre", _("Colis livré")
        LITIGE_SIGNALE = "litige_signale", _("Litige signalé")

    # Destinataire
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications",
        verbose_name=_("Utilisateur")
    )

    # Contenu
    type = models.CharField(max_length=30, choices=Type.choices, verbose_name=_("Type de notification"))
    titre = models.CharField(max_length=200, verbose_name=_("Titre"))
    message = models.TextField(verbose_name=_("Message"))
    lien = models.CharField(max_length=255, blank=True, verbose_name=_("Lien"))

    # Références
    demande = models.ForeignKey(
        "demandes.Demande",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="notifications",
        verbose_name=_("Demande liée")
    )

    lu = models.BooleanField(default=False, verbose_name=_("Lu"))
    lu_at = models.DateTimeField(null=True, blank=True, verbose_name=_("Lu le"))

    class Meta:
        verbose_name = _("Notification")
        verbose_name_plural = _("Notifications")
        ordering = ["-created"]
        indexes = [
            models.Index(fields=["user", "lu"]),
            models.Index(fields=["type"]),
        ]

    def __str__(self):
        return f"{self.titre} - {self.user}"

    def marquer_lue(self):
        if not self.lu:
            self.lu = True
            self.lu_at = timezone.now()
            self.save(update_fields=["lu", "lu_at", "updated"])
