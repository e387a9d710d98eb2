from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils.translation import gettext_lazy as _

from core.models import TimeStampedModel


class Evaluation(TimeStampedModel):
    """Évaluation mutuelle après livraison"""

    class Type(models.TextChoices):
        EXPEDITEUR_VERS_CONDUCTEUR = "expediteur_vers_conducteur", _("Expéditeur vers conducteur")
        CONDUCTEUR_VERS_EXPEDITEUR = "conducteur_vers_expediteur", _("Conducteur vers expéditeur")

    demande = models.ForeignKey("demandes.Demande", on_delete=models.CASCADE, related_name="evaluations", verbose_name=_("Demande"))
    evaluateur = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="evaluations_donnees", verbose_name=_("Évaluateur")
    )
    evalue = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="evaluations_recues", verbose_name=_("Évalué")
    )
    type_evaluation = models.CharField(max_length=30, choices=Type.choices, verbose_name=_("Type d'évaluation"))
    note = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(5)], verbose_name=_("Note")
    )
    commentaire = models.TextField(max_length=500, blank=True, verbose_name=_("Commentaire"))
    recommande = models.BooleanField(default=True, verbose_name=_("Recommandé"))

    class Meta:
        verbose_name = _("Évaluation")
        verbose_name_plural = _("Évaluations")
        ordering = ["-created"]
        constraints = [
            models.UniqueConstraint(fields=["demande", "evaluateur"], name="evaluation_unique_par_demande"),
        ]

    def __str__(self):
        return f"{self.evaluateur} → {self.evalue}: {self.note}/5"
