import uuid

from django.db import models
from django.utils import timezone


class SoftDeleteQuerySet(models.QuerySet):
    """Une suppression en masse marque les lignes au lieu de les effacer."""

    def delete(self):
        now = timezone.now()
        return self.update(is_deleted=True, deleted=now, updated=now)


class SoftDeleteManager(models.Manager.from_queryset(SoftDeleteQuerySet)):
    def get_queryset(self):
        return super().get_queryset().filter(is_deleted=False)


class TimeStampedModel(models.Model):
    """
    Base commune : UUID + horodatage + suppression logique.

    `objects` masque les lignes supprimées ; `all_objects` donne accès à
    l'historique complet (annonces retirées, demandes archivées).
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    created = models.DateTimeField(auto_now_add=True, db_index=True)
    updated = models.DateTimeField(auto_now=True)
    is_deleted = models.BooleanField(default=False, db_index=True)
    deleted = models.DateTimeField(null=True, blank=True)

    objects = SoftDeleteManager()
    all_objects = models.Manager.from_queryset(SoftDeleteQuerySet)()

    class Meta:
        abstract = True

    def delete(self, using=None, keep_parents=False, soft=True):
        if not soft:
            return super().delete(using=using, keep_parents=keep_parents)
        self.is_deleted = True
        self.deleted = timezone.now()
        self.save(update_fields=["is_deleted", "deleted", "updated"])
