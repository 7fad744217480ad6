from django.db import models


class SoftDeleteManager(models.Manager):
    """Default manager that hides soft-deleted rows. Pair with ``all_objects = models.Manager()``."""

    def get_queryset(self):
        return super().get_queryset().filter(is_deleted=False)
