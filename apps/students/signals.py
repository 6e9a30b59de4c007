"""
Audit logging for the students app.
Lightweight, runs synchronously, never writes to the database.
"""
import logging

from django.db.models.signals import post_save
from django.dispatch import receiver

logger = logging.getLogger(__name__)

AUDITED_MODELS = ['Student', 'Enrollment', 'PromotionLog']


@receiver(post_save)
def log_model_changes_for_auditing(sender, instance, created, **kwargs):
    """
    Log creation and updates of promotion-related records.
    """
    if sender.__name__ not in AUDITED_MODELS:
        return

    action = "created" if created else "updated"

    identifier = getattr(instance, 'pk', 'N/A')
    if hasattr(instance, 'registration_number'):
        identifier = instance.registration_number

    update_fields = kwargs.get('update_fields')
    if update_fields:
        logger.debug("%s %s: %s (fields: %s)", sender.__name__, action, identifier,
                     ', '.join(sorted(update_fields)))
    else:
        logger.debug("%s %s: %s", sender.__name__, action, identifier)
