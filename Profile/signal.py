import logging

from django.contrib.auth.models import User
from django.db.models.signals import post_save
from django.dispatch import receiver

from .models import profile

logger = logging.getLogger(__name__)


@receiver(post_save, sender=User)
def create_profile(sender, instance, created, **kwargs):
    """Every new user gets a profile row."""
    if not created:
        return
    profile.objects.get_or_create(user_obj=instance, defaults={"full_name": instance.get_full_name()})
    logger.info(f"[PROFILE] Created profile for {instance.username}")
