"""
Cache invalidation signals
Drop a business's cached reports whenever data feeding them changes
"""
import logging

from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver

from bizsuite.chatbot.models import Conversation
from bizsuite.core.cache_utils import invalidate_reports_cache
from bizsuite.finances.models import Account, Transaction
from bizsuite.storefront.models import Order

logger = logging.getLogger(__name__)


@receiver([post_save, post_delete], sender=Transaction)
@receiver([post_save, post_delete], sender=Account)
@receiver([post_save, post_delete], sender=Order)
@receiver([post_save, post_delete], sender=Conversation)
def invalidate_business_reports(sender, instance, **kwargs):
    logger.debug(f"{sender.__name__} {instance.pk} changed, invalidating reports of business {instance.business_id}")
    invalidate_reports_cache(instance.business_id)
