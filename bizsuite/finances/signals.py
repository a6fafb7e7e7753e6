"""
Keep account balances in step with transactions.

pre_save remembers the account a transaction was on so that moving it
re-syncs both the old and the new account.
"""
import logging

from django.db.models.signals import pre_save, post_save, post_delete
from django.dispatch import receiver

from bizsuite.core.models import Business
from .models import Transaction
from .services import sync_account_balance, ensure_default_account_categories

logger = logging.getLogger(__name__)


@receiver(pre_save, sender=Transaction)
def remember_previous_account(sender, instance, **kwargs):
    instance._previous_account_id = None
    if instance.pk:
        instance._previous_account_id = (
            Transaction.objects.filter(pk=instance.pk).values_list('account_id', flat=True).first()
        )


@receiver(post_save, sender=Transaction)
def sync_balance_on_save(sender, instance, **kwargs):
    sync_account_balance(instance.account_id)
    previous = getattr(instance, '_previous_account_id', None)
    if previous and previous != instance.account_id:
        sync_account_balance(previous)


@receiver(post_delete, sender=Transaction)
def sync_balance_on_delete(sender, instance, **kwargs):
    sync_account_balance(instance.account_id)


@receiver(post_save, sender=Business)
def seed_account_categories(sender, instance, created, raw=False, **kwargs):
    if created and not raw:
        count = ensure_default_account_categories(instance)
        logger.info(f"Seeded {count} account categories for business {instance.pk}")
