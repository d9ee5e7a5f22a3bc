"""Signals keeping invoice totals in step with recorded payments."""
from __future__ import annotations

from django.db import transaction
from django.db.models.signals import post_delete, post_save, pre_save
from django.dispatch import receiver

from finance.models import Invoice, Payment


def _resync(invoice_id) -> None:
    invoice = Invoice.objects.select_for_update().filter(pk=invoice_id).first()
    if invoice is not None:
        invoice.sync_payments()


@receiver(pre_save, sender=Payment)
def remember_previous_invoice(sender, instance: Payment, **kwargs):
    instance._previous_invoice_id = None
    if instance.pk:
        instance._previous_invoice_id = (
            Payment.objects.filter(pk=instance.pk).values_list("invoice_id", flat=True).first()
        )


@receiver(post_save, sender=Payment)
def recompute_invoice_after_save(sender, instance: Payment, **kwargs):
    with transaction.atomic():
        _resync(instance.invoice_id)
        previous = getattr(instance, "_previous_invoice_id", None)
        if previous and previous != instance.invoice_id:
            _resync(previous)


@receiver(post_delete, sender=Payment)
def recompute_invoice_after_delete(sender, instance: Payment, **kwargs):
    with transaction.atomic():
        _resync(instance.invoice_id)
