from django.db.models import F
from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from .activity import touch_client_activity
from .models import (
    CalendarEvent,
    Chat,
    ChatMessage,
    Invoice,
    Payment,
    ProgressStep,
    recalculate_client_totals,
    recalculate_invoice_totals,
)


@receiver(post_save, sender=Payment)
@receiver(post_delete, sender=Payment)
def refresh_totals_on_payment_change(sender, instance: Payment, **kwargs):
    """Payments roll up into the invoice first, then into the client."""
    if kwargs.get('raw'):
        return
    if instance.invoice_id:
        recalculate_invoice_totals(instance.invoice_id)
    if instance.client_id:
        recalculate_client_totals(instance.client_id)
        touch_client_activity(instance.client_id)


@receiver(post_save, sender=Invoice)
@receiver(post_delete, sender=Invoice)
def refresh_client_totals_on_invoice_change(sender, instance: Invoice, **kwargs):
    if kwargs.get('raw'):
        return
    if instance.client_id:
        recalculate_client_totals(instance.client_id)
        touch_client_activity(instance.client_id)


@receiver(post_save, sender=ProgressStep)
@receiver(post_save, sender=CalendarEvent)
def touch_client_on_schedule_change(sender, instance, **kwargs):
    if kwargs.get('raw'):
        return
    touch_client_activity(instance.client_id)


@receiver(post_save, sender=ChatMessage)
def update_chat_on_new_message(sender, instance: ChatMessage, created: bool, **kwargs):
    """Keep the chat preview and the unread counter in step with new messages."""
    if kwargs.get('raw') or not created:
        return
    updates = {
        'last_message': instance.content,
        'last_message_at': instance.created_at,
    }
    if instance.sender == ChatMessage.Sender.CLIENT:
        updates['unread_count'] = F('unread_count') + 1
    Chat.objects.filter(pk=instance.chat_id).update(**updates)
