from datetime import time, timedelta
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from clientdesk.demo import DEMO_ACCOUNTS, ensure_demo_client, provision_demo_user
from clientdesk.models import CalendarEvent, Chat, ChatMessage, Client, Component, Invoice, Payment
from clientdesk.progress import after_components_created, after_invoice_created


class Command(BaseCommand):
    help = "Seed the database with the demo accounts and sample client data."

    @transaction.atomic
    def handle(self, *args, **options):
        client = ensure_demo_client()
        for email in DEMO_ACCOUNTS:
            provision_demo_user(email)

        invoice = client.invoices.filter(package_name=client.package_name or 'Starter Package').first()
        if invoice is None:
            invoice = Invoice.objects.create(
                client=client,
                package_name=client.package_name or 'Starter Package',
                amount=Decimal('3500.00'),
            )
            after_invoice_created(invoice)
            Payment.objects.create(
                client=client,
                invoice=invoice,
                amount=Decimal('1500.00'),
                payment_source='Online Transfer',
            )

        if not client.components.exists():
            components = [
                Component.objects.create(client=client, invoice=invoice, name=name, price=price)
                for name, price in (('Logo Design', 'RM 800'), ('Landing Page', 'RM 1500'))
            ]
            after_components_created(components)

        today = timezone.localdate()
        CalendarEvent.objects.get_or_create(
            client=client,
            title='Kick-off meeting',
            defaults={
                'start_date': today + timedelta(days=3),
                'end_date': today + timedelta(days=3),
                'start_time': time(10, 0),
                'end_time': time(11, 0),
                'type': CalendarEvent.Type.MEETING,
            },
        )

        chat, created = Chat.objects.get_or_create(client=client)
        if created:
            ChatMessage.objects.create(
                chat=chat,
                sender=ChatMessage.Sender.ADMIN,
                content='Welcome aboard! Let us know if you have any questions.',
            )

        second, _ = Client.objects.get_or_create(
            email='ahmad.rizal@sentra.com',
            defaults={
                'name': 'Ahmad Rizal',
                'business_name': 'Rizal Trading',
                'status': Client.Status.COMPLETE,
                'package_name': 'Growth Package',
            },
        )
        if not second.invoices.exists():
            paid_invoice = Invoice.objects.create(client=second, package_name='Growth Package', amount=Decimal('5000.00'))
            after_invoice_created(paid_invoice)
            Payment.objects.create(client=second, invoice=paid_invoice, amount=Decimal('5000.00'))

        self.stdout.write(self.style.SUCCESS(f"Demo data ready for {Client.objects.count()} client(s)."))
