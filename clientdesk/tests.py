from datetime import timedelta
from decimal import Decimal
from io import StringIO
from unittest import mock

from django.core.management import call_command
from django.db import IntegrityError, transaction
from django.test import TestCase, override_settings
from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APITestCase

from .demo import provision_demo_user
from .models import (
    Chat,
    ChatMessage,
    Client,
    Component,
    Invoice,
    Payment,
    ProgressStep,
    Tag,
    User,
    make_row_id,
)
from .permissions import get_permissions_for_user
from .progress import sync_progress_steps


def make_client(name='Acme', email=None, **extra):
    return Client.objects.create(
        name=name,
        business_name=f"{name} Sdn Bhd",
        email=email or f"{name.lower().replace(' ', '.')}@example.com",
        **extra,
    )


class RollupTests(TestCase):
    def setUp(self):
        self.acme = make_client('Acme')
        self.invoice = Invoice.objects.create(client=self.acme, package_name='Gold', amount=Decimal('1000.00'))

    def test_new_invoice_is_pending_with_full_due(self):
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.paid, Decimal('0'))
        self.assertEqual(self.invoice.due, Decimal('1000.00'))
        self.assertEqual(self.invoice.status, Invoice.Status.PENDING)
        self.acme.refresh_from_db()
        self.assertEqual(self.acme.total_sales, Decimal('1000.00'))
        self.assertEqual(self.acme.balance, Decimal('1000.00'))
        self.assertEqual(self.acme.invoice_count, 1)

    def test_partial_then_full_payment(self):
        Payment.objects.create(invoice=self.invoice, amount=Decimal('400.00'))
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.paid, Decimal('400.00'))
        self.assertEqual(self.invoice.due, Decimal('600.00'))
        self.assertEqual(self.invoice.status, Invoice.Status.PARTIAL)

        Payment.objects.create(invoice=self.invoice, amount=Decimal('600.00'))
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.due, Decimal('0'))
        self.assertEqual(self.invoice.status, Invoice.Status.PAID)

        self.acme.refresh_from_db()
        self.assertEqual(self.acme.total_collection, Decimal('1000.00'))
        self.assertEqual(self.acme.balance, Decimal('0'))

    def test_only_paid_payments_count(self):
        payment = Payment.objects.create(invoice=self.invoice, amount=Decimal('250.00'))
        Payment.objects.create(invoice=self.invoice, amount=Decimal('100.00'), status=Payment.Status.PENDING)
        self.assertEqual(self.invoice.refresh_totals(), Invoice.Status.PARTIAL)
        self.assertEqual(self.invoice.paid, Decimal('250.00'))

        payment.status = Payment.Status.REFUNDED
        payment.save()
        self.assertEqual(self.invoice.refresh_totals(), Invoice.Status.PENDING)
        self.assertEqual(self.invoice.due, Decimal('1000.00'))

    def test_payment_delete_recomputes(self):
        payment = Payment.objects.create(invoice=self.invoice, amount=Decimal('1000.00'))
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.status, Invoice.Status.PAID)
        payment.delete()
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.status, Invoice.Status.PENDING)
        self.acme.refresh_from_db()
        self.assertEqual(self.acme.total_collection, Decimal('0'))

    def test_amount_edit_keeps_due_in_step(self):
        Payment.objects.create(invoice=self.invoice, amount=Decimal('400.00'))
        invoice = Invoice.objects.get(pk=self.invoice.pk)
        invoice.amount = Decimal('500.00')
        invoice.save()
        invoice.refresh_from_db()
        self.assertEqual(invoice.due, Decimal('100.00'))
        self.assertEqual(invoice.status, Invoice.Status.PARTIAL)
        self.acme.refresh_from_db()
        self.assertEqual(self.acme.total_sales, Decimal('500.00'))
        self.assertEqual(self.acme.balance, Decimal('100.00'))

    def test_refresh_totals_repairs_stale_rollup(self):
        Payment.objects.create(invoice=self.invoice, amount=Decimal('300.00'))
        Client.objects.filter(pk=self.acme.pk).update(total_collection=0, balance=0, invoice_count=0)
        self.acme.refresh_totals()
        self.assertEqual(self.acme.total_collection, Decimal('300.00'))
        self.assertEqual(self.acme.balance, Decimal('700.00'))
        self.assertEqual(self.acme.invoice_count, 1)

    def test_payment_takes_client_from_invoice(self):
        payment = Payment.objects.create(invoice=self.invoice, amount=Decimal('10.00'))
        self.assertEqual(payment.client_id, self.acme.pk)

    def test_invoice_delete_drops_payments_and_detaches_components(self):
        Payment.objects.create(invoice=self.invoice, amount=Decimal('400.00'))
        component = Component.objects.create(client=self.acme, invoice=self.invoice, name='Logo')
        self.invoice.delete()
        component.refresh_from_db()
        self.assertIsNone(component.invoice_id)
        self.assertFalse(Payment.objects.exists())
        self.acme.refresh_from_db()
        self.assertEqual(self.acme.total_sales, Decimal('0'))
        self.assertEqual(self.acme.invoice_count, 0)

    def test_client_delete_cascades(self):
        Payment.objects.create(invoice=self.invoice, amount=Decimal('400.00'))
        Component.objects.create(client=self.acme, invoice=self.invoice, name='Logo')
        ProgressStep.objects.create(client=self.acme, title='Kick-off', deadline=timezone.now())
        chat = Chat.objects.create(client=self.acme)
        ChatMessage.objects.create(chat=chat, sender=ChatMessage.Sender.CLIENT, content='Hello')

        self.acme.delete()

        self.assertFalse(Invoice.objects.exists())
        self.assertFalse(Payment.objects.exists())
        self.assertFalse(Component.objects.exists())
        self.assertFalse(ProgressStep.objects.exists())
        self.assertFalse(ChatMessage.objects.exists())


class ModelRuleTests(TestCase):
    def test_check_constraints_reject_unknown_values(self):
        with self.assertRaises(IntegrityError), transaction.atomic():
            make_client('Bogus', status='Unknown')
        with self.assertRaises(IntegrityError), transaction.atomic():
            User.objects.create_user(username='boss', password='x', role='Boss')

    def test_row_ids_are_unique_and_prefixed(self):
        ids = {make_row_id('INV') for _ in range(200)}
        self.assertEqual(len(ids), 200)
        self.assertTrue(all(value.startswith('INV-') for value in ids))
        invoice = Invoice.objects.create(client=make_client(), package_name='Gold', amount=Decimal('1'))
        self.assertTrue(invoice.pk.startswith('INV-'))

    def test_inactive_status_disables_login(self):
        user = User.objects.create_user(username='gone', password='test-pass-123')
        user.status = User.Status.INACTIVE
        user.save(update_fields=['status'])
        user.refresh_from_db()
        self.assertFalse(user.is_active)

    def test_progress_step_completion_stamps_date(self):
        step = ProgressStep.objects.create(client=make_client(), title='Design', deadline=timezone.now())
        step.completed = True
        step.save()
        self.assertEqual(step.completed_date, timezone.localdate())
        step.completed = False
        step.save()
        self.assertIsNone(step.completed_date)

    def test_chat_defaults_from_client(self):
        chat = Chat.objects.create(client=make_client('Nur Aina'))
        self.assertEqual(chat.client_name, 'Nur Aina')
        self.assertEqual(chat.avatar, 'NA')

    def test_client_message_updates_chat_preview(self):
        chat = Chat.objects.create(client=make_client())
        ChatMessage.objects.create(chat=chat, sender=ChatMessage.Sender.CLIENT, content='Any update?')
        ChatMessage.objects.create(chat=chat, sender=ChatMessage.Sender.TEAM, content='On it.')
        chat.refresh_from_db()
        self.assertEqual(chat.last_message, 'On it.')
        self.assertEqual(chat.unread_count, 1)
        self.assertIsNotNone(chat.last_message_at)


class PermissionMapTests(TestCase):
    def test_role_defaults_apply_when_list_is_empty(self):
        team = User.objects.create_user(username='team', password='x', role=User.Roles.TEAM)
        perms = get_permissions_for_user(team)
        self.assertTrue(perms['clients'])
        self.assertTrue(perms['chat'])
        self.assertFalse(perms['users'])

    def test_all_grants_every_module(self):
        admin = User.objects.create_user(
            username='root', password='x', role=User.Roles.SUPER_ADMIN, permissions=['all']
        )
        self.assertTrue(all(get_permissions_for_user(admin).values()))

    def test_client_role_gets_client_modules(self):
        client_user = User.objects.create_user(
            username='c', password='x', role=User.Roles.CLIENT_ADMIN, client=make_client()
        )
        perms = get_permissions_for_user(client_user)
        self.assertTrue(perms['client_dashboard'])
        self.assertFalse(perms['clients'])


class ProgressSyncTests(TestCase):
    def test_sync_creates_missing_steps_once(self):
        acme = make_client()
        Invoice.objects.create(client=acme, package_name='Gold', amount=Decimal('100'))
        Component.objects.create(client=acme, name='Website')
        self.assertEqual(sync_progress_steps(acme), 2)
        self.assertEqual(sync_progress_steps(acme), 0)

        step = ProgressStep.objects.get(client=acme, title='Gold - Package Setup')
        self.assertTrue(step.important)
        self.assertEqual(step.description, 'Complete the setup and delivery of Gold package')
        component_step = ProgressStep.objects.get(client=acme, title='Website')
        self.assertFalse(component_step.important)

    def test_sync_tolerates_duplicate_step_titles(self):
        acme = make_client()
        Invoice.objects.create(client=acme, package_name='Gold', amount=Decimal('100'))
        Component.objects.create(client=acme, name='Logo')
        for title in ('Logo', 'Logo', 'Gold - Package Setup', 'Gold - Package Setup'):
            ProgressStep.objects.create(client=acme, title=title, deadline=timezone.now())
        self.assertEqual(sync_progress_steps(acme), 0)
        self.assertEqual(ProgressStep.objects.filter(client=acme).count(), 4)

    def test_management_command_limits_to_one_client(self):
        acme = make_client('Acme')
        other = make_client('Other')
        Component.objects.create(client=acme, name='Logo')
        Component.objects.create(client=other, name='Logo')
        out = StringIO()
        call_command('sync_progress_steps', client=acme.pk, stdout=out)
        self.assertIn('Created 1 progress step(s).', out.getvalue())
        self.assertFalse(ProgressStep.objects.filter(client=other).exists())

    def test_seed_demo_creates_accounts_and_rollups(self):
        call_command('seed_demo', stdout=StringIO())
        self.assertEqual(User.objects.filter(email__endswith='@sentra.com').count(), 3)
        client_user = User.objects.get(email='client@sentra.com')
        self.assertEqual(client_user.role, User.Roles.CLIENT_ADMIN)
        invoice = client_user.client.invoices.get()
        self.assertEqual(invoice.status, Invoice.Status.PARTIAL)
        self.assertTrue(client_user.check_password('password123'))


class ApiTestCase(APITestCase):
    def setUp(self):
        self.password = 'test-pass-123'
        self.acme = make_client('Acme')
        self.other = make_client('Other')
        self.admin = User.objects.create_user(
            username='admin',
            email='admin@example.com',
            password=self.password,
            role=User.Roles.SUPER_ADMIN,
            permissions=['all'],
        )
        self.team = User.objects.create_user(
            username='team', email='team@example.com', password=self.password, role=User.Roles.TEAM
        )
        self.client_user = User.objects.create_user(
            username='acme-owner',
            email='owner@acme.test',
            password=self.password,
            role=User.Roles.CLIENT_ADMIN,
            client=self.acme,
        )


class InvoiceApiTests(ApiTestCase):
    def test_create_invoice_adds_tag_and_setup_step(self):
        self.client.force_authenticate(user=self.team)
        resp = self.client.post(
            reverse('invoice-list'),
            {'client': self.acme.pk, 'package_name': 'Gold', 'amount': '1200.00'},
            format='json',
        )
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(Decimal(resp.data['due']), Decimal('1200.00'))
        self.assertEqual(resp.data['status'], Invoice.Status.PENDING)
        self.assertTrue(Tag.objects.filter(name='Gold', color='#3B82F6').exists())
        step = ProgressStep.objects.get(client=self.acme, title='Gold - Package Setup')
        self.assertTrue(step.important)
        self.assertGreater(step.deadline, timezone.now() + timedelta(days=59))

        resp = self.client.post(
            reverse('invoice-list'),
            {'client': self.acme.pk, 'package_name': 'Gold', 'amount': '300.00'},
            format='json',
        )
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(ProgressStep.objects.filter(client=self.acme).count(), 1)

    def test_secondary_write_failure_is_logged_not_raised(self):
        self.client.force_authenticate(user=self.team)
        with mock.patch('clientdesk.progress.ensure_package_tag', side_effect=RuntimeError('boom')):
            with self.assertLogs('clientdesk.progress', level='ERROR'):
                resp = self.client.post(
                    reverse('invoice-list'),
                    {'client': self.acme.pk, 'package_name': 'Silver', 'amount': '50.00'},
                    format='json',
                )
        self.assertEqual(resp.status_code, 201)
        self.assertFalse(Tag.objects.filter(name='Silver').exists())
        self.assertTrue(ProgressStep.objects.filter(title='Silver - Package Setup').exists())

    def test_detail_route_accepts_text_keys(self):
        invoice = Invoice.objects.create(client=self.acme, package_name='Gold', amount=Decimal('100'))
        Payment.objects.create(invoice=invoice, amount=Decimal('40'))
        self.client.force_authenticate(user=self.team)
        resp = self.client.get(reverse('invoice-detail', args=[invoice.pk]))
        self.assertEqual(resp.status_code, 200)
        resp = self.client.get(reverse('invoice-payments', args=[invoice.pk]))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(len(resp.data), 1)

    def test_computed_fields_are_read_only(self):
        invoice = Invoice.objects.create(client=self.acme, package_name='Gold', amount=Decimal('100'))
        self.client.force_authenticate(user=self.team)
        resp = self.client.patch(
            reverse('invoice-detail', args=[invoice.pk]),
            {'paid': '100.00', 'status': 'Paid'},
            format='json',
        )
        self.assertEqual(resp.status_code, 200)
        invoice.refresh_from_db()
        self.assertEqual(invoice.status, Invoice.Status.PENDING)

    def test_payment_validation(self):
        invoice = Invoice.objects.create(client=self.acme, package_name='Gold', amount=Decimal('100'))
        self.client.force_authenticate(user=self.team)
        resp = self.client.post(reverse('payment-list'), {'invoice': invoice.pk, 'amount': '0'}, format='json')
        self.assertEqual(resp.status_code, 400)
        self.assertIn('amount', resp.data)

        resp = self.client.post(
            reverse('payment-list'),
            {'invoice': invoice.pk, 'client': self.other.pk, 'amount': '10.00'},
            format='json',
        )
        self.assertEqual(resp.status_code, 400)

        resp = self.client.post(reverse('payment-list'), {'invoice': invoice.pk, 'amount': '25.00'}, format='json')
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.data['client'], self.acme.pk)
        invoice.refresh_from_db()
        self.assertEqual(invoice.due, Decimal('75.00'))

    def test_calendar_event_cannot_end_before_start(self):
        self.client.force_authenticate(user=self.team)
        today = timezone.localdate()
        resp = self.client.post(
            reverse('calendar-event-list'),
            {
                'client': self.acme.pk,
                'title': 'Review',
                'start_date': today.isoformat(),
                'end_date': (today - timedelta(days=1)).isoformat(),
                'start_time': '10:00',
                'end_time': '11:00',
            },
            format='json',
        )
        self.assertEqual(resp.status_code, 400)
        self.assertIn('end_date', resp.data)


class ComponentAndStepApiTests(ApiTestCase):
    def test_bulk_components_create_steps(self):
        self.client.force_authenticate(user=self.team)
        resp = self.client.post(
            reverse('component-bulk'),
            {'client': self.acme.pk, 'components': [{'name': 'SEO'}, {'name': 'Hosting', 'price': 'RM 300'}]},
            format='json',
        )
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(len(resp.data), 2)
        self.assertEqual(Component.objects.get(name='SEO').price, 'RM 0')
        step = ProgressStep.objects.get(client=self.acme, title='Hosting')
        self.assertFalse(step.important)
        self.assertEqual(step.description, 'Complete the Hosting component')

    def test_sync_action_reports_created_count(self):
        Component.objects.create(client=self.acme, name='Logo')
        self.client.force_authenticate(user=self.team)
        resp = self.client.post(reverse('client-sync-progress-steps', args=[self.acme.pk]))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data['created'], 1)
        self.assertEqual(len(resp.data['progress_steps']), 1)

    def test_bulk_components_skip_titles_already_duplicated(self):
        ProgressStep.objects.create(client=self.acme, title='Logo', deadline=timezone.now())
        ProgressStep.objects.create(client=self.acme, title='Logo', deadline=timezone.now())
        self.client.force_authenticate(user=self.team)
        with self.assertNoLogs('clientdesk.progress', level='ERROR'):
            resp = self.client.post(
                reverse('component-bulk'),
                {'client': self.acme.pk, 'components': [{'name': 'Logo'}]},
                format='json',
            )
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(ProgressStep.objects.filter(client=self.acme, title='Logo').count(), 2)

        resp = self.client.post(reverse('client-sync-progress-steps', args=[self.acme.pk]))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data['created'], 0)

    def test_blank_component_price_defaults(self):
        self.client.force_authenticate(user=self.team)
        resp = self.client.post(
            reverse('component-list'),
            {'client': self.acme.pk, 'name': 'Domain', 'price': ''},
            format='json',
        )
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.data['price'], 'RM 0')

        resp = self.client.post(
            reverse('component-bulk'),
            {'client': self.acme.pk, 'components': [{'name': 'Email', 'price': ''}]},
            format='json',
        )
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(Component.objects.get(name='Email').price, 'RM 0')

    def test_comment_and_toggle(self):
        step = ProgressStep.objects.create(client=self.acme, title='Design', deadline=timezone.now())
        self.client.force_authenticate(user=self.team)
        resp = self.client.post(reverse('progress-step-add-comment', args=[step.pk]), {'text': 'Drafts sent'})
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.data['username'], self.team.display_name)

        resp = self.client.post(reverse('progress-step-toggle-complete', args=[step.pk]))
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.data['completed'])
        step.refresh_from_db()
        self.assertEqual(len(step.comments), 1)
        self.assertEqual(step.completed_date, timezone.localdate())


class AccessScopeTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.own_invoice = Invoice.objects.create(client=self.acme, package_name='Gold', amount=Decimal('100'))
        self.foreign_invoice = Invoice.objects.create(client=self.other, package_name='Gold', amount=Decimal('900'))

    def test_client_user_sees_only_own_rows(self):
        self.client.force_authenticate(user=self.client_user)
        resp = self.client.get(reverse('invoice-list'))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual([row['id'] for row in resp.data], [self.own_invoice.pk])

        resp = self.client.get(reverse('invoice-detail', args=[self.foreign_invoice.pk]))
        self.assertEqual(resp.status_code, 404)

        resp = self.client.get(reverse('client-list'))
        self.assertEqual([row['id'] for row in resp.data], [self.acme.pk])

    def test_client_user_cannot_write_business_tables(self):
        self.client.force_authenticate(user=self.client_user)
        resp = self.client.post(
            reverse('invoice-list'),
            {'client': self.acme.pk, 'package_name': 'Gold', 'amount': '10.00'},
            format='json',
        )
        self.assertEqual(resp.status_code, 403)
        resp = self.client.delete(reverse('invoice-detail', args=[self.own_invoice.pk]))
        self.assertEqual(resp.status_code, 403)
        self.assertTrue(Invoice.objects.filter(pk=self.own_invoice.pk).exists())

    def test_client_user_reads_tags_but_cannot_create(self):
        Tag.objects.create(name='VIP')
        self.client.force_authenticate(user=self.client_user)
        resp = self.client.get(reverse('tag-list'))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(len(resp.data), 1)
        resp = self.client.post(reverse('tag-list'), {'name': 'Hacked'}, format='json')
        self.assertEqual(resp.status_code, 403)

    def test_client_user_payments_and_steps_are_scoped(self):
        own_payment = Payment.objects.create(invoice=self.own_invoice, amount=Decimal('10'))
        foreign_payment = Payment.objects.create(invoice=self.foreign_invoice, amount=Decimal('20'))
        own_step = ProgressStep.objects.create(client=self.acme, title='Design', deadline=timezone.now())
        foreign_step = ProgressStep.objects.create(client=self.other, title='Design', deadline=timezone.now())
        self.client.force_authenticate(user=self.client_user)

        resp = self.client.get(reverse('payment-list'))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual([row['id'] for row in resp.data], [own_payment.pk])
        resp = self.client.get(reverse('payment-detail', args=[own_payment.pk]))
        self.assertEqual(resp.status_code, 200)
        resp = self.client.get(reverse('payment-detail', args=[foreign_payment.pk]))
        self.assertEqual(resp.status_code, 404)

        resp = self.client.get(reverse('progress-step-list'))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual([row['id'] for row in resp.data], [own_step.pk])
        resp = self.client.get(reverse('progress-step-detail', args=[foreign_step.pk]))
        self.assertEqual(resp.status_code, 404)

    def test_client_user_cannot_write_payments_or_steps(self):
        step = ProgressStep.objects.create(client=self.acme, title='Design', deadline=timezone.now())
        self.client.force_authenticate(user=self.client_user)

        resp = self.client.post(
            reverse('payment-list'),
            {'invoice': self.own_invoice.pk, 'amount': '100.00'},
            format='json',
        )
        self.assertEqual(resp.status_code, 403)
        self.assertFalse(Payment.objects.exists())

        resp = self.client.post(
            reverse('progress-step-list'),
            {'client': self.acme.pk, 'title': 'Launch', 'deadline': timezone.now().isoformat()},
            format='json',
        )
        self.assertEqual(resp.status_code, 403)
        resp = self.client.patch(reverse('progress-step-detail', args=[step.pk]), {'completed': True}, format='json')
        self.assertEqual(resp.status_code, 403)
        step.refresh_from_db()
        self.assertFalse(step.completed)

        resp = self.client.post(reverse('component-list'), {'client': self.acme.pk, 'name': 'SEO'}, format='json')
        self.assertEqual(resp.status_code, 403)

    def test_team_sees_everything(self):
        self.client.force_authenticate(user=self.team)
        resp = self.client.get(reverse('invoice-list'))
        self.assertEqual(len(resp.data), 2)

    def test_clients_filter_by_tag(self):
        self.acme.tags = ['VIP', 'Gold']
        self.acme.save()
        self.client.force_authenticate(user=self.team)
        resp = self.client.get(reverse('client-list'), {'tag': 'VIP'})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual([row['id'] for row in resp.data], [self.acme.pk])
        resp = self.client.get(reverse('client-list'), {'tag': 'VI'})
        self.assertEqual(resp.data, [])

    def test_anonymous_is_rejected(self):
        resp = self.client.get(reverse('tag-list'))
        self.assertEqual(resp.status_code, 401)

    def test_dashboard_totals_follow_scope(self):
        self.client.force_authenticate(user=self.client_user)
        resp = self.client.get(reverse('dashboard'))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(Decimal(resp.data['total_sales']), Decimal('100'))
        self.assertEqual(resp.data['client_count'], 1)

        self.client.force_authenticate(user=self.team)
        resp = self.client.get(reverse('dashboard'))
        self.assertEqual(Decimal(resp.data['total_sales']), Decimal('1000'))
        self.assertEqual(Decimal(resp.data['total_balance']), Decimal('1000'))


class ChatApiTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.chat = Chat.objects.create(client=self.acme)
        self.foreign_chat = Chat.objects.create(client=self.other)

    def test_client_user_posts_to_own_chat(self):
        self.client.force_authenticate(user=self.client_user)
        resp = self.client.post(
            reverse('chat-message-list'),
            {'chat': self.chat.pk, 'content': 'Is the logo ready?'},
            format='json',
        )
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.data['sender'], ChatMessage.Sender.CLIENT)
        self.chat.refresh_from_db()
        self.assertEqual(self.chat.unread_count, 1)
        self.assertEqual(self.chat.last_message, 'Is the logo ready?')

    def test_client_user_cannot_touch_other_chats(self):
        self.client.force_authenticate(user=self.client_user)
        resp = self.client.post(
            reverse('chat-message-list'),
            {'chat': self.foreign_chat.pk, 'content': 'Hi'},
            format='json',
        )
        self.assertEqual(resp.status_code, 403)
        resp = self.client.get(reverse('chat-detail', args=[self.foreign_chat.pk]))
        self.assertEqual(resp.status_code, 404)
        resp = self.client.get(reverse('chat-list'))
        self.assertEqual([row['id'] for row in resp.data], [self.chat.pk])

    def test_staff_reply_and_mark_read(self):
        ChatMessage.objects.create(chat=self.chat, sender=ChatMessage.Sender.CLIENT, content='Hello')
        self.client.force_authenticate(user=self.team)
        resp = self.client.post(reverse('chat-messages', args=[self.chat.pk]), {'content': 'Hi there'}, format='json')
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.data['sender'], ChatMessage.Sender.TEAM)

        resp = self.client.get(reverse('chat-messages', args=[self.chat.pk]))
        self.assertEqual([row['content'] for row in resp.data], ['Hello', 'Hi there'])

        resp = self.client.post(reverse('chat-mark-read', args=[self.chat.pk]))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data['unread_count'], 0)

    def test_admin_messages_are_tagged_admin(self):
        self.client.force_authenticate(user=self.admin)
        resp = self.client.post(reverse('chat-messages', args=[self.chat.pk]), {'content': 'Welcome'}, format='json')
        self.assertEqual(resp.data['sender'], ChatMessage.Sender.ADMIN)


class UserApiTests(ApiTestCase):
    def test_only_super_admin_lists_users(self):
        self.client.force_authenticate(user=self.team)
        self.assertEqual(self.client.get(reverse('user-list')).status_code, 403)
        self.assertEqual(self.client.get(reverse('user-detail', args=[self.team.pk])).status_code, 200)
        self.assertEqual(self.client.get(reverse('user-detail', args=[self.admin.pk])).status_code, 404)

        self.client.force_authenticate(user=self.admin)
        resp = self.client.get(reverse('user-list'))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(len(resp.data), 3)

    def test_register_is_super_admin_only(self):
        payload = {'email': 'new@sentra.com', 'password': 'secret-pass-1'}
        self.client.force_authenticate(user=self.team)
        self.assertEqual(self.client.post(reverse('register'), payload, format='json').status_code, 403)

        self.client.force_authenticate(user=self.admin)
        resp = self.client.post(reverse('register'), payload, format='json')
        self.assertEqual(resp.status_code, 201)
        user = User.objects.get(email='new@sentra.com')
        self.assertEqual(user.name, 'new@sentra.com')
        self.assertEqual(user.username, 'new@sentra.com')
        self.assertEqual(user.role, User.Roles.TEAM)
        self.assertEqual(user.permissions, ['clients', 'calendar', 'chat', 'reports', 'dashboard'])
        self.assertTrue(user.check_password('secret-pass-1'))

    def test_client_role_requires_client(self):
        self.client.force_authenticate(user=self.admin)
        resp = self.client.post(
            reverse('user-list'),
            {'email': 'staff@acme.test', 'role': User.Roles.CLIENT_TEAM},
            format='json',
        )
        self.assertEqual(resp.status_code, 400)
        self.assertIn('client', resp.data)

    def test_me_returns_profile_and_updates_name(self):
        self.client.force_authenticate(user=self.client_user)
        resp = self.client.get(reverse('me'))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data['user']['client'], self.acme.pk)
        self.assertTrue(resp.data['permissions']['client_messages'])

        resp = self.client.patch(reverse('me'), {'name': 'Aina', 'role': User.Roles.SUPER_ADMIN}, format='json')
        self.assertEqual(resp.status_code, 200)
        self.client_user.refresh_from_db()
        self.assertEqual(self.client_user.name, 'Aina')
        self.assertEqual(self.client_user.role, User.Roles.CLIENT_ADMIN)


class AuthApiTests(ApiTestCase):
    def test_sign_in_by_email_and_logout(self):
        resp = self.client.post(
            reverse('token_obtain_pair'),
            {'username': 'team@example.com', 'password': self.password},
            format='json',
        )
        self.assertEqual(resp.status_code, 200)
        refresh = resp.data['refresh']
        self.team.refresh_from_db()
        self.assertIsNotNone(self.team.last_login)

        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {resp.data['access']}")
        resp = self.client.post(reverse('logout'), {'refresh': refresh}, format='json')
        self.assertEqual(resp.status_code, 205)

        resp = self.client.post(reverse('token_refresh'), {'refresh': refresh}, format='json')
        self.assertEqual(resp.status_code, 401)

    def test_logout_rejects_another_users_token(self):
        resp = self.client.post(
            reverse('token_obtain_pair'),
            {'username': 'admin@example.com', 'password': self.password},
            format='json',
        )
        admin_refresh = resp.data['refresh']

        self.client.force_authenticate(user=self.team)
        resp = self.client.post(reverse('logout'), {'refresh': admin_refresh}, format='json')
        self.assertEqual(resp.status_code, 403)
        self.client.force_authenticate(user=None)

        resp = self.client.post(reverse('token_refresh'), {'refresh': admin_refresh}, format='json')
        self.assertEqual(resp.status_code, 200)

    def test_inactive_user_cannot_sign_in(self):
        self.team.status = User.Status.INACTIVE
        self.team.save()
        resp = self.client.post(
            reverse('token_obtain_pair'),
            {'username': 'team', 'password': self.password},
            format='json',
        )
        self.assertEqual(resp.status_code, 401)

    @override_settings(SENTRA_DEMO_LOGIN=False)
    def test_demo_fallback_disabled(self):
        resp = self.client.post(
            reverse('token_obtain_pair'),
            {'username': 'admin@sentra.com', 'password': 'password123'},
            format='json',
        )
        self.assertEqual(resp.status_code, 401)
        self.assertFalse(User.objects.filter(email='admin@sentra.com').exists())

    @override_settings(SENTRA_DEMO_LOGIN=True)
    def test_demo_fallback_provisions_accounts(self):
        with self.assertLogs('clientdesk.demo', level='WARNING'):
            resp = self.client.post(
                reverse('token_obtain_pair'),
                {'username': 'client@sentra.com', 'password': 'password123'},
                format='json',
            )
        self.assertEqual(resp.status_code, 200)
        self.assertIn('access', resp.data)
        user = User.objects.get(email='client@sentra.com')
        self.assertEqual(user.role, User.Roles.CLIENT_ADMIN)
        self.assertEqual(user.name, 'Nik Salwani Bt.Nik Ab Rahman')
        self.assertIsNotNone(user.client_id)

        resp = self.client.post(
            reverse('token_obtain_pair'),
            {'username': 'admin@sentra.com', 'password': 'wrong'},
            format='json',
        )
        self.assertEqual(resp.status_code, 401)

    def test_demo_client_account_is_relinked(self):
        user = provision_demo_user('client@sentra.com')
        user.client.delete()
        user.refresh_from_db()
        self.assertIsNone(user.client_id)

        with self.assertLogs('clientdesk.demo', level='INFO'):
            user = provision_demo_user('client@sentra.com')
        self.assertIsNotNone(user.client_id)
        user.refresh_from_db()
        self.assertEqual(user.client.email, 'nik.salwani@sentra.com')
