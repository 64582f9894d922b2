from decimal import Decimal
import threading
import time

from django.contrib.auth.models import AbstractUser
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Count, Q, Sum
from django.utils import timezone

_ROW_ID_LOCK = threading.Lock()
_LAST_ROW_ID_MICROS = 0


def make_row_id(prefix: str) -> str:
    """Text primary key in the `<prefix>-<epoch seconds>` scheme, unique per process."""
    global _LAST_ROW_ID_MICROS
    with _ROW_ID_LOCK:
        micros = time.time_ns() // 1000
        if micros <= _LAST_ROW_ID_MICROS:
            micros = _LAST_ROW_ID_MICROS + 1
        _LAST_ROW_ID_MICROS = micros
    return f"{prefix}-{micros // 1_000_000}.{micros % 1_000_000:06d}"


def invoice_id() -> str:
    return make_row_id('INV')


def payment_id() -> str:
    return make_row_id('PAY')


def component_id() -> str:
    return make_row_id('comp')


def progress_step_id() -> str:
    return make_row_id('step')


def calendar_event_id() -> str:
    return make_row_id('event')


def tag_id() -> str:
    return make_row_id('tag')


def empty_list():
    return []


class TimeStampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class Client(TimeStampedModel):
    class Status(models.TextChoices):
        COMPLETE = 'Complete', 'Complete'
        PENDING = 'Pending', 'Pending'
        INACTIVE = 'Inactive', 'Inactive'

    name = models.CharField(max_length=255)
    business_name = models.CharField(max_length=255)
    email = models.EmailField(unique=True)
    phone = models.CharField(max_length=50, blank=True)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.PENDING)
    package_name = models.CharField(max_length=255, blank=True)
    tags = models.JSONField(default=empty_list, blank=True)
    total_sales = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    total_collection = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    balance = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    last_activity = models.DateField(default=timezone.localdate)
    invoice_count = models.PositiveIntegerField(default=0)
    registered_at = models.DateTimeField(default=timezone.now)
    company = models.CharField(max_length=255, blank=True)
    address = models.TextField(blank=True)
    notes = models.TextField(blank=True)

    class Meta:
        ordering = ['name']
        indexes = [
            models.Index(fields=['status'], name='client_status_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(status__in=['Complete', 'Pending', 'Inactive']),
                name='client_status_valid',
            ),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.business_name})"

    def clean(self):
        super().clean()
        if self.tags is not None and not isinstance(self.tags, list):
            raise ValidationError({'tags': 'Tags must be a list of names.'})

    def refresh_totals(self) -> None:
        """Recompute sales, collection, balance and invoice count from stored rows."""
        recalculate_client_totals(self.pk)
        self.refresh_from_db(fields=['total_sales', 'total_collection', 'balance', 'invoice_count'])


class User(AbstractUser):
    class Roles(models.TextChoices):
        SUPER_ADMIN = 'Super Admin', 'Super Admin'
        TEAM = 'Team', 'Team'
        CLIENT_ADMIN = 'Client Admin', 'Client Admin'
        CLIENT_TEAM = 'Client Team', 'Client Team'

    class Status(models.TextChoices):
        ACTIVE = 'Active', 'Active'
        INACTIVE = 'Inactive', 'Inactive'

    STAFF_ROLES = (Roles.SUPER_ADMIN, Roles.TEAM)
    CLIENT_ROLES = (Roles.CLIENT_ADMIN, Roles.CLIENT_TEAM)

    name = models.CharField(max_length=255, blank=True)
    role = models.CharField(max_length=32, choices=Roles.choices, default=Roles.TEAM)
    client = models.ForeignKey(Client, on_delete=models.SET_NULL, null=True, blank=True, related_name='users')
    permissions = models.JSONField(default=empty_list, blank=True)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.ACTIVE)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta(AbstractUser.Meta):
        constraints = [
            models.CheckConstraint(
                condition=Q(role__in=['Super Admin', 'Team', 'Client Admin', 'Client Team']),
                name='user_role_valid',
            ),
            models.CheckConstraint(
                condition=Q(status__in=['Active', 'Inactive']),
                name='user_status_valid',
            ),
        ]

    def __str__(self) -> str:
        return f"{self.display_name} ({self.get_role_display()})"

    @property
    def display_name(self) -> str:
        return self.name or self.get_full_name() or self.email or self.username

    @property
    def has_full_access(self) -> bool:
        """Super Admin and Team see every row; superusers count as Super Admin."""
        return bool(self.is_superuser or self.role in self.STAFF_ROLES)

    @property
    def is_client_user(self) -> bool:
        return not self.is_superuser and self.role in self.CLIENT_ROLES

    def has_any_role(self, *roles: str) -> bool:
        if self.is_superuser and self.Roles.SUPER_ADMIN in roles:
            return True
        return self.role in roles

    def clean(self):
        super().clean()
        if self.role in self.CLIENT_ROLES and not self.client_id:
            raise ValidationError({'client': 'Client users must be linked to a client.'})
        if self.permissions is not None and not isinstance(self.permissions, list):
            raise ValidationError({'permissions': 'Permissions must be a list.'})

    def save(self, *args, **kwargs):
        if not self.name:
            self.name = self.get_full_name() or self.email or self.username
        self.is_active = self.status == self.Status.ACTIVE
        update_fields = kwargs.get('update_fields')
        if update_fields is not None and 'status' in update_fields:
            kwargs['update_fields'] = set(update_fields) | {'is_active'}
        super().save(*args, **kwargs)


class Invoice(models.Model):
    class Status(models.TextChoices):
        PENDING = 'Pending', 'Pending'
        PARTIAL = 'Partial', 'Partial'
        PAID = 'Paid', 'Paid'
        OVERDUE = 'Overdue', 'Overdue'

    id = models.CharField(primary_key=True, max_length=64, default=invoice_id, editable=False)
    client = models.ForeignKey(Client, on_delete=models.CASCADE, related_name='invoices')
    package_name = models.CharField(max_length=255)
    amount = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    paid = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    due = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.PENDING)
    # Doubles as the invoice date, so it stays editable.
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['client', 'status'], name='invoice_client_status_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(status__in=['Pending', 'Partial', 'Paid', 'Overdue']),
                name='invoice_status_valid',
            ),
        ]

    def __str__(self) -> str:
        return f"{self.id} · {self.package_name}"

    def clean(self):
        super().clean()
        if self.amount is not None and self.amount < 0:
            raise ValidationError({'amount': 'Amount cannot be negative.'})

    def save(self, *args, **kwargs):
        if self._state.adding:
            self.paid = Decimal('0')
        else:
            self.paid = self.paid_total()
        self.due = (self.amount or Decimal('0')) - self.paid
        self.status = status_for(self.paid, self.due)
        update_fields = kwargs.get('update_fields')
        if update_fields is not None:
            kwargs['update_fields'] = set(update_fields) | {'paid', 'due', 'status'}
        super().save(*args, **kwargs)

    def paid_total(self) -> Decimal:
        return (
            Payment.objects.filter(invoice_id=self.pk, status=Payment.Status.PAID).aggregate(total=Sum('amount'))['total']
            or Decimal('0')
        )

    def refresh_totals(self) -> str:
        """Recompute paid, due and status from the stored payments."""
        recalculate_invoice_totals(self.pk)
        self.refresh_from_db(fields=['paid', 'due', 'status'])
        return self.status


class Payment(TimeStampedModel):
    class Status(models.TextChoices):
        PAID = 'Paid', 'Paid'
        PENDING = 'Pending', 'Pending'
        FAILED = 'Failed', 'Failed'
        REFUNDED = 'Refunded', 'Refunded'

    id = models.CharField(primary_key=True, max_length=64, default=payment_id, editable=False)
    client = models.ForeignKey(Client, on_delete=models.CASCADE, related_name='payments')
    invoice = models.ForeignKey(Invoice, on_delete=models.CASCADE, related_name='payments')
    amount = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    payment_source = models.CharField(max_length=100, default='Online Transfer')
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.PAID)
    paid_at = models.DateTimeField(default=timezone.now)
    receipt_file_url = models.TextField(blank=True)

    class Meta:
        ordering = ['-paid_at']
        indexes = [
            models.Index(fields=['client', 'status'], name='payment_client_status_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(status__in=['Paid', 'Pending', 'Failed', 'Refunded']),
                name='payment_status_valid',
            ),
        ]

    def __str__(self) -> str:
        return f"Payment {self.amount} on {self.paid_at:%Y-%m-%d}"

    def clean(self):
        super().clean()
        amount = self.amount or Decimal('0')
        if amount <= 0:
            raise ValidationError({'amount': 'Amount must be greater than zero.'})
        if self.invoice_id and not self.client_id:
            self.client_id = self.invoice.client_id
        if self.invoice_id and self.client_id and self.invoice.client_id != self.client_id:
            raise ValidationError('Payment and invoice must belong to the same client.')

    def save(self, *args, **kwargs):
        if self.invoice_id and not self.client_id:
            self.client_id = self.invoice.client_id
        super().save(*args, **kwargs)


class Component(TimeStampedModel):
    id = models.CharField(primary_key=True, max_length=64, default=component_id, editable=False)
    client = models.ForeignKey(Client, on_delete=models.CASCADE, related_name='components')
    name = models.CharField(max_length=255)
    price = models.CharField(max_length=64, default='RM 0', blank=True)
    active = models.BooleanField(default=True)
    invoice = models.ForeignKey(Invoice, on_delete=models.SET_NULL, null=True, blank=True, related_name='components')

    class Meta:
        ordering = ['created_at']

    def __str__(self) -> str:
        return self.name

    def clean(self):
        super().clean()
        if self.invoice_id and self.client_id and self.invoice.client_id != self.client_id:
            raise ValidationError('Component and invoice must belong to the same client.')


class ProgressStep(TimeStampedModel):
    id = models.CharField(primary_key=True, max_length=64, default=progress_step_id, editable=False)
    client = models.ForeignKey(Client, on_delete=models.CASCADE, related_name='progress_steps')
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    deadline = models.DateTimeField()
    completed = models.BooleanField(default=False)
    completed_date = models.DateField(null=True, blank=True)
    important = models.BooleanField(default=False)
    comments = models.JSONField(default=empty_list, blank=True)

    class Meta:
        ordering = ['deadline']

    def __str__(self) -> str:
        return self.title

    def save(self, *args, **kwargs):
        if self.completed and not self.completed_date:
            self.completed_date = timezone.localdate()
        elif not self.completed:
            self.completed_date = None
        super().save(*args, **kwargs)

    @property
    def is_overdue(self) -> bool:
        return not self.completed and self.deadline < timezone.now()


class CalendarEvent(TimeStampedModel):
    class Type(models.TextChoices):
        MEETING = 'meeting', 'Meeting'
        CALL = 'call', 'Call'
        DEADLINE = 'deadline', 'Deadline'
        PAYMENT = 'payment', 'Payment'

    id = models.CharField(primary_key=True, max_length=64, default=calendar_event_id, editable=False)
    client = models.ForeignKey(Client, on_delete=models.CASCADE, related_name='calendar_events')
    title = models.CharField(max_length=255)
    start_date = models.DateField()
    end_date = models.DateField()
    start_time = models.TimeField()
    end_time = models.TimeField()
    description = models.TextField(blank=True)
    type = models.CharField(max_length=16, choices=Type.choices, default=Type.MEETING)

    class Meta:
        ordering = ['start_date', 'start_time']
        constraints = [
            models.CheckConstraint(
                condition=Q(type__in=['meeting', 'call', 'deadline', 'payment']),
                name='calendar_event_type_valid',
            ),
        ]

    def __str__(self) -> str:
        return f"{self.title} on {self.start_date}"

    def clean(self):
        super().clean()
        if self.start_date and self.end_date:
            if self.end_date < self.start_date:
                raise ValidationError({'end_date': 'End date cannot be earlier than the start date.'})
            if self.end_date == self.start_date and self.start_time and self.end_time and self.end_time < self.start_time:
                raise ValidationError({'end_time': 'End time cannot be earlier than the start time.'})


class Chat(TimeStampedModel):
    client = models.ForeignKey(Client, on_delete=models.CASCADE, related_name='chats')
    client_name = models.CharField(max_length=255, blank=True)
    avatar = models.CharField(max_length=255, blank=True)
    last_message = models.TextField(blank=True)
    last_message_at = models.DateTimeField(null=True, blank=True)
    unread_count = models.PositiveIntegerField(default=0)
    online = models.BooleanField(default=False)

    class Meta:
        ordering = ['-last_message_at', '-created_at']

    def __str__(self) -> str:
        return f"Chat with {self.client_name}"

    def save(self, *args, **kwargs):
        if self.client_id:
            if not self.client_name:
                self.client_name = self.client.name
            if not self.avatar:
                self.avatar = initials(self.client_name)
        super().save(*args, **kwargs)


class ChatMessage(models.Model):
    class Sender(models.TextChoices):
        CLIENT = 'client', 'Client'
        ADMIN = 'admin', 'Admin'
        TEAM = 'team', 'Team'

    class MessageType(models.TextChoices):
        TEXT = 'text', 'Text'
        IMAGE = 'image', 'Image'
        FILE = 'file', 'File'

    chat = models.ForeignKey(Chat, on_delete=models.CASCADE, related_name='messages')
    sender = models.CharField(max_length=16, choices=Sender.choices)
    content = models.TextField()
    message_type = models.CharField(max_length=16, choices=MessageType.choices, default=MessageType.TEXT)
    timestamp = models.CharField(max_length=64, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['created_at', 'id']
        constraints = [
            models.CheckConstraint(
                condition=Q(sender__in=['client', 'admin', 'team']),
                name='chat_message_sender_valid',
            ),
            models.CheckConstraint(
                condition=Q(message_type__in=['text', 'image', 'file']),
                name='chat_message_type_valid',
            ),
        ]

    def __str__(self) -> str:
        return f"{self.sender}: {self.content[:40]}"

    def save(self, *args, **kwargs):
        if not self.timestamp:
            self.timestamp = timezone.localtime().strftime('%I:%M %p')
        super().save(*args, **kwargs)


class Tag(TimeStampedModel):
    id = models.CharField(primary_key=True, max_length=64, default=tag_id, editable=False)
    name = models.CharField(max_length=100, unique=True)
    color = models.CharField(max_length=16, default='#3B82F6')

    class Meta:
        ordering = ['name']

    def __str__(self) -> str:
        return self.name


def initials(name: str) -> str:
    parts = [part for part in (name or '').split() if part]
    return ''.join(part[0] for part in parts[:2]).upper() or '?'


def status_for(paid: Decimal, due: Decimal) -> str:
    if due <= 0:
        return Invoice.Status.PAID
    if paid > 0:
        return Invoice.Status.PARTIAL
    return Invoice.Status.PENDING


def recalculate_invoice_totals(invoice_pk) -> None:
    """Set-based recompute of paid/due/status; a no-op for a deleted invoice."""
    row = Invoice.objects.filter(pk=invoice_pk).values('amount').first()
    if row is None:
        return
    paid = (
        Payment.objects.filter(invoice_id=invoice_pk, status=Payment.Status.PAID).aggregate(total=Sum('amount'))['total']
        or Decimal('0')
    )
    due = (row['amount'] or Decimal('0')) - paid
    Invoice.objects.filter(pk=invoice_pk).update(
        paid=paid,
        due=due,
        status=status_for(paid, due),
        updated_at=timezone.now(),
    )


def recalculate_client_totals(client_pk) -> None:
    """Set-based recompute of the client rollup columns."""
    invoice_totals = Invoice.objects.filter(client_id=client_pk).aggregate(
        sales=Sum('amount'),
        balance=Sum('due'),
        count=Count('id'),
    )
    collection = (
        Payment.objects.filter(client_id=client_pk, status=Payment.Status.PAID).aggregate(total=Sum('amount'))['total']
        or Decimal('0')
    )
    Client.objects.filter(pk=client_pk).update(
        total_sales=invoice_totals['sales'] or Decimal('0'),
        total_collection=collection,
        balance=invoice_totals['balance'] or Decimal('0'),
        invoice_count=invoice_totals['count'] or 0,
        updated_at=timezone.now(),
    )
