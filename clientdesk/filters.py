import django_filters
from django.db import connection
from django.utils import timezone

from .models import CalendarEvent, Client, Component, Invoice, Payment, ProgressStep


class ClientFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=Client.Status.choices)
    tag = django_filters.CharFilter(method='filter_tag', label='Tag')
    registered_at = django_filters.DateFromToRangeFilter()

    class Meta:
        model = Client
        fields = ['status', 'package_name']

    def filter_tag(self, queryset, name, value):
        if not value:
            return queryset
        if connection.features.supports_json_field_contains:
            return queryset.filter(tags__contains=[value])
        ids = [pk for pk, tags in queryset.values_list('pk', 'tags') if value in (tags or [])]
        return queryset.filter(pk__in=ids)


class InvoiceFilter(django_filters.FilterSet):
    STATUS_CHOICES = [('unpaid', 'Unpaid (open)')] + list(Invoice.Status.choices)

    status = django_filters.ChoiceFilter(choices=STATUS_CHOICES, method='filter_status')
    created_at = django_filters.DateFromToRangeFilter(label='Invoice date')

    def filter_status(self, queryset, name, value):
        if value == 'unpaid':
            return queryset.exclude(status=Invoice.Status.PAID)
        if value:
            return queryset.filter(**{name: value})
        return queryset

    class Meta:
        model = Invoice
        fields = ['client', 'status']


class PaymentFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=Payment.Status.choices)
    paid_at = django_filters.DateFromToRangeFilter()

    class Meta:
        model = Payment
        fields = ['client', 'invoice', 'status', 'payment_source']


class ComponentFilter(django_filters.FilterSet):
    class Meta:
        model = Component
        fields = ['client', 'invoice', 'active']


class ProgressStepFilter(django_filters.FilterSet):
    overdue = django_filters.BooleanFilter(method='filter_overdue', label='Overdue')
    deadline = django_filters.DateFromToRangeFilter()

    def filter_overdue(self, queryset, name, value):
        if value is None:
            return queryset
        overdue = {'completed': False, 'deadline__lt': timezone.now()}
        return queryset.filter(**overdue) if value else queryset.exclude(**overdue)

    class Meta:
        model = ProgressStep
        fields = ['client', 'completed', 'important']


class CalendarEventFilter(django_filters.FilterSet):
    type = django_filters.ChoiceFilter(choices=CalendarEvent.Type.choices)
    start_date = django_filters.DateFromToRangeFilter()

    class Meta:
        model = CalendarEvent
        fields = ['client', 'type']
