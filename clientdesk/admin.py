from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as DjangoUserAdmin

from .models import (
    CalendarEvent,
    Chat,
    ChatMessage,
    Client,
    Component,
    Invoice,
    Payment,
    ProgressStep,
    Tag,
    User,
)


@admin.register(User)
class UserAdmin(DjangoUserAdmin):
    fieldsets = DjangoUserAdmin.fieldsets + (
        ('Profile', {'fields': ('name', 'role', 'client', 'permissions', 'status')}),
    )
    list_display = ('username', 'email', 'name', 'role', 'client', 'status')
    list_filter = ('role', 'status')
    search_fields = ('username', 'email', 'name')


class InvoiceInline(admin.TabularInline):
    model = Invoice
    extra = 0
    fields = ('id', 'package_name', 'amount', 'paid', 'due', 'status', 'created_at')
    readonly_fields = ('id', 'paid', 'due', 'status')


@admin.register(Client)
class ClientAdmin(admin.ModelAdmin):
    list_display = ('name', 'business_name', 'email', 'status', 'total_sales', 'balance', 'last_activity')
    list_filter = ('status',)
    search_fields = ('name', 'business_name', 'email', 'phone')
    readonly_fields = ('total_sales', 'total_collection', 'balance', 'invoice_count')
    inlines = [InvoiceInline]


class PaymentInline(admin.TabularInline):
    model = Payment
    extra = 0
    fields = ('id', 'amount', 'payment_source', 'status', 'paid_at')
    readonly_fields = ('id',)


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = ('id', 'client', 'package_name', 'amount', 'paid', 'due', 'status', 'created_at')
    list_filter = ('status',)
    search_fields = ('id', 'package_name', 'client__name')
    readonly_fields = ('paid', 'due', 'status')
    inlines = [PaymentInline]


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ('id', 'invoice', 'client', 'amount', 'payment_source', 'status', 'paid_at')
    list_filter = ('status', 'payment_source')
    search_fields = ('id', 'invoice__id', 'client__name')


@admin.register(Component)
class ComponentAdmin(admin.ModelAdmin):
    list_display = ('name', 'client', 'price', 'active', 'invoice')
    list_filter = ('active',)
    search_fields = ('name', 'client__name')


@admin.register(ProgressStep)
class ProgressStepAdmin(admin.ModelAdmin):
    list_display = ('title', 'client', 'deadline', 'completed', 'important')
    list_filter = ('completed', 'important')
    search_fields = ('title', 'client__name')


@admin.register(CalendarEvent)
class CalendarEventAdmin(admin.ModelAdmin):
    list_display = ('title', 'client', 'type', 'start_date', 'start_time')
    list_filter = ('type',)
    search_fields = ('title', 'client__name')


class ChatMessageInline(admin.TabularInline):
    model = ChatMessage
    extra = 0


@admin.register(Chat)
class ChatAdmin(admin.ModelAdmin):
    list_display = ('client_name', 'client', 'last_message_at', 'unread_count', 'online')
    search_fields = ('client_name',)
    inlines = [ChatMessageInline]


admin.site.register(Tag)
