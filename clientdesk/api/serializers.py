from __future__ import annotations

from django.core.exceptions import ValidationError
from rest_framework import serializers

from clientdesk.models import (
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
from clientdesk.permissions import default_permissions_for_role

DEFAULT_COMPONENT_PRICE = 'RM 0'


class CleanModelSerializer(serializers.ModelSerializer):
    """ModelSerializer that runs full_clean before saving."""

    def _perform_full_clean(self, instance):
        try:
            instance.full_clean()
        except ValidationError as exc:
            if hasattr(exc, 'message_dict'):
                raise serializers.ValidationError(exc.message_dict) from exc
            raise serializers.ValidationError({'detail': exc.messages}) from exc

    def create(self, validated_data, **kwargs):
        validated_data.update(kwargs)
        instance = self.Meta.model(**validated_data)
        self._perform_full_clean(instance)
        instance.save()
        return instance

    def update(self, instance, validated_data, **kwargs):
        validated_data.update(kwargs)
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        self._perform_full_clean(instance)
        instance.save()
        return instance


class ClientSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Client
        fields = ('id', 'name', 'business_name', 'email')


class UserSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ('id', 'username', 'name', 'email', 'role')


class UserSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, required=False, allow_blank=True)
    username = serializers.CharField(required=False, max_length=150)
    email = serializers.EmailField(required=True)
    permissions = serializers.ListField(child=serializers.CharField(max_length=64), required=False)
    client_detail = ClientSummarySerializer(source='client', read_only=True)

    class Meta:
        model = User
        fields = (
            'id',
            'username',
            'email',
            'name',
            'role',
            'client',
            'client_detail',
            'permissions',
            'status',
            'is_superuser',
            'last_login',
            'created_at',
            'updated_at',
            'password',
        )
        read_only_fields = ('is_superuser', 'last_login', 'created_at', 'updated_at')

    def validate_email(self, value):
        qs = User.objects.filter(email__iexact=value)
        if self.instance:
            qs = qs.exclude(pk=self.instance.pk)
        if qs.exists():
            raise serializers.ValidationError('A user with this email already exists.')
        return value

    def validate(self, attrs):
        attrs = super().validate(attrs)
        if not self.instance:
            attrs.setdefault('username', attrs.get('email'))
            attrs.setdefault('name', attrs.get('email'))
        username = attrs.get('username')
        if username:
            qs = User.objects.filter(username=username)
            if self.instance:
                qs = qs.exclude(pk=self.instance.pk)
            if qs.exists():
                raise serializers.ValidationError({'username': 'A user with this username already exists.'})
        role = attrs.get('role', getattr(self.instance, 'role', None) or User.Roles.TEAM)
        client = attrs.get('client', getattr(self.instance, 'client', None))
        if role in User.CLIENT_ROLES and client is None:
            raise serializers.ValidationError({'client': 'Client users must be linked to a client.'})
        if not self.instance and not attrs.get('permissions'):
            attrs['permissions'] = default_permissions_for_role(role)
        return attrs

    def create(self, validated_data):
        password = validated_data.pop('password', None)
        user = super().create(validated_data)
        if password:
            user.set_password(password)
        else:
            user.set_unusable_password()
        user.save(update_fields=['password'])
        return user

    def update(self, instance, validated_data):
        password = validated_data.pop('password', None)
        user = super().update(instance, validated_data)
        if password:
            user.set_password(password)
            user.save(update_fields=['password'])
        return user


class ProfileSerializer(serializers.ModelSerializer):
    """What a user may change on their own profile."""

    class Meta:
        model = User
        fields = ('name',)


class ClientSerializer(CleanModelSerializer):
    tags = serializers.ListField(child=serializers.CharField(max_length=100), required=False)

    class Meta:
        model = Client
        fields = (
            'id',
            'name',
            'business_name',
            'email',
            'phone',
            'status',
            'package_name',
            'tags',
            'total_sales',
            'total_collection',
            'balance',
            'last_activity',
            'invoice_count',
            'registered_at',
            'company',
            'address',
            'notes',
            'created_at',
            'updated_at',
        )
        read_only_fields = (
            'total_sales',
            'total_collection',
            'balance',
            'invoice_count',
            'created_at',
            'updated_at',
        )


class InvoiceSerializer(CleanModelSerializer):
    client_detail = ClientSummarySerializer(source='client', read_only=True)
    created_at = serializers.DateTimeField(required=False)

    class Meta:
        model = Invoice
        fields = (
            'id',
            'client',
            'client_detail',
            'package_name',
            'amount',
            'paid',
            'due',
            'status',
            'created_at',
            'updated_at',
        )
        read_only_fields = ('id', 'paid', 'due', 'status', 'updated_at')

    def validate_client(self, value):
        if self.instance and value != self.instance.client:
            raise serializers.ValidationError('Invoices cannot be moved to another client.')
        return value


class PaymentSerializer(CleanModelSerializer):
    client = serializers.PrimaryKeyRelatedField(queryset=Client.objects.all(), required=False)

    class Meta:
        model = Payment
        fields = (
            'id',
            'client',
            'invoice',
            'amount',
            'payment_source',
            'status',
            'paid_at',
            'receipt_file_url',
            'created_at',
            'updated_at',
        )
        read_only_fields = ('id', 'created_at', 'updated_at')

    def validate(self, attrs):
        attrs = super().validate(attrs)
        invoice = attrs.get('invoice', getattr(self.instance, 'invoice', None))
        if self.instance and invoice != self.instance.invoice:
            raise serializers.ValidationError({'invoice': 'Payments cannot be moved to another invoice.'})
        if invoice is not None and 'client' not in attrs and not self.instance:
            attrs['client'] = invoice.client
        return attrs


class ComponentSerializer(CleanModelSerializer):
    class Meta:
        model = Component
        fields = ('id', 'client', 'name', 'price', 'active', 'invoice', 'created_at', 'updated_at')
        read_only_fields = ('id', 'created_at', 'updated_at')

    def validate_price(self, value):
        return value or DEFAULT_COMPONENT_PRICE


class ComponentBulkItemSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    price = serializers.CharField(max_length=64, required=False, allow_blank=True, default=DEFAULT_COMPONENT_PRICE)
    active = serializers.BooleanField(required=False, default=True)

    def validate_price(self, value):
        return value or DEFAULT_COMPONENT_PRICE


class ComponentBulkSerializer(serializers.Serializer):
    client = serializers.PrimaryKeyRelatedField(queryset=Client.objects.all())
    invoice = serializers.PrimaryKeyRelatedField(queryset=Invoice.objects.all(), required=False, allow_null=True)
    components = ComponentBulkItemSerializer(many=True, allow_empty=False)

    def validate(self, attrs):
        invoice = attrs.get('invoice')
        if invoice is not None and invoice.client_id != attrs['client'].pk:
            raise serializers.ValidationError('Component and invoice must belong to the same client.')
        return attrs


class ProgressStepSerializer(CleanModelSerializer):
    is_overdue = serializers.BooleanField(read_only=True)

    class Meta:
        model = ProgressStep
        fields = (
            'id',
            'client',
            'title',
            'description',
            'deadline',
            'completed',
            'completed_date',
            'important',
            'comments',
            'is_overdue',
            'created_at',
            'updated_at',
        )
        read_only_fields = ('id', 'completed_date', 'comments', 'created_at', 'updated_at')


class CommentSerializer(serializers.Serializer):
    text = serializers.CharField()


class CalendarEventSerializer(CleanModelSerializer):
    class Meta:
        model = CalendarEvent
        fields = (
            'id',
            'client',
            'title',
            'start_date',
            'end_date',
            'start_time',
            'end_time',
            'description',
            'type',
            'created_at',
            'updated_at',
        )
        read_only_fields = ('id', 'created_at', 'updated_at')


class ChatSerializer(CleanModelSerializer):
    class Meta:
        model = Chat
        fields = (
            'id',
            'client',
            'client_name',
            'avatar',
            'last_message',
            'last_message_at',
            'unread_count',
            'online',
            'created_at',
            'updated_at',
        )
        read_only_fields = ('last_message', 'last_message_at', 'unread_count', 'created_at', 'updated_at')


class ChatMessageSerializer(CleanModelSerializer):
    class Meta:
        model = ChatMessage
        fields = ('id', 'chat', 'sender', 'content', 'message_type', 'timestamp', 'created_at')
        read_only_fields = ('sender', 'created_at')


class ChatMessageCreateSerializer(ChatMessageSerializer):
    """Posting into a known chat; the chat comes from the URL."""

    class Meta(ChatMessageSerializer.Meta):
        read_only_fields = ('chat', 'sender', 'created_at')


class TagSerializer(CleanModelSerializer):
    class Meta:
        model = Tag
        fields = ('id', 'name', 'color', 'created_at', 'updated_at')
        read_only_fields = ('id', 'created_at', 'updated_at')
