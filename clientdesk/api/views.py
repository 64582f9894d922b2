from __future__ import annotations

import logging
from decimal import Decimal

from django.contrib.auth.models import update_last_login
from django.db.models import Count, Sum
from django.utils import timezone
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import AuthenticationFailed, PermissionDenied
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer
from rest_framework_simplejwt.settings import api_settings as jwt_settings
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from clientdesk import demo
from clientdesk.api.access import (
    visible_chat_messages_for_user,
    visible_clients_for_user,
    visible_for_user,
    visible_users_for_user,
)
from clientdesk.api.permissions import ModulePermission, RolePermission, StaffWritePermission
from clientdesk.api.serializers import (
    CalendarEventSerializer,
    ChatMessageCreateSerializer,
    ChatMessageSerializer,
    ChatSerializer,
    ClientSerializer,
    CommentSerializer,
    ComponentBulkSerializer,
    ComponentSerializer,
    InvoiceSerializer,
    PaymentSerializer,
    ProfileSerializer,
    ProgressStepSerializer,
    TagSerializer,
    UserSerializer,
)
from clientdesk.filters import (
    CalendarEventFilter,
    ClientFilter,
    ComponentFilter,
    InvoiceFilter,
    PaymentFilter,
    ProgressStepFilter,
)
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
from clientdesk.permissions import get_permissions_for_user
from clientdesk.progress import add_comment, after_components_created, after_invoice_created, sync_progress_steps

logger = logging.getLogger(__name__)

STAFF_MODULES = ('clients', 'dashboard', 'calendar', 'reports', 'client_dashboard', 'client_profile')
CHAT_MODULES = ('chat', 'client_messages')


class EmailTokenObtainPairSerializer(TokenObtainPairSerializer):
    """Sign in by email or username, with the optional demo fallback."""

    def validate(self, attrs):
        login = attrs.get(self.username_field)
        if login and '@' in login:
            user = User.objects.filter(email__iexact=login).first()
            if user:
                attrs[self.username_field] = user.get_username()
        try:
            return super().validate(attrs)
        except AuthenticationFailed:
            demo_user = demo.authenticate_demo(login, attrs.get('password'))
            if demo_user is None:
                raise
        self.user = demo_user
        refresh = self.get_token(demo_user)
        if jwt_settings.UPDATE_LAST_LOGIN:
            update_last_login(None, demo_user)
        return {'refresh': str(refresh), 'access': str(refresh.access_token)}


class EmailTokenObtainPairView(TokenObtainPairView):
    permission_classes = (AllowAny,)
    serializer_class = EmailTokenObtainPairSerializer


class CustomTokenRefreshView(TokenRefreshView):
    permission_classes = (AllowAny,)


class LogoutView(APIView):
    def post(self, request):
        raw = request.data.get('refresh')
        if not raw:
            return Response({'refresh': ['This field is required.']}, status=status.HTTP_400_BAD_REQUEST)
        try:
            token = RefreshToken(raw)
        except TokenError as exc:
            return Response({'detail': str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        if str(token.get(jwt_settings.USER_ID_CLAIM)) != str(request.user.pk):
            raise PermissionDenied('You can only sign out your own session.')
        token.blacklist()
        logger.info("User %s signed out", request.user.pk)
        return Response(status=status.HTTP_205_RESET_CONTENT)


class RegisterView(APIView):
    permission_classes = (IsAuthenticated, RolePermission)
    allowed_roles = (User.Roles.SUPER_ADMIN,)

    def post(self, request):
        serializer = UserSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        logger.info("User %s registered %s as %s", request.user.pk, user.email, user.role)
        return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)


class MeView(APIView):
    def get(self, request):
        return Response({
            'user': UserSerializer(request.user).data,
            'permissions': get_permissions_for_user(request.user),
        })

    def patch(self, request):
        serializer = ProfileSerializer(request.user, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return self.get(request)


class DashboardView(APIView):
    def get(self, request):
        user = request.user
        now = timezone.now()
        clients = visible_clients_for_user(user, Client.objects.all())
        totals = clients.aggregate(
            total_sales=Sum('total_sales'),
            total_collection=Sum('total_collection'),
            total_balance=Sum('balance'),
        )
        status_counts = {
            row['status']: row['total']
            for row in clients.order_by().values('status').annotate(total=Count('id'))
        }
        upcoming_events = visible_for_user(
            user,
            CalendarEvent.objects.select_related('client').filter(start_date__gte=timezone.localdate()),
        )[:10]
        open_steps = visible_for_user(
            user,
            ProgressStep.objects.select_related('client').filter(completed=False),
        )
        return Response({
            'total_sales': totals['total_sales'] or Decimal('0'),
            'total_collection': totals['total_collection'] or Decimal('0'),
            'total_balance': totals['total_balance'] or Decimal('0'),
            'client_count': clients.count(),
            'clients_by_status': {key: status_counts.get(key, 0) for key in Client.Status.values},
            'upcoming_events': CalendarEventSerializer(upcoming_events, many=True).data,
            'open_steps': ProgressStepSerializer(open_steps[:10], many=True).data,
            'overdue_steps_count': open_steps.filter(deadline__lt=now).count(),
        })


class BaseModelViewSet(viewsets.ModelViewSet):
    permission_classes = (IsAuthenticated, ModulePermission, RolePermission)
    module_permission: str | tuple[str, ...] | None = None
    role_map: dict[str, tuple[str, ...] | None] | None = None
    # Text keys look like INV-1729000000.123456.
    lookup_value_regex = '[^/]+'

    def get_permissions(self):
        if self.role_map:
            roles = self.role_map.get(self.action)
            self.allowed_roles = roles
        return super().get_permissions()


class ClientScopedViewSet(BaseModelViewSet):
    """Business rows: everyone reads within scope, staff roles write."""

    permission_classes = (IsAuthenticated, ModulePermission, RolePermission, StaffWritePermission)
    module_permission = STAFF_MODULES
    client_field = 'client_id'

    def get_queryset(self):
        return visible_for_user(self.request.user, super().get_queryset(), client_field=self.client_field)


class ClientViewSet(ClientScopedViewSet):
    queryset = Client.objects.all()
    serializer_class = ClientSerializer
    filterset_class = ClientFilter
    search_fields = ('name', 'business_name', 'email', 'phone', 'company')
    ordering_fields = ('name', 'registered_at', 'last_activity', 'total_sales', 'balance')
    client_field = 'pk'

    def perform_create(self, serializer):
        client = serializer.save()
        logger.info("Client %s created by %s", client.pk, self.request.user.pk)

    def perform_destroy(self, instance):
        logger.info("Client %s deleted by %s", instance.pk, self.request.user.pk)
        instance.delete()

    @action(detail=True, methods=['post'])
    def sync_progress_steps(self, request, pk=None):
        client = self.get_object()
        created = sync_progress_steps(client)
        steps = ProgressStep.objects.filter(client=client)
        return Response({
            'created': created,
            'progress_steps': ProgressStepSerializer(steps, many=True).data,
        })


class InvoiceViewSet(ClientScopedViewSet):
    queryset = Invoice.objects.select_related('client')
    serializer_class = InvoiceSerializer
    filterset_class = InvoiceFilter
    search_fields = ('id', 'package_name', 'client__name')
    ordering_fields = ('created_at', 'amount', 'due', 'status')

    def perform_create(self, serializer):
        invoice = serializer.save()
        after_invoice_created(invoice)

    @action(detail=True, methods=['get'])
    def payments(self, request, pk=None):
        invoice = self.get_object()
        return Response(PaymentSerializer(invoice.payments.all(), many=True).data)


class PaymentViewSet(ClientScopedViewSet):
    queryset = Payment.objects.select_related('client', 'invoice')
    serializer_class = PaymentSerializer
    filterset_class = PaymentFilter
    search_fields = ('id', 'invoice__id', 'payment_source')
    ordering_fields = ('paid_at', 'amount', 'status')


class ComponentViewSet(ClientScopedViewSet):
    queryset = Component.objects.select_related('client', 'invoice')
    serializer_class = ComponentSerializer
    filterset_class = ComponentFilter
    search_fields = ('name',)
    ordering_fields = ('created_at', 'name')

    def perform_create(self, serializer):
        component = serializer.save()
        after_components_created([component])

    @action(detail=False, methods=['post'])
    def bulk(self, request):
        serializer = ComponentBulkSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        client = serializer.validated_data['client']
        invoice = serializer.validated_data.get('invoice')
        components = Component.objects.bulk_create([
            Component(client=client, invoice=invoice, **item)
            for item in serializer.validated_data['components']
        ])
        after_components_created(components)
        return Response(ComponentSerializer(components, many=True).data, status=status.HTTP_201_CREATED)


class ProgressStepViewSet(ClientScopedViewSet):
    queryset = ProgressStep.objects.select_related('client')
    serializer_class = ProgressStepSerializer
    filterset_class = ProgressStepFilter
    search_fields = ('title', 'description')
    ordering_fields = ('deadline', 'created_at', 'important')

    @action(detail=True, methods=['post'])
    def add_comment(self, request, pk=None):
        step = self.get_object()
        serializer = CommentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        comment = add_comment(step, text=serializer.validated_data['text'], author=request.user)
        return Response(comment, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def toggle_complete(self, request, pk=None):
        step = self.get_object()
        step.completed = not step.completed
        step.save(update_fields=['completed', 'completed_date', 'updated_at'])
        return Response(ProgressStepSerializer(step).data)


class CalendarEventViewSet(ClientScopedViewSet):
    queryset = CalendarEvent.objects.select_related('client')
    serializer_class = CalendarEventSerializer
    filterset_class = CalendarEventFilter
    search_fields = ('title', 'description')
    ordering_fields = ('start_date', 'start_time')


class ChatViewSet(BaseModelViewSet):
    queryset = Chat.objects.select_related('client')
    serializer_class = ChatSerializer
    module_permission = CHAT_MODULES
    filterset_fields = ('client', 'online')
    search_fields = ('client_name', 'last_message')
    ordering_fields = ('last_message_at', 'unread_count')

    def get_queryset(self):
        return visible_for_user(self.request.user, super().get_queryset())

    def _check_client(self, serializer):
        client = serializer.validated_data.get('client', getattr(serializer.instance, 'client', None))
        user = self.request.user
        if user.is_client_user and (client is None or client.pk != user.client_id):
            raise PermissionDenied('You can only open chats for your own client.')

    def perform_create(self, serializer):
        self._check_client(serializer)
        serializer.save()

    def perform_update(self, serializer):
        self._check_client(serializer)
        serializer.save()

    @action(detail=True, methods=['get', 'post'])
    def messages(self, request, pk=None):
        chat = self.get_object()
        if request.method == 'GET':
            return Response(ChatMessageSerializer(chat.messages.all(), many=True).data)
        serializer = ChatMessageCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        message = serializer.save(chat=chat, sender=sender_for(request.user))
        return Response(ChatMessageSerializer(message).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def mark_read(self, request, pk=None):
        chat = self.get_object()
        Chat.objects.filter(pk=chat.pk).update(unread_count=0)
        chat.refresh_from_db(fields=['unread_count'])
        return Response(ChatSerializer(chat).data)


class ChatMessageViewSet(BaseModelViewSet):
    queryset = ChatMessage.objects.select_related('chat')
    serializer_class = ChatMessageSerializer
    module_permission = CHAT_MODULES
    filterset_fields = ('chat', 'sender', 'message_type')
    ordering_fields = ('created_at',)

    def get_queryset(self):
        return visible_chat_messages_for_user(self.request.user, super().get_queryset())

    def _check_chat(self, serializer):
        chat = serializer.validated_data.get('chat', getattr(serializer.instance, 'chat', None))
        if chat is None or not visible_for_user(self.request.user, Chat.objects.filter(pk=chat.pk)).exists():
            raise PermissionDenied('You cannot post to this chat.')

    def perform_create(self, serializer):
        self._check_chat(serializer)
        serializer.save(sender=sender_for(self.request.user))

    def perform_update(self, serializer):
        self._check_chat(serializer)
        serializer.save()


class TagViewSet(BaseModelViewSet):
    queryset = Tag.objects.all()
    serializer_class = TagSerializer
    permission_classes = (IsAuthenticated, ModulePermission, RolePermission, StaffWritePermission)
    search_fields = ('name',)
    ordering_fields = ('name', 'created_at')


class UserViewSet(BaseModelViewSet):
    queryset = User.objects.select_related('client').order_by('name', 'username')
    serializer_class = UserSerializer
    filterset_fields = ('role', 'status', 'client')
    search_fields = ('name', 'email', 'username')
    role_map = {
        'list': (User.Roles.SUPER_ADMIN,),
        'create': (User.Roles.SUPER_ADMIN,),
        'update': (User.Roles.SUPER_ADMIN,),
        'partial_update': (User.Roles.SUPER_ADMIN,),
        'destroy': (User.Roles.SUPER_ADMIN,),
    }

    def get_queryset(self):
        return visible_users_for_user(self.request.user, super().get_queryset())

    def perform_destroy(self, instance):
        if instance.pk == self.request.user.pk:
            raise PermissionDenied('You cannot delete your own account.')
        instance.delete()


def sender_for(user: User) -> str:
    if user.is_client_user:
        return ChatMessage.Sender.CLIENT
    if user.has_any_role(User.Roles.SUPER_ADMIN):
        return ChatMessage.Sender.ADMIN
    return ChatMessage.Sender.TEAM


