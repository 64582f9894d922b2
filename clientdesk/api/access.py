from __future__ import annotations

from clientdesk.models import User


def can_view_all_clients(user: User | None) -> bool:
    return bool(user and user.is_authenticated and user.has_full_access)


def visible_for_user(user: User | None, queryset, client_field: str = 'client_id'):
    """Staff see everything; client users see rows of their own client only."""
    if can_view_all_clients(user):
        return queryset
    if not user or not user.is_authenticated or not user.client_id:
        return queryset.none()
    return queryset.filter(**{client_field: user.client_id})


def visible_clients_for_user(user: User | None, queryset):
    return visible_for_user(user, queryset, client_field='pk')


def visible_chat_messages_for_user(user: User | None, queryset):
    return visible_for_user(user, queryset, client_field='chat__client_id')


def visible_users_for_user(user: User | None, queryset):
    if not user or not user.is_authenticated:
        return queryset.none()
    if user.has_any_role(User.Roles.SUPER_ADMIN):
        return queryset
    return queryset.filter(pk=user.pk)
