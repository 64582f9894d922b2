from __future__ import annotations

from typing import Iterable

from rest_framework.permissions import SAFE_METHODS, BasePermission

from clientdesk.permissions import has_module


class ModulePermission(BasePermission):
    """Passes when the user holds any one of the view's modules."""

    module: str | Iterable[str] | None = None

    def has_permission(self, request, view) -> bool:
        modules = getattr(view, 'module_permission', None) or self.module
        if not modules:
            return True
        user = getattr(request, 'user', None)
        if not user or not user.is_authenticated:
            return False
        if user.is_superuser:
            return True
        if isinstance(modules, str):
            modules = (modules,)
        return has_module(user, *modules)


class RolePermission(BasePermission):
    allowed_roles: Iterable[str] | None = None

    def has_permission(self, request, view) -> bool:
        roles = getattr(view, 'allowed_roles', None) or self.allowed_roles
        if not roles:
            return True
        user = getattr(request, 'user', None)
        if not user or not user.is_authenticated:
            return False
        if user.is_superuser:
            return True
        has_any = getattr(user, 'has_any_role', None)
        if callable(has_any):
            return has_any(*roles)
        return getattr(user, 'role', None) in roles


class StaffWritePermission(BasePermission):
    """Client-scoped users may read; only staff roles may write."""

    message = 'Client users have read-only access to this resource.'

    def has_permission(self, request, view) -> bool:
        if request.method in SAFE_METHODS:
            return True
        user = getattr(request, 'user', None)
        return bool(user and user.is_authenticated and user.has_full_access)
