from __future__ import annotations

from typing import Dict, List

from .models import User

ALL = 'all'

MODULE_KEYS = [
    'dashboard',
    'clients',
    'calendar',
    'chat',
    'reports',
    'users',
    'settings',
    'client_dashboard',
    'client_profile',
    'client_messages',
]

CLIENT_PERMISSIONS = ['client_dashboard', 'client_profile', 'client_messages']

DEFAULT_ROLE_PERMS: Dict[str, List[str]] = {
    User.Roles.SUPER_ADMIN: [ALL],
    User.Roles.TEAM: ['clients', 'calendar', 'chat', 'reports', 'dashboard'],
    User.Roles.CLIENT_ADMIN: CLIENT_PERMISSIONS,
    User.Roles.CLIENT_TEAM: CLIENT_PERMISSIONS,
}


def default_permissions_for_role(role: str) -> List[str]:
    return list(DEFAULT_ROLE_PERMS.get(role, []))


def get_permissions_for_user(user: User) -> Dict[str, bool]:
    """Module map for a user; an empty stored list falls back to the role default."""
    if not user or not user.is_authenticated:
        return {key: False for key in MODULE_KEYS}
    granted = list(user.permissions or []) or default_permissions_for_role(user.role)
    if user.is_superuser or ALL in granted:
        return {key: True for key in MODULE_KEYS}
    return {key: key in granted for key in MODULE_KEYS}


def has_module(user: User, *modules: str) -> bool:
    perms = get_permissions_for_user(user)
    return any(perms.get(module, False) for module in modules)
