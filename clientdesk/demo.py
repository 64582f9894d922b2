from __future__ import annotations

import logging

from django.conf import settings
from django.db import transaction

from .models import Client, User
from .permissions import CLIENT_PERMISSIONS, DEFAULT_ROLE_PERMS

logger = logging.getLogger(__name__)

DEMO_PASSWORD = 'password123'

DEMO_CLIENT = {
    'name': 'Nik Salwani Bt.Nik Ab Rahman',
    'business_name': 'Salwani Enterprise',
    'email': 'nik.salwani@sentra.com',
    'phone': '+60 12-345 6789',
    'status': Client.Status.PENDING,
    'package_name': 'Starter Package',
}

DEMO_ACCOUNTS = {
    'admin@sentra.com': {
        'username': 'admin',
        'name': 'Admin User',
        'role': User.Roles.SUPER_ADMIN,
        'permissions': DEFAULT_ROLE_PERMS[User.Roles.SUPER_ADMIN],
    },
    'client@sentra.com': {
        'username': 'client',
        'name': 'Nik Salwani Bt.Nik Ab Rahman',
        'role': User.Roles.CLIENT_ADMIN,
        'permissions': CLIENT_PERMISSIONS,
    },
    'team@sentra.com': {
        'username': 'team',
        'name': 'Team Member',
        'role': User.Roles.TEAM,
        'permissions': DEFAULT_ROLE_PERMS[User.Roles.TEAM],
    },
}


def demo_login_enabled() -> bool:
    return bool(getattr(settings, 'SENTRA_DEMO_LOGIN', False))


def ensure_demo_client() -> Client:
    """Client 1 on a fresh database; reused when it already exists."""
    client = Client.objects.filter(pk=1).first()
    if client:
        return client
    client, _ = Client.objects.get_or_create(email=DEMO_CLIENT['email'], defaults=DEMO_CLIENT)
    return client


@transaction.atomic
def provision_demo_user(email: str) -> User:
    account = DEMO_ACCOUNTS[email]
    defaults = {
        'username': account['username'],
        'name': account['name'],
        'role': account['role'],
        'permissions': list(account['permissions']),
        'is_staff': account['role'] == User.Roles.SUPER_ADMIN,
    }
    if account['role'] in User.CLIENT_ROLES:
        defaults['client'] = ensure_demo_client()
    user = User.objects.filter(email__iexact=email).first()
    if user is None:
        if User.objects.filter(username=defaults['username']).exists():
            defaults['username'] = email
        user = User(email=email, **defaults)
        user.set_password(DEMO_PASSWORD)
        user.save()
        logger.info("Provisioned demo account %s", email)
    elif user.role in User.CLIENT_ROLES and user.client_id is None:
        user.client = ensure_demo_client()
        user.save(update_fields=['client', 'updated_at'])
        logger.info("Re-linked demo account %s to client %s", email, user.client_id)
    return user


def authenticate_demo(login: str | None, password: str | None) -> User | None:
    """Fixed demo credentials; None unless the fallback is switched on."""
    if not demo_login_enabled() or not login or password != DEMO_PASSWORD:
        return None
    email = login.strip().lower()
    if email not in DEMO_ACCOUNTS:
        return None
    user = provision_demo_user(email)
    if user.status != User.Status.ACTIVE:
        return None
    logger.warning("Password sign-in failed for %s; using demo fallback", email)
    return user
