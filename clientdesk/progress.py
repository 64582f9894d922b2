from __future__ import annotations

import datetime as dt
import logging
import uuid
from typing import Iterable

from django.db import transaction
from django.utils import timezone

from .models import Client, Component, Invoice, ProgressStep, Tag, User

logger = logging.getLogger(__name__)

PACKAGE_STEP_DAYS = 60
COMPONENT_STEP_DAYS = 30
DEFAULT_TAG_COLOR = '#3B82F6'


def package_step_title(package_name: str) -> str:
    return f"{package_name} - Package Setup"


def _create_step_once(client_id: int, title: str, **fields) -> bool:
    """Insert a step unless the client already has one with this title; duplicates may exist."""
    title = title[:255]
    if ProgressStep.objects.filter(client_id=client_id, title=title).exists():
        return False
    ProgressStep.objects.create(client_id=client_id, title=title, **fields)
    return True


def ensure_package_step(client_id: int, package_name: str, *, now: dt.datetime | None = None) -> bool:
    """Create the package setup step for a client unless one already exists."""
    now = now or timezone.now()
    return _create_step_once(
        client_id,
        package_step_title(package_name),
        description=f"Complete the setup and delivery of {package_name} package",
        deadline=now + dt.timedelta(days=PACKAGE_STEP_DAYS),
        important=True,
    )


def ensure_component_step(client_id: int, component_name: str, *, now: dt.datetime | None = None) -> bool:
    now = now or timezone.now()
    return _create_step_once(
        client_id,
        component_name,
        description=f"Complete the {component_name} component",
        deadline=now + dt.timedelta(days=COMPONENT_STEP_DAYS),
        important=False,
    )


def ensure_package_tag(package_name: str) -> bool:
    _, created = Tag.objects.get_or_create(name=package_name[:100], defaults={'color': DEFAULT_TAG_COLOR})
    return created


def after_invoice_created(invoice: Invoice) -> None:
    """Secondary writes for a new invoice; failures are logged, never raised."""
    try:
        with transaction.atomic():
            ensure_package_tag(invoice.package_name)
    except Exception:
        logger.exception("Failed to create tag for package %r (invoice %s)", invoice.package_name, invoice.pk)
    try:
        with transaction.atomic():
            ensure_package_step(invoice.client_id, invoice.package_name)
    except Exception:
        logger.exception("Failed to create package setup step for invoice %s", invoice.pk)


def after_components_created(components: Iterable[Component]) -> None:
    for component in components:
        try:
            with transaction.atomic():
                ensure_component_step(component.client_id, component.name)
        except Exception:
            logger.exception("Failed to create progress step for component %s", component.pk)


def sync_progress_steps(client: Client, *, now: dt.datetime | None = None) -> int:
    """Create the missing package and component steps for one client."""
    now = now or timezone.now()
    created_count = 0
    package_names = (
        Invoice.objects.filter(client=client).order_by('created_at').values_list('package_name', flat=True).distinct()
    )
    for package_name in package_names:
        if ensure_package_step(client.pk, package_name, now=now):
            created_count += 1
    component_names = (
        Component.objects.filter(client=client).order_by('created_at').values_list('name', flat=True).distinct()
    )
    for name in component_names:
        if ensure_component_step(client.pk, name, now=now):
            created_count += 1
    if created_count:
        logger.info("Created %s progress step(s) for client %s", created_count, client.pk)
    return created_count


def add_comment(step: ProgressStep, *, text: str, author: User | None) -> dict:
    comment = {
        'id': f"comment-{uuid.uuid4().hex[:12]}",
        'text': text,
        'username': author.display_name if author else 'System',
        'timestamp': timezone.now().isoformat(),
    }
    comments = list(step.comments or [])
    comments.append(comment)
    step.comments = comments
    step.save(update_fields=['comments', 'updated_at'])
    return comment
