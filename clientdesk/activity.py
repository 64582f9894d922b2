from __future__ import annotations

from django.utils import timezone

from clientdesk.models import Client


def touch_client_activity(client_id: int | None, *, today=None) -> None:
    """Stamp the client's last_activity; skipped when it is already current."""
    if not client_id:
        return
    today = today or timezone.localdate()
    Client.objects.filter(pk=client_id).exclude(last_activity=today).update(last_activity=today)
