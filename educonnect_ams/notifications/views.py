"""
Notification center endpoints (JSON) for the signed-in user.
Dashboards read from here; nothing here changes reminder state.
"""

from django.contrib.auth.decorators import login_required
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from reminders.services.history import (
    reminder_history,
    serialize_audit_entry,
    serialize_reminder,
    upcoming_reminders,
)

from .models import Notification
from .services.preferences import get_preference, update_preference


def serialize_notification(n):
    return {
        "id": n.pk,
        "kind": n.kind,
        "channel": n.channel,
        "status": n.status,
        "title": n.title,
        "message": n.message,
        "reference_type": n.reference_type,
        "reference_id": n.reference_id,
        "payload": n.payload,
        "email_sent": n.email_sent,
        "created_at": n.created_at,
        "read_at": n.read_at,
        "expires_at": n.expires_at,
    }


# ============================================================
# NOTIFICATIONS
# ============================================================

@login_required
@require_GET
def notification_list(request):
    """
    Optional filters:
    - ?status=unread|read|dismissed  (dismissed hidden by default)
    - ?kind=reminder|grade|announcement|system
    """
    qs = Notification.objects.filter(user=request.user)

    status = request.GET.get("status")
    if status:
        qs = qs.filter(status=status)
    else:
        qs = qs.exclude(status=Notification.Status.DISMISSED)

    kind = request.GET.get("kind")
    if kind:
        qs = qs.filter(kind=kind)

    return JsonResponse({
        "results": [serialize_notification(n) for n in qs[:100]],
        "unread_count": Notification.unread_count(request.user),
    })


@login_required
@require_GET
def unread_count(request):
    return JsonResponse({"unread_count": Notification.unread_count(request.user)})


@login_required
@require_POST
def mark_read(request, pk):
    notification = get_object_or_404(Notification, pk=pk, user=request.user)
    notification.mark_as_read()
    return JsonResponse(serialize_notification(notification))


@login_required
@require_POST
def dismiss(request, pk):
    notification = get_object_or_404(Notification, pk=pk, user=request.user)
    notification.dismiss()
    return JsonResponse(serialize_notification(notification))


@login_required
@require_POST
def mark_all_read(request):
    updated = Notification.mark_all_as_read(request.user, kind=request.POST.get("kind"))
    return JsonResponse({"updated": updated})


# ============================================================
# PREFERENCES
# ============================================================

@login_required
@require_http_methods(["GET", "POST"])
def preferences(request):
    if request.method == "POST":
        email_enabled = request.POST.get("email_enabled")
        try:
            preference = update_preference(
                request.user,
                channel=request.POST.get("channel") or None,
                email_enabled=None if email_enabled is None else email_enabled.lower() in ("1", "true", "on"),
            )
        except ValueError as exc:
            return JsonResponse({"error": str(exc)}, status=400)
    else:
        preference = get_preference(request.user)

    return JsonResponse({
        "channel": preference.channel if preference else Notification.Channel.BOTH,
        "email_enabled": preference.email_enabled if preference else True,
    })


# ============================================================
# REMINDERS
# ============================================================

@login_required
@require_GET
def reminders_upcoming(request):
    return JsonResponse({
        "results": [serialize_reminder(r) for r in upcoming_reminders(request.user)],
    })


@login_required
@require_GET
def reminders_history(request):
    try:
        limit = min(int(request.GET.get("limit", 50)), 200)
    except ValueError:
        limit = 50

    return JsonResponse({
        "results": [serialize_audit_entry(e) for e in reminder_history(request.user, limit=limit)],
    })
