import logging

from celery import current_app
from django.conf import settings
from django.core.cache import cache
from django.db import DatabaseError, connection
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from passgate.models import EphemeralRecord

logger = logging.getLogger(__name__)


@api_view(["GET"])
@permission_classes([AllowAny])
def health_check(request):
    """
    Health check endpoint for monitoring.
    """
    checks = {}

    try:
        connection.ensure_connection()
        checks["database"] = "ok"
    except DatabaseError as exc:
        logger.warning("Health check: database unavailable: %s", exc)
        checks["database"] = "error"

    try:
        cache.set("health_check", "ok", 10)
        checks["cache"] = "ok" if cache.get("health_check") == "ok" else "error"
    except Exception as exc:
        logger.warning("Health check: cache unavailable: %s", exc)
        checks["cache"] = "error"

    broker_url = (getattr(settings, "CELERY_BROKER_URL", "") or "").strip()
    if not broker_url or broker_url.startswith("memory://"):
        checks["celery"] = "not configured"
    else:
        try:
            inspector = current_app.control.inspect()
            stats = inspector.stats() if inspector else None
            checks["celery"] = "ok" if stats else "no workers"
        except Exception as exc:
            logger.warning("Health check: broker unavailable: %s", exc)
            checks["celery"] = "error"

    status_ok = all(value in ("ok", "not configured") for value in checks.values())
    body = {"status": "healthy" if status_ok else "degraded", "checks": checks}
    if status_ok:
        body["pending_records"] = EphemeralRecord.objects.count()

    return Response(body, status=200 if status_ok else 503)
