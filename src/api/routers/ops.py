import os
import logging
from fastapi import APIRouter, Depends, Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from api.metrics import SCHEDULED_NOTIFICATIONS

from api.dependencies import get_notification_service
from integration.notifications import NotificationService
from storage.notification_store import NotificationStore

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
async def health_check(
    service: NotificationService = Depends(get_notification_service),
) -> dict:
    """Health check endpoint for container orchestration."""
    health = {
        "status": "healthy",
        "profile": os.getenv("DEPLOYMENT_PROFILE", "unknown"),
        "notification_store": "json" if isinstance(service, NotificationStore) else "in-memory",
    }

    try:
        health["scheduled_notifications"] = len(await service.list_scheduled())
    except Exception as e:
        health["status"] = "degraded"
        health["scheduled_notifications"] = 0
        health["error"] = str(e)

    return health


@router.get("/metrics")
async def metrics(
    service: NotificationService = Depends(get_notification_service),
) -> Response:
    """
    Prometheus scrape endpoint.
    """
    try:
        SCHEDULED_NOTIFICATIONS.set(len(await service.list_scheduled()))
    except Exception:
        pass

    data = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)
