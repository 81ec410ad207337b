"""
Admin actions over the cached index and its settings.

All routes require the `X-Admin-Token` header to match the configured admin
token. When no token is configured, admin actions are refused.
"""

from __future__ import annotations

import logging
import secrets
from typing import Optional

from fastapi import APIRouter, Depends, Form, Header, HTTPException, status

from product_update_server.core.dependencies import get_admin_token, get_update_server
from product_update_server.services.update_server import UpdateServer

logger = logging.getLogger(__name__)

ADMIN_TOKEN_HEADER = "X-Admin-Token"


async def require_admin(
    x_admin_token: Optional[str] = Header(default=None, alias=ADMIN_TOKEN_HEADER),
    expected: str = Depends(get_admin_token),
) -> None:
    """
    Dependency function to require a valid admin token.

    Raises:
        HTTPException: 401 if the token is missing, wrong, or not configured.
    """
    if not expected or not x_admin_token or not secrets.compare_digest(x_admin_token, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )


router = APIRouter(prefix="/admin", dependencies=[Depends(require_admin)])


def _status_payload(server: UpdateServer) -> dict:
    index_status = server.index_status()
    schedule = server.schedule_state()
    return {
        "generated_at": index_status.generated_at.isoformat() if index_status else None,
        "cached_items": len(index_status.data) if index_status else 0,
        "settings": server.settings.get_settings().model_dump(mode="json"),
        "schedule": schedule.model_dump(mode="json"),
    }


@router.get("/status")
def admin_status(server: UpdateServer = Depends(get_update_server)) -> dict:
    """
    When the index was last generated and how many products it holds.
    """
    return _status_payload(server)


@router.post("/settings")
def admin_save_settings(
    cache_ttl: Optional[int] = Form(default=None),
    enable_cron: Optional[str] = Form(default=None),
    server: UpdateServer = Depends(get_update_server),
) -> dict:
    """
    Save cache lifetime and the automatic refresh toggle, then reschedule.

    `enable_cron` behaves like a checkbox: any submitted value other than
    an explicit false-like value enables it, absence disables it.
    """
    enabled = enable_cron is not None and enable_cron.strip().lower() not in ("0", "false", "off", "no", "")
    settings = server.save_settings(cache_ttl, enabled)
    logger.info("Admin saved update server settings")
    return {
        "message": "Settings saved.",
        "settings": settings.model_dump(mode="json"),
        "schedule": server.schedule_state().model_dump(mode="json"),
    }


@router.post("/refresh")
def admin_refresh(server: UpdateServer = Depends(get_update_server)) -> dict:
    """
    Rebuild the index now.
    """
    server.refresh_index()
    logger.info("Admin rebuilt the update index")
    payload = _status_payload(server)
    payload["message"] = "Index rebuilt."
    return payload
