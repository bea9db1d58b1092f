"""
Temporary storage for order import previews.

A parsed upload is kept in memory until the user confirms or the TTL
runs out. Single process only; previews do not survive a restart.
"""
import uuid
from datetime import datetime, timedelta
from typing import Optional

from config import settings
from exceptions import PreviewNotFoundError
from models.order_import import OrderImportPreview

_cache: dict[str, tuple[datetime, OrderImportPreview]] = {}


def new_preview_id() -> str:
    return str(uuid.uuid4())


def store_preview(preview: OrderImportPreview, ttl_minutes: Optional[int] = None) -> str:
    """Store a preview under its preview_id and return the id."""
    ttl = ttl_minutes or settings.import_preview_ttl_minutes
    _cache[preview.preview_id] = (datetime.now() + timedelta(minutes=ttl), preview)
    _cleanup_expired()
    return preview.preview_id


def retrieve_preview(preview_id: str) -> OrderImportPreview:
    """
    Get a stored preview.

    Raises:
        PreviewNotFoundError: If the id is unknown or expired
    """
    entry = _cache.get(preview_id)
    if entry is None:
        raise PreviewNotFoundError(preview_id)
    expires_at, preview = entry
    if datetime.now() > expires_at:
        del _cache[preview_id]
        raise PreviewNotFoundError(preview_id)
    return preview


def delete_preview(preview_id: str) -> None:
    """Remove preview after confirm or cancel."""
    _cache.pop(preview_id, None)


def _cleanup_expired() -> None:
    now = datetime.now()
    expired = [k for k, (exp, _) in _cache.items() if now > exp]
    for k in expired:
        del _cache[k]
