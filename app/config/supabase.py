# app/config/supabase.py
"""
Process-wide supabase-py client for the pantry tables.

The client is built once from SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY. When
either is missing or the URL is not a `https://<ref>.supabase.co` project URL,
`client` is None and every repository reports "not configured" instead of
failing at import time.
"""
from __future__ import annotations

import logging
import re
from typing import Any, Dict, Optional
from urllib.parse import urlparse

from supabase import Client, create_client

from app.config.settings import settings

logger = logging.getLogger(__name__)

_PROJECT_URL_RE = re.compile(r"^https://[A-Za-z0-9\-]+\.supabase\.co/?$")

# cheapest table every deployment has
HEALTH_CHECK_TABLE = "inventory_items"


def is_valid_supabase_url(url: Optional[str]) -> bool:
    return bool(url and _PROJECT_URL_RE.match(url))


def _build_client(url: Optional[str], key: Optional[str]) -> Optional[Client]:
    url = (url or "").strip()
    if not url or not key:
        logger.debug("Supabase not configured (url=%r, key set=%s)", url, bool(key))
        return None
    if not is_valid_supabase_url(url):
        logger.error("SUPABASE_URL %r is not a project URL (https://<ref>.supabase.co)", url)
        return None
    try:
        client = create_client(url, key)
    except Exception as exc:
        logger.exception("Could not create Supabase client: %s", exc)
        return None
    logger.info("Supabase client ready for %s", urlparse(url).netloc)
    return client


class SupabaseClient:
    """Holder for the shared client plus a blocking health check used by /health and /ready."""

    def __init__(self, url: Optional[str] = None, key: Optional[str] = None) -> None:
        self._url = url if url is not None else settings.supabase_url
        self._key = key if key is not None else settings.supabase_service_role_key
        self._client: Optional[Client] = _build_client(self._url, self._key)

    @property
    def client(self) -> Optional[Client]:
        return self._client

    def diagnostics(self) -> Dict[str, Any]:
        """Structural facts only; never includes the key."""
        return {
            "configured": bool(self._url and self._key),
            "client_present": self._client is not None,
            "host": urlparse(self._url).netloc or None if self._url else None,
        }

    def health_check(self) -> bool:
        """One-row select on the inventory table. Blocking; run it in an executor."""
        if self._client is None:
            return False
        try:
            res = self._client.table(HEALTH_CHECK_TABLE).select("id").limit(1).execute()
        except Exception as exc:
            logger.warning("Supabase health check failed: %s", exc)
            return False
        if getattr(res, "error", None):
            logger.warning("Supabase health check returned an error: %s", res.error)
            return False
        status_code = getattr(res, "status_code", None)
        return not (isinstance(status_code, int) and status_code >= 400)


supabase_client = SupabaseClient()
