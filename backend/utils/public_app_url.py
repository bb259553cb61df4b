"""
Public base URLs for links placed in emails, redirects and hosted asset URLs.
No other code should build frontend or asset links directly.
"""
import os
import logging

logger = logging.getLogger(__name__)


def _normalize(raw: str) -> str:
    raw = (raw or "").strip().rstrip("/")
    if raw.startswith("http://") and "localhost" not in raw and "127.0.0.1" not in raw:
        raw = "https://" + raw.split("://", 1)[1]
    return raw


def get_frontend_base_url() -> str:
    """
    Frontend base URL (no trailing slash) from FRONTEND_URL.

    Falls back to http://localhost:5173 outside production; raises ValueError
    in production when unset so callers do not send broken links.
    """
    raw = _normalize(os.getenv("FRONTEND_URL") or "")
    if raw:
        return raw
    env = (os.getenv("ENVIRONMENT") or "").strip().lower()
    if env in ("production", "prod"):
        raise ValueError("FRONTEND_URL must be set in production (no trailing slash).")
    logger.warning("FRONTEND_URL not set; using http://localhost:5173")
    return "http://localhost:5173"


def get_public_api_url() -> str:
    """Backend base URL used to build hosted asset URLs."""
    raw = _normalize(os.getenv("PUBLIC_API_URL") or "")
    return raw or "http://localhost:8001"


def frontend_link(path: str) -> str:
    return f"{get_frontend_base_url()}/{path.lstrip('/')}"


def asset_url(file_id: str) -> str:
    return f"{get_public_api_url()}/api/v1/files/{file_id}"
