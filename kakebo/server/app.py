"""FastAPI app creation, CORS, global state, and helper functions."""

import logging
import os
from typing import Optional

from fastapi import FastAPI, Header, HTTPException, Request, Security
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security import APIKeyHeader

from ..app import KakeboCopilot

logger = logging.getLogger(__name__)

_config_path = os.getenv("KAKEBO_CONFIG", "config.yaml")

_app: Optional[KakeboCopilot] = None


def _try_load_app():
    """Attempt to load KakeboCopilot from config. Silent if config missing."""
    global _app
    try:
        if os.path.exists(_config_path):
            _app = KakeboCopilot(_config_path)
            logger.info(f"Kakebo Copilot loaded from {_config_path}")
        else:
            logger.warning(f"Config not found: {_config_path}")
    except Exception as e:
        logger.warning(f"Failed to load config: {e}")
        _app = None


def require_app() -> KakeboCopilot:
    """Raise 503 if app is not configured. Lazy-loads on first call."""
    global _app
    if _app is None:
        _try_load_app()
    if _app is None:
        raise HTTPException(503, "Not configured. Set KAKEBO_CONFIG to a valid config file.")
    return _app


def set_app(new_app: Optional[KakeboCopilot]):
    """Set the global _app instance."""
    global _app
    _app = new_app


# ── Optional API key authentication ──

_API_KEY = os.getenv("KAKEBO_API_KEY")
_api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


async def verify_api_key(
    request: Request,
    api_key_header_value: Optional[str] = Security(_api_key_header),
):
    """Verify API key from Authorization: Bearer <key> or X-API-Key header.

    When KAKEBO_API_KEY is not set, all requests are allowed (dev mode).
    """
    if _API_KEY is None:
        return None

    if api_key_header_value and api_key_header_value == _API_KEY:
        return api_key_header_value

    auth_header = request.headers.get("authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header[7:]
        if token == _API_KEY:
            return token

    raise HTTPException(401, "Invalid or missing API key")


async def require_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    """The authenticated user id, set by the gateway in front of this service."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(401, "Missing X-User-Id header")
    return x_user_id.strip()


# --- FastAPI app creation (after all helpers are defined to avoid circular imports) ---

def _create_api() -> FastAPI:
    """Create and configure the FastAPI app with routes."""
    _api = FastAPI(title="Kakebo Copilot", version="0.1.0")

    allowed_origins_str = os.getenv(
        "KAKEBO_ALLOWED_ORIGINS",
        "http://localhost:3000,http://localhost:5173",
    )
    allowed_origins = [o.strip() for o in allowed_origins_str.split(",") if o.strip()]
    _api.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if _API_KEY is None:
        logger.warning(
            "KAKEBO_API_KEY is not set. API endpoints are unauthenticated. "
            "Set KAKEBO_API_KEY environment variable to enable authentication."
        )

    from .routes import register_routes
    register_routes(_api)
    return _api


api = _create_api()
