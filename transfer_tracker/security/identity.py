from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from transfer_tracker.auth import Identity
from transfer_tracker.config import settings

AUTH_EXEMPT_PATHS = {'/health', '/docs', '/openapi.json'}


def load_identity_from_headers(headers) -> Identity | None:
    user_id = (headers.get(settings.identity_id_header) or '').strip()
    email = (headers.get(settings.identity_email_header) or '').strip()
    if not user_id or not email:
        return None
    display_name = (headers.get(settings.identity_name_header) or '').strip() or None
    return Identity(id=user_id, email=email, display_name=display_name)


def install_identity_middleware(app: FastAPI) -> None:
    """Trust the identity forwarded by the authenticating proxy in front of the API."""

    @app.middleware('http')
    async def identity_middleware(request: Request, call_next):
        request.state.identity = load_identity_from_headers(request.headers)
        if request.url.path not in AUTH_EXEMPT_PATHS and request.state.identity is None:
            return JSONResponse({'detail': 'Not authenticated'}, status_code=401)
        return await call_next(request)
