from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import select

from opsdash.auth import CurrentUser
from opsdash.config import settings
from opsdash.db import SessionLocal
from opsdash.models import User, WebSession
from opsdash.services.payload_utils import as_utc


AUTH_EXEMPT_PATHS = {'/api/auth/login', '/health'}


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def _session_expiry() -> datetime:
    return _now() + timedelta(minutes=settings.session_ttl_minutes)


def create_web_session(db, user_id: int, ip: str | None, user_agent: str | None) -> str:
    token = secrets.token_urlsafe(48)
    web_session = WebSession(
        session_token=token,
        user_id=user_id,
        ip=ip,
        user_agent=user_agent,
        expires_at=_session_expiry(),
    )
    db.add(web_session)
    db.flush()
    return token


def revoke_web_session(db, token: str) -> None:
    session = db.execute(select(WebSession).where(WebSession.session_token == token)).scalar_one_or_none()
    if not session or session.revoked_at is not None:
        return
    session.revoked_at = _now()


def load_user_from_token(db, token: str | None) -> CurrentUser | None:
    if not token:
        return None

    row = db.execute(
        select(WebSession, User)
        .join(User, User.id == WebSession.user_id)
        .where(WebSession.session_token == token)
    ).one_or_none()
    if not row:
        return None

    web_session, user = row
    now = _now()
    if web_session.revoked_at is not None or as_utc(web_session.expires_at) <= now:
        return None

    web_session.last_seen_at = now
    web_session.expires_at = _session_expiry()
    return CurrentUser(id=user.id, username=user.username, active=user.active)


def _requires_session(path: str) -> bool:
    return path.startswith('/api/') and path not in AUTH_EXEMPT_PATHS


def install_auth_session_middleware(app: FastAPI) -> None:
    @app.middleware('http')
    async def auth_session_middleware(request: Request, call_next):
        token = request.cookies.get(settings.session_cookie_name)
        with SessionLocal() as db:
            user = load_user_from_token(db, token)
            request.state.user = user
            db.commit()

        if _requires_session(request.url.path) and request.state.user is None:
            return JSONResponse({'error': 'Not authenticated'}, status_code=401)

        response = await call_next(request)
        return response
