from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.orm import Session

from opsdash.auth import CurrentUser, get_current_user
from opsdash.config import settings
from opsdash.db import get_db
from opsdash.dependencies import get_client_ip, read_json_body
from opsdash.models import User
from opsdash.security.passwords import verify_password
from opsdash.security.sessions import create_web_session, revoke_web_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix='/api/auth', tags=['auth'])


def _invalid_credentials() -> JSONResponse:
    return JSONResponse({'error': 'Invalid username or password'}, status_code=401)


@router.post('/login')
async def login_submit(request: Request, db: Session = Depends(get_db)):
    payload = await read_json_body(request)
    username = str(payload.get('username', '')).strip()
    password = str(payload.get('password', ''))
    ip = get_client_ip(request)
    user_agent = request.headers.get('user-agent')

    user = db.execute(select(User).where(User.username == username)).scalar_one_or_none()
    if not user:
        logger.warning('Login failed for unknown username %r from %s', username, ip)
        return _invalid_credentials()

    if not user.active:
        logger.warning('Login refused for inactive user %r from %s', username, ip)
        return _invalid_credentials()

    if not verify_password(password, user.password_hash):
        logger.warning('Login failed for %r from %s: bad password', username, ip)
        return _invalid_credentials()

    token = create_web_session(db, user.id, ip=ip, user_agent=user_agent)
    db.commit()
    logger.info('User %r signed in from %s', username, ip)

    response = JSONResponse({'id': user.id, 'username': user.username})
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite=settings.session_cookie_samesite,
        max_age=settings.session_ttl_minutes * 60,
    )
    return response


@router.post('/logout')
def logout(request: Request, db: Session = Depends(get_db)):
    token = request.cookies.get(settings.session_cookie_name)
    if token:
        revoke_web_session(db, token)
        db.commit()

    response = JSONResponse({'success': True})
    response.delete_cookie(settings.session_cookie_name)
    return response


@router.get('/me')
def me(user: CurrentUser = Depends(get_current_user)):
    return {'id': user.id, 'username': user.username}
