from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from opsdash.auth import get_current_user
from opsdash.db import get_db
from opsdash.dependencies import read_json_body
from opsdash.services.settings_service import SettingsView, get_settings, save_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix='/api/settings', tags=['settings'], dependencies=[Depends(get_current_user)])


def settings_payload(view: SettingsView) -> dict:
    return {
        'businessName': view.business_name,
        'businessEmail': view.business_email,
        'currency': view.currency,
        'businessFunding': float(view.business_funding),
        'notificationsEnabled': view.notifications_enabled,
        'emailNotifications': view.email_notifications,
    }


@router.get('')
def settings_detail(db: Session = Depends(get_db)):
    try:
        view = get_settings(db)
    except SQLAlchemyError:
        logger.exception('Error fetching settings')
        return JSONResponse(settings_payload(SettingsView()), status_code=500)
    return settings_payload(view)


@router.post('')
async def settings_submit(request: Request, db: Session = Depends(get_db)):
    payload = await read_json_body(request)
    try:
        view = save_settings(db, payload)
        db.commit()
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except SQLAlchemyError as exc:
        logger.exception('Error saving settings')
        raise HTTPException(status_code=500, detail='Failed to save settings') from exc
    logger.info('Settings saved for %r', view.business_name)
    return settings_payload(view)
