from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from opsdash.models import BusinessSettings
from opsdash.services.payload_utils import clean_text, parse_flag, parse_money

SETTINGS_ROW_ID = 1
DEFAULT_CURRENCY = 'XCD'


@dataclass(frozen=True)
class SettingsView:
    business_name: str = ''
    business_email: str = ''
    currency: str = DEFAULT_CURRENCY
    business_funding: Decimal = Decimal('0.00')
    notifications_enabled: bool = True
    email_notifications: bool = True


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def load_settings_row(db: Session) -> BusinessSettings | None:
    return db.execute(select(BusinessSettings).where(BusinessSettings.id == SETTINGS_ROW_ID)).scalar_one_or_none()


def _to_view(row: BusinessSettings) -> SettingsView:
    return SettingsView(
        business_name=row.business_name,
        business_email=row.business_email,
        currency=row.currency,
        business_funding=row.business_funding,
        notifications_enabled=row.notifications_enabled,
        email_notifications=row.email_notifications,
    )


def get_settings(db: Session) -> SettingsView:
    row = load_settings_row(db)
    if not row:
        return SettingsView()
    return _to_view(row)


def _validate_currency(value: object) -> str:
    currency = clean_text(value).upper()
    if not currency.isalpha() or not 3 <= len(currency) <= 8:
        raise ValueError('Currency must be an alphabetic currency code')
    return currency


def save_settings(db: Session, payload: dict) -> SettingsView:
    row = load_settings_row(db)
    if not row:
        row = BusinessSettings(
            id=SETTINGS_ROW_ID,
            business_name='',
            business_email='',
            currency=DEFAULT_CURRENCY,
            business_funding=Decimal('0.00'),
            notifications_enabled=True,
            email_notifications=True,
        )
        db.add(row)

    if 'businessName' in payload:
        row.business_name = clean_text(payload['businessName'])
    if 'businessEmail' in payload:
        row.business_email = clean_text(payload['businessEmail'])
    if 'currency' in payload:
        row.currency = _validate_currency(payload['currency'])
    if 'businessFunding' in payload:
        row.business_funding = parse_money(payload['businessFunding'], field='businessFunding')
    if 'notificationsEnabled' in payload:
        row.notifications_enabled = parse_flag(payload['notificationsEnabled'], default=row.notifications_enabled)
    if 'emailNotifications' in payload:
        row.email_notifications = parse_flag(payload['emailNotifications'], default=row.email_notifications)
    row.updated_at = _now()

    db.flush()
    return _to_view(row)
