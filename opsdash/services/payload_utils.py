from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation

CENT = Decimal('0.01')


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def clean_text(value: object) -> str:
    if value is None:
        return ''
    return str(value).strip()


def optional_text(value: object) -> str | None:
    text = clean_text(value)
    return text or None


def parse_money(value: object, *, field: str) -> Decimal:
    if isinstance(value, bool):
        raise ValueError(f'Invalid amount for {field}')
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise ValueError(f'Invalid amount for {field}') from exc
    if not amount.is_finite():
        raise ValueError(f'Invalid amount for {field}')
    return amount.quantize(CENT)


def parse_quantity(value: object, *, field: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f'Invalid quantity for {field}')
    try:
        qty = Decimal(str(value).strip())
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise ValueError(f'Invalid quantity for {field}') from exc
    if not qty.is_finite() or qty != qty.to_integral_value():
        raise ValueError(f'Invalid quantity for {field}')
    return int(qty)


def parse_timestamp(value: object, *, field: str) -> datetime:
    raw = clean_text(value)
    if not raw:
        raise ValueError(f'{field} is required')
    if raw.endswith('Z'):
        raw = raw[:-1] + '+00:00'
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError as exc:
        raise ValueError(f'Invalid timestamp for {field}') from exc
    return as_utc(parsed)


def parse_flag(value: object, *, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return clean_text(value).lower() in {'1', 'true', 'yes', 'on'}
