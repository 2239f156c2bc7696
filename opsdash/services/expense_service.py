from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from opsdash.errors import NotFoundError
from opsdash.models import Expense, ExpenseCategory, ExpenseItem
from opsdash.services.payload_utils import (
    clean_text,
    optional_text,
    parse_money,
    parse_quantity,
    parse_timestamp,
)


@dataclass(frozen=True)
class ExpenseLine:
    description: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal


@dataclass(frozen=True)
class ExpenseRecord:
    id: int
    description: str
    amount: Decimal
    category: str
    vendor: str
    date: datetime
    notes: str | None
    created_at: datetime
    items: list[ExpenseLine]


@dataclass(frozen=True)
class ExpenseDraft:
    description: str
    amount: Decimal
    category: str
    vendor: str
    date: datetime
    notes: str | None
    items: list[ExpenseLine]


def normalize_category(value: object) -> str:
    raw = clean_text(value).lower()
    try:
        return ExpenseCategory(raw).value
    except ValueError as exc:
        raise ValueError(f'Unknown expense category: {clean_text(value)}') from exc


def _parse_items(raw_items: object) -> list[ExpenseLine]:
    if not isinstance(raw_items, list):
        return []
    lines: list[ExpenseLine] = []
    for idx, raw in enumerate(raw_items, start=1):
        if not isinstance(raw, dict):
            raise ValueError(f'Invalid expense item #{idx}')
        description = clean_text(raw.get('description'))
        if not description:
            raise ValueError(f'Expense item #{idx} is missing a description')
        quantity = parse_quantity(raw.get('quantity'), field=f'expense item #{idx}')
        if quantity < 1:
            raise ValueError(f'Quantity must be at least 1 for expense item #{idx}')
        unit_price = parse_money(raw.get('unitPrice'), field=f'expense item #{idx}')
        if unit_price < 0:
            raise ValueError(f'Unit price cannot be negative for expense item #{idx}')
        lines.append(
            ExpenseLine(description=description, quantity=quantity, unit_price=unit_price, total_price=unit_price * quantity)
        )
    return lines


def parse_expense_payload(payload: dict) -> ExpenseDraft:
    description = clean_text(payload.get('description'))
    vendor = clean_text(payload.get('vendor'))
    raw_category = payload.get('category')
    raw_date = payload.get('date')
    items = _parse_items(payload.get('items'))
    if not description or not clean_text(raw_category) or not vendor or not clean_text(raw_date) or not items:
        raise ValueError('Missing required fields')

    raw_amount = payload.get('amount')
    if raw_amount is None or clean_text(raw_amount) == '':
        # Clients normally send the item total; the two are not cross-checked.
        amount = sum((item.total_price for item in items), Decimal('0.00'))
    else:
        amount = parse_money(raw_amount, field='amount')

    return ExpenseDraft(
        description=description,
        amount=amount,
        category=normalize_category(raw_category),
        vendor=vendor,
        date=parse_timestamp(raw_date, field='date'),
        notes=optional_text(payload.get('notes')),
        items=items,
    )


def _items_by_expense(db: Session, expense_ids: list[int]) -> dict[int, list[ExpenseLine]]:
    by_expense: dict[int, list[ExpenseLine]] = {expense_id: [] for expense_id in expense_ids}
    if not expense_ids:
        return by_expense
    rows = db.execute(
        select(ExpenseItem).where(ExpenseItem.expense_id.in_(expense_ids)).order_by(ExpenseItem.id.asc())
    ).scalars().all()
    for row in rows:
        by_expense[row.expense_id].append(
            ExpenseLine(
                description=row.description,
                quantity=row.quantity,
                unit_price=row.unit_price,
                total_price=row.total_price,
            )
        )
    return by_expense


def _to_record(expense: Expense, items: list[ExpenseLine]) -> ExpenseRecord:
    return ExpenseRecord(
        id=expense.id,
        description=expense.description,
        amount=expense.amount,
        category=expense.category,
        vendor=expense.vendor,
        date=expense.date,
        notes=expense.notes,
        created_at=expense.created_at,
        items=items,
    )


def load_expenses(db: Session, *, limit: int | None = None) -> list[ExpenseRecord]:
    query = select(Expense).order_by(Expense.date.desc(), Expense.id.desc())
    if limit is not None:
        query = query.limit(limit)
    expenses = db.execute(query).scalars().all()

    items = _items_by_expense(db, [expense.id for expense in expenses])
    return [_to_record(expense, items[expense.id]) for expense in expenses]


def list_expenses(db: Session) -> list[ExpenseRecord]:
    return load_expenses(db)


def create_expense(db: Session, payload: dict) -> ExpenseRecord:
    draft = parse_expense_payload(payload)
    expense = Expense(
        description=draft.description,
        amount=draft.amount,
        category=draft.category,
        vendor=draft.vendor,
        date=draft.date,
        notes=draft.notes,
    )
    db.add(expense)
    db.flush()

    for item in draft.items:
        db.add(
            ExpenseItem(
                expense_id=expense.id,
                description=item.description,
                quantity=item.quantity,
                unit_price=item.unit_price,
                total_price=item.total_price,
            )
        )
    db.flush()
    db.refresh(expense)
    return _to_record(expense, list(draft.items))


def delete_expense(db: Session, expense_id: int) -> None:
    expense = db.execute(select(Expense).where(Expense.id == expense_id)).scalar_one_or_none()
    if not expense:
        raise NotFoundError('Expense not found')
    db.execute(delete(ExpenseItem).where(ExpenseItem.expense_id == expense.id))
    db.delete(expense)
    db.flush()
