from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from opsdash.errors import NotFoundError
from opsdash.models import Order, OrderFee, OrderItem
from opsdash.services.payload_utils import (
    clean_text,
    optional_text,
    parse_money,
    parse_quantity,
    parse_timestamp,
)

EDITABLE_FIELDS = ('customerName', 'description', 'address', 'deliveryTime')


@dataclass(frozen=True)
class OrderLine:
    name: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal


@dataclass(frozen=True)
class OrderFeeLine:
    name: str
    amount: Decimal


@dataclass(frozen=True)
class OrderRecord:
    id: int
    customer_name: str
    description: str | None
    address: str
    delivery_time: datetime
    is_completed: bool
    total_amount: Decimal
    created_at: datetime
    items: list[OrderLine]
    fees: list[OrderFeeLine]


@dataclass(frozen=True)
class OrderDraft:
    customer_name: str
    description: str | None
    address: str
    delivery_time: datetime
    items: list[OrderLine]
    fees: list[OrderFeeLine]

    @property
    def total_amount(self) -> Decimal:
        items_total = sum((item.total_price for item in self.items), Decimal('0.00'))
        fees_total = sum((fee.amount for fee in self.fees), Decimal('0.00'))
        return items_total + fees_total


def _parse_items(raw_items: object) -> list[OrderLine]:
    if not isinstance(raw_items, list):
        return []
    lines: list[OrderLine] = []
    for idx, raw in enumerate(raw_items, start=1):
        if not isinstance(raw, dict):
            raise ValueError(f'Invalid order item #{idx}')
        name = clean_text(raw.get('name'))
        if not name:
            raise ValueError(f'Order item #{idx} is missing a name')
        quantity = parse_quantity(raw.get('quantity'), field=f'order item #{idx}')
        if quantity < 1:
            raise ValueError(f'Quantity must be at least 1 for order item #{idx}')
        unit_price = parse_money(raw.get('unitPrice'), field=f'order item #{idx}')
        if unit_price < 0:
            raise ValueError(f'Unit price cannot be negative for order item #{idx}')
        lines.append(OrderLine(name=name, quantity=quantity, unit_price=unit_price, total_price=unit_price * quantity))
    return lines


def _parse_fees(raw_fees: object) -> list[OrderFeeLine]:
    if raw_fees is None:
        return []
    if not isinstance(raw_fees, list):
        raise ValueError('Additional fees must be a list')
    fees: list[OrderFeeLine] = []
    for idx, raw in enumerate(raw_fees, start=1):
        if not isinstance(raw, dict):
            raise ValueError(f'Invalid additional fee #{idx}')
        fees.append(
            OrderFeeLine(
                name=clean_text(raw.get('name')),
                amount=parse_money(raw.get('amount'), field=f'additional fee #{idx}'),
            )
        )
    return fees


def parse_order_payload(payload: dict) -> OrderDraft:
    customer_name = clean_text(payload.get('customerName'))
    address = clean_text(payload.get('address'))
    raw_delivery = payload.get('deliveryTime')
    items = _parse_items(payload.get('orderItems'))
    if not customer_name or not address or not clean_text(raw_delivery) or not items:
        raise ValueError('Missing required fields')

    draft = OrderDraft(
        customer_name=customer_name,
        description=optional_text(payload.get('description')),
        address=address,
        delivery_time=parse_timestamp(raw_delivery, field='deliveryTime'),
        items=items,
        fees=_parse_fees(payload.get('additionalFees')),
    )
    # Negative fees act as discounts but may not push the total below zero.
    if draft.total_amount < 0:
        raise ValueError('Order total cannot be negative')
    return draft


def _items_by_order(db: Session, order_ids: list[int]) -> dict[int, list[OrderLine]]:
    by_order: dict[int, list[OrderLine]] = {order_id: [] for order_id in order_ids}
    if not order_ids:
        return by_order
    rows = db.execute(
        select(OrderItem).where(OrderItem.order_id.in_(order_ids)).order_by(OrderItem.id.asc())
    ).scalars().all()
    for row in rows:
        by_order[row.order_id].append(
            OrderLine(name=row.name, quantity=row.quantity, unit_price=row.unit_price, total_price=row.total_price)
        )
    return by_order


def _fees_by_order(db: Session, order_ids: list[int]) -> dict[int, list[OrderFeeLine]]:
    by_order: dict[int, list[OrderFeeLine]] = {order_id: [] for order_id in order_ids}
    if not order_ids:
        return by_order
    rows = db.execute(
        select(OrderFee).where(OrderFee.order_id.in_(order_ids)).order_by(OrderFee.id.asc())
    ).scalars().all()
    for row in rows:
        by_order[row.order_id].append(OrderFeeLine(name=row.name, amount=row.amount))
    return by_order


def _to_record(order: Order, items: list[OrderLine], fees: list[OrderFeeLine]) -> OrderRecord:
    return OrderRecord(
        id=order.id,
        customer_name=order.customer_name,
        description=order.description,
        address=order.address,
        delivery_time=order.delivery_time,
        is_completed=order.is_completed,
        total_amount=order.total_amount,
        created_at=order.created_at,
        items=items,
        fees=fees,
    )


def load_orders(db: Session, *, limit: int | None = None) -> list[OrderRecord]:
    query = select(Order).order_by(Order.created_at.desc(), Order.id.desc())
    if limit is not None:
        query = query.limit(limit)
    orders = db.execute(query).scalars().all()

    order_ids = [order.id for order in orders]
    items = _items_by_order(db, order_ids)
    fees = _fees_by_order(db, order_ids)
    return [_to_record(order, items[order.id], fees[order.id]) for order in orders]


def list_orders(db: Session) -> list[OrderRecord]:
    return load_orders(db)


def _get_order_row(db: Session, order_id: int) -> Order:
    order = db.execute(select(Order).where(Order.id == order_id)).scalar_one_or_none()
    if not order:
        raise NotFoundError('Order not found')
    return order


def _record_for(db: Session, order: Order) -> OrderRecord:
    return _to_record(order, _items_by_order(db, [order.id])[order.id], _fees_by_order(db, [order.id])[order.id])


def get_order(db: Session, order_id: int) -> OrderRecord:
    return _record_for(db, _get_order_row(db, order_id))


def create_order(db: Session, payload: dict) -> OrderRecord:
    draft = parse_order_payload(payload)
    order = Order(
        customer_name=draft.customer_name,
        description=draft.description,
        address=draft.address,
        delivery_time=draft.delivery_time,
        is_completed=False,
        total_amount=draft.total_amount,
    )
    db.add(order)
    db.flush()

    for item in draft.items:
        db.add(
            OrderItem(
                order_id=order.id,
                name=item.name,
                quantity=item.quantity,
                unit_price=item.unit_price,
                total_price=item.total_price,
            )
        )
    for fee in draft.fees:
        db.add(OrderFee(order_id=order.id, name=fee.name, amount=fee.amount))
    db.flush()
    db.refresh(order)
    return _to_record(order, list(draft.items), list(draft.fees))


def update_order(db: Session, order_id: int, payload: dict) -> OrderRecord:
    """
    Edit the descriptive fields of an order.
    Items, fees and the stored total are left untouched.
    """
    order = _get_order_row(db, order_id)
    unknown = sorted(key for key in payload if key not in EDITABLE_FIELDS)
    if unknown:
        raise ValueError(f"Unsupported order fields: {', '.join(unknown)}")

    if 'customerName' in payload:
        customer_name = clean_text(payload['customerName'])
        if not customer_name:
            raise ValueError('Customer name cannot be empty')
        order.customer_name = customer_name
    if 'description' in payload:
        order.description = optional_text(payload['description'])
    if 'address' in payload:
        address = clean_text(payload['address'])
        if not address:
            raise ValueError('Address cannot be empty')
        order.address = address
    if 'deliveryTime' in payload:
        order.delivery_time = parse_timestamp(payload['deliveryTime'], field='deliveryTime')

    db.flush()
    return _record_for(db, order)


def toggle_order(db: Session, order_id: int) -> OrderRecord:
    order = _get_order_row(db, order_id)
    order.is_completed = not order.is_completed
    db.flush()
    return _record_for(db, order)


def delete_order(db: Session, order_id: int) -> None:
    order = _get_order_row(db, order_id)
    db.execute(delete(OrderItem).where(OrderItem.order_id == order.id))
    db.execute(delete(OrderFee).where(OrderFee.order_id == order.id))
    db.delete(order)
    db.flush()
