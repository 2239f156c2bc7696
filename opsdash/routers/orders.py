from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from opsdash.auth import get_current_user
from opsdash.db import get_db
from opsdash.dependencies import parse_record_id, read_json_body
from opsdash.errors import NotFoundError
from opsdash.services.metrics_service import refresh_business_metrics_best_effort
from opsdash.services.order_service import (
    OrderRecord,
    create_order,
    delete_order,
    get_order,
    list_orders,
    toggle_order,
    update_order,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix='/api/orders', tags=['orders'], dependencies=[Depends(get_current_user)])


def order_payload(order: OrderRecord) -> dict:
    return {
        'id': order.id,
        'customerName': order.customer_name,
        'description': order.description,
        'address': order.address,
        'deliveryTime': order.delivery_time.isoformat(),
        'isCompleted': order.is_completed,
        'totalAmount': float(order.total_amount),
        'createdAt': order.created_at.isoformat(),
        'orderItems': [
            {
                'name': item.name,
                'quantity': item.quantity,
                'unitPrice': float(item.unit_price),
                'totalPrice': float(item.total_price),
            }
            for item in order.items
        ],
        'additionalFees': [{'name': fee.name, 'amount': float(fee.amount)} for fee in order.fees],
    }


def _toggle_and_refresh(db: Session, order_id: int) -> OrderRecord:
    order = toggle_order(db, order_id)
    db.commit()
    if order.is_completed:
        refresh_business_metrics_best_effort(db)
    return order


@router.get('')
def orders_index(db: Session = Depends(get_db)):
    try:
        orders = list_orders(db)
    except SQLAlchemyError:
        logger.exception('Error fetching orders')
        return JSONResponse([], status_code=500)
    return [order_payload(order) for order in orders]


@router.post('')
async def orders_submit(request: Request, db: Session = Depends(get_db)):
    payload = await read_json_body(request)
    action = payload.get('action')

    try:
        if action == 'delete':
            delete_order(db, parse_record_id(payload.get('orderId'), 'order id'))
            db.commit()
            return {'success': True}

        if action == 'toggle':
            order = _toggle_and_refresh(db, parse_record_id(payload.get('orderId'), 'order id'))
            return order_payload(order)

        if action == 'update':
            data = payload.get('data')
            if not isinstance(data, dict):
                raise ValueError('Update data must be an object')
            order = update_order(db, parse_record_id(payload.get('orderId'), 'order id'), data)
            db.commit()
            return order_payload(order)

        if action is not None:
            raise ValueError(f'Unsupported action: {action}')

        order = create_order(db, payload)
        db.commit()
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except SQLAlchemyError as exc:
        logger.exception('Error processing order request')
        raise HTTPException(status_code=500, detail='Failed to process order request') from exc
    logger.info('Created order %s for %r', order.id, order.customer_name)
    return order_payload(order)


@router.get('/{order_id}')
def order_detail(order_id: int, db: Session = Depends(get_db)):
    try:
        order = get_order(db, order_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except SQLAlchemyError as exc:
        logger.exception('Error fetching order %s', order_id)
        raise HTTPException(status_code=500, detail='Failed to fetch order') from exc
    return order_payload(order)


@router.patch('/{order_id}')
async def order_update(order_id: int, request: Request, db: Session = Depends(get_db)):
    payload = await read_json_body(request)
    try:
        order = update_order(db, order_id, payload)
        db.commit()
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except SQLAlchemyError as exc:
        logger.exception('Error updating order %s', order_id)
        raise HTTPException(status_code=500, detail='Failed to update order') from exc
    return order_payload(order)


@router.patch('/{order_id}/toggle')
def order_toggle(order_id: int, db: Session = Depends(get_db)):
    try:
        order = _toggle_and_refresh(db, order_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except SQLAlchemyError as exc:
        logger.exception('Error toggling order %s', order_id)
        raise HTTPException(status_code=500, detail='Failed to toggle order status') from exc
    return order_payload(order)


@router.delete('/{order_id}')
def order_delete(order_id: int, db: Session = Depends(get_db)):
    try:
        delete_order(db, order_id)
        db.commit()
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except SQLAlchemyError as exc:
        logger.exception('Error deleting order %s', order_id)
        raise HTTPException(status_code=500, detail='Failed to delete order') from exc
    return {'success': True}
