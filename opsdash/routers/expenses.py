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
from opsdash.services.expense_service import ExpenseRecord, create_expense, delete_expense, list_expenses
from opsdash.services.metrics_service import refresh_business_metrics_best_effort

logger = logging.getLogger(__name__)

router = APIRouter(prefix='/api/expenses', tags=['expenses'], dependencies=[Depends(get_current_user)])


def expense_payload(expense: ExpenseRecord) -> dict:
    return {
        'id': expense.id,
        'description': expense.description,
        'amount': float(expense.amount),
        'category': expense.category,
        'vendor': expense.vendor,
        'date': expense.date.isoformat(),
        'notes': expense.notes,
        'createdAt': expense.created_at.isoformat(),
        'items': [
            {
                'description': item.description,
                'quantity': item.quantity,
                'unitPrice': float(item.unit_price),
                'totalPrice': float(item.total_price),
            }
            for item in expense.items
        ],
    }


@router.get('')
def expenses_index(db: Session = Depends(get_db)):
    try:
        expenses = list_expenses(db)
    except SQLAlchemyError:
        logger.exception('Error fetching expenses')
        return JSONResponse([], status_code=500)
    return [expense_payload(expense) for expense in expenses]


@router.post('')
async def expenses_submit(request: Request, db: Session = Depends(get_db)):
    payload = await read_json_body(request)
    action = payload.get('action')

    try:
        if action == 'delete':
            delete_expense(db, parse_record_id(payload.get('expenseId'), 'expense id'))
            db.commit()
            return {'success': True}

        if action is not None:
            raise ValueError(f'Unsupported action: {action}')

        expense = create_expense(db, payload)
        db.commit()
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except SQLAlchemyError as exc:
        logger.exception('Error processing expense request')
        raise HTTPException(status_code=500, detail='Failed to process expense request') from exc

    logger.info('Created expense %s (%s, %s)', expense.id, expense.category, expense.amount)
    refresh_business_metrics_best_effort(db)
    return expense_payload(expense)


@router.delete('/{expense_id}')
def expense_delete(expense_id: int, db: Session = Depends(get_db)):
    try:
        delete_expense(db, expense_id)
        db.commit()
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except SQLAlchemyError as exc:
        logger.exception('Error deleting expense %s', expense_id)
        raise HTTPException(status_code=500, detail='Failed to delete expense') from exc
    return {'success': True}
