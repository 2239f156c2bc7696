from __future__ import annotations

import unittest
from decimal import Decimal

from opsdash.errors import NotFoundError
from opsdash.services.expense_service import (
    create_expense,
    delete_expense,
    list_expenses,
    load_expenses,
    normalize_category,
    parse_expense_payload,
)
from opsdash.services.settings_service import get_settings, save_settings
from sqlite_support import make_session_factory


def _payload(**overrides) -> dict:
    payload = {
        'description': 'Weekly flour run',
        'category': 'Supplies',
        'vendor': 'Island Mills',
        'date': '2026-05-03T00:00:00.000Z',
        'notes': '  ',
        'items': [
            {'description': 'Flour 25kg', 'quantity': 2, 'unitPrice': '40'},
            {'description': 'Sugar', 'quantity': 1, 'unitPrice': '12.5'},
        ],
    }
    payload.update(overrides)
    return payload


class ParseExpensePayloadTests(unittest.TestCase):
    def test_amount_defaults_to_item_total(self) -> None:
        draft = parse_expense_payload(_payload())
        self.assertEqual(draft.amount, Decimal('92.50'))
        self.assertEqual(draft.category, 'supplies')
        self.assertIsNone(draft.notes)

    def test_explicit_amount_is_not_checked_against_items(self) -> None:
        draft = parse_expense_payload(_payload(amount=100))
        self.assertEqual(draft.amount, Decimal('100.00'))

    def test_category_must_be_known(self) -> None:
        self.assertEqual(normalize_category(' RENT '), 'rent')
        with self.assertRaisesRegex(ValueError, 'Unknown expense category: Snacks'):
            parse_expense_payload(_payload(category='Snacks'))
        for legacy in ('Salaries', 'Transportation'):
            with self.subTest(category=legacy):
                with self.assertRaisesRegex(ValueError, f'Unknown expense category: {legacy}'):
                    normalize_category(legacy)

    def test_missing_required_fields(self) -> None:
        for field in ('description', 'category', 'vendor', 'date'):
            with self.subTest(field=field):
                with self.assertRaisesRegex(ValueError, 'Missing required fields'):
                    parse_expense_payload(_payload(**{field: ''}))
        with self.assertRaisesRegex(ValueError, 'Missing required fields'):
            parse_expense_payload(_payload(items=[]))


class ExpensePersistenceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_session_factory()()
        self.addCleanup(self.db.close)

    def test_create_and_list(self) -> None:
        created = create_expense(self.db, _payload())
        self.db.commit()

        expenses = list_expenses(self.db)
        self.assertEqual([expense.id for expense in expenses], [created.id])
        self.assertEqual(len(expenses[0].items), 2)
        self.assertEqual(expenses[0].items[0].total_price, Decimal('80.00'))

    def test_load_expenses_orders_by_date_desc(self) -> None:
        create_expense(self.db, _payload(description='Older', date='2026-04-01T00:00:00Z'))
        create_expense(self.db, _payload(description='Newer', date='2026-05-01T00:00:00Z'))
        self.db.commit()

        self.assertEqual([expense.description for expense in load_expenses(self.db, limit=1)], ['Newer'])

    def test_delete(self) -> None:
        created = create_expense(self.db, _payload())
        delete_expense(self.db, created.id)
        self.db.commit()
        self.assertEqual(list_expenses(self.db), [])
        with self.assertRaises(NotFoundError):
            delete_expense(self.db, created.id)


class SettingsTests(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_session_factory()()
        self.addCleanup(self.db.close)

    def test_defaults_without_row(self) -> None:
        view = get_settings(self.db)
        self.assertEqual(view.currency, 'XCD')
        self.assertEqual(view.business_funding, Decimal('0.00'))
        self.assertTrue(view.notifications_enabled)

    def test_save_upserts_single_row(self) -> None:
        save_settings(self.db, {'businessName': 'Crumbs', 'currency': 'usd', 'businessFunding': 1500.5})
        self.db.commit()
        save_settings(self.db, {'emailNotifications': False})
        self.db.commit()

        view = get_settings(self.db)
        self.assertEqual(view.business_name, 'Crumbs')
        self.assertEqual(view.currency, 'USD')
        self.assertEqual(view.business_funding, Decimal('1500.50'))
        self.assertFalse(view.email_notifications)

    def test_rejects_non_numeric_funding(self) -> None:
        with self.assertRaisesRegex(ValueError, 'businessFunding'):
            save_settings(self.db, {'businessFunding': 'lots'})


if __name__ == '__main__':
    unittest.main()
