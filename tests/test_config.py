from __future__ import annotations

import unittest

from pydantic import ValidationError

from opsdash.config import Settings


class SettingsTests(unittest.TestCase):
    def test_defaults(self) -> None:
        config = Settings(_env_file=None)
        self.assertEqual(config.dashboard_limit, 10)
        self.assertEqual(config.trend_window_days, 30)

    def test_window_sizes_must_be_positive(self) -> None:
        for field in ('dashboard_limit', 'trend_window_days'):
            with self.subTest(field=field):
                with self.assertRaises(ValidationError):
                    Settings(_env_file=None, **{field: 0})

    def test_postgres_urls_use_psycopg_driver(self) -> None:
        config = Settings(_env_file=None, database_url='postgres://u:p@db:5432/ops')
        self.assertEqual(config.database_url_normalized, 'postgresql+psycopg://u:p@db:5432/ops')


if __name__ == '__main__':
    unittest.main()
