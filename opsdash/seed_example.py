from sqlalchemy import select

from opsdash.db import SessionLocal, init_db
from opsdash.models import User
from opsdash.security.passwords import hash_password
from opsdash.services.metrics_service import recompute_business_metrics
from opsdash.services.settings_service import load_settings_row, save_settings


def seed() -> None:
    init_db()
    with SessionLocal() as db:
        owner = db.execute(select(User).where(User.username == 'owner')).scalar_one_or_none()
        if not owner:
            db.add(User(username='owner', password_hash=hash_password('ownerpass'), active=True))

        if not load_settings_row(db):
            save_settings(
                db,
                {
                    'businessName': 'Demo Bakery',
                    'businessEmail': 'owner@example.com',
                    'currency': 'XCD',
                    'businessFunding': '5000',
                },
            )

        recompute_business_metrics(db)
        db.commit()


if __name__ == '__main__':
    seed()
    print('Seed data inserted/verified.')
