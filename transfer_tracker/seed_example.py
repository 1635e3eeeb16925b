from sqlalchemy import select

from transfer_tracker.config import settings
from transfer_tracker.db import SessionLocal
from transfer_tracker.init_db import init_db
from transfer_tracker.logging_config import configure_logging
from transfer_tracker.models import User, UserRole

DEMO_USERS = [
    ('demo-admin', 'admin@example.com', 'Admin', UserRole.ADMIN, settings.default_branch),
    ('demo-hq', 'hq@example.com', 'Hana (HQ)', UserRole.HQ_STAFF, settings.default_branch),
    ('demo-tech', 'tech@example.com', 'Tan (Technician)', UserRole.TECHNICIAN, settings.repair_hub_branch),
]


def seed() -> None:
    init_db()
    with SessionLocal() as db:
        for user_id, email, name, role, branch in DEMO_USERS:
            user = db.execute(select(User).where(User.email == email)).scalar_one_or_none()
            if not user:
                db.add(User(id=user_id, email=email, name=name, role=role, branch=branch))
        db.commit()


if __name__ == '__main__':
    configure_logging()
    seed()
    print('Seed data inserted/verified.')
