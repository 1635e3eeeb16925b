from transfer_tracker.db import engine
from transfer_tracker.logging_config import configure_logging
from transfer_tracker.models import Base


def init_db() -> None:
    Base.metadata.create_all(bind=engine)


if __name__ == '__main__':
    configure_logging()
    init_db()
    print('Tables created/verified.')
