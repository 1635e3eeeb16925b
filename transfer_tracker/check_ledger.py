from __future__ import annotations

import argparse
import sys

from transfer_tracker.db import SessionLocal
from transfer_tracker.logging_config import configure_logging
from transfer_tracker.services.status_log_service import find_ledger_mismatches


def main() -> None:
    parser = argparse.ArgumentParser(description='Report transfers whose status disagrees with their status history.')
    parser.add_argument('--quiet', action='store_true', help='Only set the exit code.')
    args = parser.parse_args()

    configure_logging()
    with SessionLocal() as db:
        mismatches = find_ledger_mismatches(db)

    if not args.quiet:
        for row in mismatches:
            ledger = row.ledger_status.value if row.ledger_status else 'no entries'
            print(f'{row.transfer_id}: record={row.record_status.value}, ledger={ledger}')
        print(f'Ledger check complete: mismatches={len(mismatches)}')
    sys.exit(1 if mismatches else 0)


if __name__ == '__main__':
    main()
