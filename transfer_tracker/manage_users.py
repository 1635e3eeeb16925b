from __future__ import annotations

import argparse

from transfer_tracker.db import SessionLocal
from transfer_tracker.logging_config import configure_logging
from transfer_tracker.models import UserRole
from transfer_tracker.services.identity_service import set_user_access


def main() -> None:
    parser = argparse.ArgumentParser(description="Change a user's role or branch.")
    parser.add_argument('email', help='Email the user signs in with.')
    parser.add_argument('--role', choices=[role.value for role in UserRole], help='New role.')
    parser.add_argument('--branch', help='New branch, e.g. HQ or Kluang.')
    args = parser.parse_args()
    if args.role is None and args.branch is None:
        parser.error('Provide --role and/or --branch')

    configure_logging()
    with SessionLocal() as db:
        user = set_user_access(db, email=args.email, role=args.role, branch=args.branch)
    print(f'{user.email}: role={user.role.value}, branch={user.branch}')


if __name__ == '__main__':
    main()
