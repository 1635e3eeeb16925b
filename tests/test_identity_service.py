from __future__ import annotations

import unittest

from sqlalchemy import func, select

from db_support import add_user, make_session_factory
from transfer_tracker.auth import Identity
from transfer_tracker.errors import NotFoundError, ValidationError
from transfer_tracker.models import User, UserRole
from transfer_tracker.services.identity_service import resolve_user, set_user_access


class ResolveUserTests(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_session_factory()()

    def tearDown(self) -> None:
        self.db.close()

    def test_first_sight_provisions_admin_at_default_branch(self) -> None:
        user = resolve_user(self.db, Identity(id='idp-1', email='new.person@example.com'))

        self.assertEqual(user.id, 'idp-1')
        self.assertEqual(user.name, 'new.person')
        self.assertEqual(user.role, UserRole.ADMIN)
        self.assertEqual(user.branch, 'HQ')

    def test_display_name_preferred(self) -> None:
        user = resolve_user(self.db, Identity(id='idp-2', email='sam@example.com', display_name='Sam Wong'))
        self.assertEqual(user.name, 'Sam Wong')

    def test_existing_user_matched_by_email(self) -> None:
        tech = add_user(self.db, name='Tan', role=UserRole.TECHNICIAN, branch='Kluang', email='tan@example.com')

        user = resolve_user(self.db, Identity(id='some-other-id', email='tan@example.com'))

        self.assertEqual(user.id, tech.id)
        self.assertEqual(user.role, UserRole.TECHNICIAN)

    def test_email_change_keeps_same_account(self) -> None:
        first = resolve_user(self.db, Identity(id='idp-1', email='old@example.com'))
        again = resolve_user(self.db, Identity(id='idp-1', email='new@example.com'))

        self.assertEqual(again.id, first.id)
        self.assertEqual(again.email, 'new@example.com')
        self.assertEqual(self.db.execute(select(func.count()).select_from(User)).scalar_one(), 1)

    def test_email_required(self) -> None:
        with self.assertRaises(ValidationError):
            resolve_user(self.db, Identity(id='idp-3', email='  '))

    def test_identity_fields_must_fit_columns(self) -> None:
        resolve_user(self.db, Identity(id='i' * 128, email=f'{"a" * 308}@example.com'))

        with self.assertRaises(ValidationError) as ctx:
            resolve_user(self.db, Identity(id='idp-4', email=f'{"b" * 309}@example.com'))
        self.assertIn('email', ctx.exception.errors)
        with self.assertRaises(ValidationError) as ctx:
            resolve_user(self.db, Identity(id='i' * 129, email='long.id@example.com'))
        self.assertIn('id', ctx.exception.errors)


class SetUserAccessTests(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_session_factory()()
        add_user(self.db, name='Hana', role=UserRole.ADMIN, branch='HQ', email='hana@example.com')

    def tearDown(self) -> None:
        self.db.close()

    def test_changes_role_and_branch(self) -> None:
        user = set_user_access(self.db, email='hana@example.com', role='HQ Staff', branch='Batu Pahat')
        self.assertEqual(user.role, UserRole.HQ_STAFF)
        self.assertEqual(user.branch, 'Batu Pahat')

    def test_rejects_unknown_role(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            set_user_access(self.db, email='hana@example.com', role='Owner')
        self.assertIn('role', ctx.exception.errors)

    def test_unknown_user(self) -> None:
        with self.assertRaises(NotFoundError):
            set_user_access(self.db, email='ghost@example.com', branch='HQ')


if __name__ == '__main__':
    unittest.main()
