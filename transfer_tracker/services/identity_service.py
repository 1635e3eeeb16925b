from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from transfer_tracker.config import settings
from transfer_tracker.db import store_errors
from transfer_tracker.errors import NotFoundError, ValidationError
from transfer_tracker.models import User, UserRole, utc_now

if TYPE_CHECKING:
    from transfer_tracker.auth import Identity

logger = logging.getLogger(__name__)

MAX_USER_ID_LENGTH = 128
MAX_EMAIL_LENGTH = 320


def _display_name(identity: Identity) -> str:
    name = (identity.display_name or '').strip()
    if name:
        return name
    return identity.email.split('@')[0]


def _find_by_email(db: Session, email: str) -> User | None:
    return db.execute(select(User).where(User.email == email)).scalar_one_or_none()


def _find_existing(db: Session, identity: Identity, email: str) -> User | None:
    user = _find_by_email(db, email)
    if user:
        return user
    user = db.get(User, identity.id)
    if user:
        # Same provider account, email changed upstream.
        logger.info('User %s email changed from %s to %s', user.id, user.email, email)
        user.email = email
        user.updated_at = utc_now()
        db.commit()
    return user


def resolve_user(db: Session, identity: Identity) -> User:
    """Map the identity provider's caller to a User row, provisioning one on first sight."""
    email = identity.email.strip()
    errors: dict[str, str] = {}
    if not email:
        errors['email'] = 'Email is required'
    elif len(email) > MAX_EMAIL_LENGTH:
        errors['email'] = f'Email must be at most {MAX_EMAIL_LENGTH} characters'
    if not identity.id or len(identity.id) > MAX_USER_ID_LENGTH:
        errors['id'] = f'User id must be 1 to {MAX_USER_ID_LENGTH} characters'
    if errors:
        raise ValidationError('Identity is invalid', errors=errors)

    with store_errors(db, 'load user'):
        user = _find_existing(db, identity, email)
    if user:
        return user

    user = User(
        id=identity.id,
        email=email,
        name=_display_name(identity),
        role=UserRole(settings.default_role),
        branch=settings.default_branch,
    )
    with store_errors(db, 'create user'):
        try:
            db.add(user)
            db.commit()
        except IntegrityError:
            # Another request provisioned the same account first.
            db.rollback()
            existing = _find_existing(db, identity, email)
            if existing is None:
                raise
            return existing
    logger.info('Provisioned user %s (%s) as %s at %s', user.id, email, user.role.value, user.branch)
    return user


def set_user_access(db: Session, *, email: str, role: str | None = None, branch: str | None = None) -> User:
    with store_errors(db, 'load user'):
        user = _find_by_email(db, email.strip())
    if not user:
        raise NotFoundError(f'User {email} not found')

    if role is not None:
        try:
            user.role = UserRole(role)
        except ValueError as exc:
            allowed = ', '.join(r.value for r in UserRole)
            raise ValidationError('Invalid role', errors={'role': f'Role must be one of: {allowed}'}) from exc
    if branch is not None:
        if not branch.strip():
            raise ValidationError('Invalid branch', errors={'branch': 'Branch is required'})
        user.branch = branch.strip()
    user.updated_at = utc_now()

    with store_errors(db, 'update user'):
        db.commit()
    logger.info('User %s now %s at %s', user.email, user.role.value, user.branch)
    return user
