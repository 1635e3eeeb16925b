from __future__ import annotations

from dataclasses import dataclass

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from transfer_tracker.db import get_db
from transfer_tracker.models import User, UserRole
from transfer_tracker.services.identity_service import resolve_user


@dataclass(frozen=True)
class Identity:
    id: str
    email: str
    display_name: str | None = None


@dataclass(frozen=True)
class Actor:
    id: str
    email: str
    name: str
    role: UserRole
    branch: str

    @classmethod
    def from_user(cls, user: User) -> Actor:
        role = user.role if isinstance(user.role, UserRole) else UserRole(user.role)
        return cls(id=user.id, email=user.email, name=user.name, role=role, branch=user.branch)


def get_current_identity(request: Request) -> Identity:
    identity = getattr(request.state, 'identity', None)
    if not identity:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
    return identity


def get_current_actor(
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> Actor:
    user = resolve_user(db, identity)
    return Actor.from_user(user)


def require_role(*allowed: UserRole):
    def _dep(actor: Actor = Depends(get_current_actor)) -> Actor:
        if actor.role not in allowed:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN)
        return actor

    return _dep
