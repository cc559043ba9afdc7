"""
User domain service.
- register_user(email, password, name)
- authenticate(email, password)
- get_user / get_user_by_email / get_user_by_customer
- set_stripe_customer_id()
"""

from typing import Optional
from uuid import uuid4
from sqlalchemy import select, insert, update
from sqlalchemy.exc import IntegrityError
import logging

from recipehub.core.auth import hash_password, verify_password
from recipehub.core.database import get_db_session, users
from recipehub.core.errors import ConflictError, UnauthenticatedError
from recipehub.features.subscriptions.service import create_default_entitlement
from recipehub.models.user import User

logger = logging.getLogger(__name__)


def _to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        name=row.name,
        password_hash=row.password_hash,
        stripe_customer_id=row.stripe_customer_id,
        created_at=row.created_at,
    )


def get_user(user_id: str) -> Optional[User]:
    with get_db_session() as session:
        row = session.execute(select(users).where(users.c.id == user_id)).first()
        return _to_user(row) if row else None


def get_user_by_email(email: str) -> Optional[User]:
    with get_db_session() as session:
        row = session.execute(
            select(users).where(users.c.email == User.normalize_email(email))
        ).first()
        return _to_user(row) if row else None


def get_user_by_customer(stripe_customer_id: str) -> Optional[User]:
    with get_db_session() as session:
        row = session.execute(
            select(users).where(users.c.stripe_customer_id == stripe_customer_id)
        ).first()
        return _to_user(row) if row else None


def register_user(email: str, password: str, name: str) -> User:
    """Create a user plus its free/active entitlement row."""
    normalized = User.normalize_email(email)
    if get_user_by_email(normalized):
        raise ConflictError("User already exists with this email")

    user_id = str(uuid4())
    try:
        with get_db_session() as session:
            session.execute(
                insert(users).values(
                    id=user_id,
                    email=normalized,
                    name=name.strip(),
                    password_hash=hash_password(password),
                )
            )
    except IntegrityError:
        raise ConflictError("User already exists with this email")

    create_default_entitlement(user_id)
    logger.info("user.registered", extra={"user_id": user_id})
    return get_user(user_id)


def authenticate(email: str, password: str) -> User:
    user = get_user_by_email(email)
    if user is None or not verify_password(password, user.password_hash):
        raise UnauthenticatedError("Invalid email or password")
    return user


def set_stripe_customer_id(user_id: str, stripe_customer_id: str) -> None:
    with get_db_session() as session:
        session.execute(
            update(users).where(users.c.id == user_id).values(stripe_customer_id=stripe_customer_id)
        )
