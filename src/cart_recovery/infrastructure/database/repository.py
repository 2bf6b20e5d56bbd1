"""Persistence operations used by the view recorder and the abandonment scanner.

Every method opens its own short-lived session; no transaction spans two
operations. Find-or-create relies on the unique keys of ``users.email`` and
``products.id``: the insert is skipped on conflict and the existing row is
read back instead.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime

import structlog
from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cart_recovery.exceptions import PersistenceError
from cart_recovery.infrastructure.database.connection import get_db_session
from cart_recovery.infrastructure.database.models import (
    MessageSent,
    MessageType,
    Product,
    ProductView,
    User,
)

logger = structlog.get_logger()


# =============================================================================
# Records
# =============================================================================


@dataclass(frozen=True)
class UserRecord:
    id: str
    email: str
    full_name: str | None = None
    phone: str | None = None


@dataclass(frozen=True)
class ProductRecord:
    id: str
    name: str


@dataclass(frozen=True)
class ViewRecord:
    id: str
    user_id: str | None
    product_id: str
    product_name: str
    timestamp: datetime


@dataclass(frozen=True)
class RecentView:
    """A view event joined to the user it belongs to."""

    view_id: str
    user_id: str
    email: str
    full_name: str | None
    phone: str | None
    product_id: str
    product_name: str
    timestamp: datetime


@dataclass(frozen=True)
class ReminderRecord:
    id: str
    user_id: str
    message_type: MessageType
    content: str
    sent_at: datetime


def _recent_view(view: ProductView, user: User) -> RecentView:
    return RecentView(
        view_id=str(view.id),
        user_id=str(user.id),
        email=user.email,
        full_name=user.full_name,
        phone=user.phone,
        product_id=view.product_id,
        product_name=view.product_name,
        timestamp=view.timestamp,
    )


def _parse_uuid(value: str) -> uuid.UUID | None:
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


# =============================================================================
# Repository
# =============================================================================


class CartRecoveryRepository:
    """SQLAlchemy-backed store for users, products, views and sent messages."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    async def find_user_by_email(self, email: str) -> UserRecord | None:
        try:
            async with self.session_factory() as session:
                user = await session.scalar(select(User).where(User.email == email))
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to look up user", details=str(e)) from e

        if user is None:
            return None
        return UserRecord(
            id=str(user.id), email=user.email, full_name=user.full_name, phone=user.phone
        )

    async def get_or_create_user(self, email: str, phone: str | None = None) -> str:
        """Return the id of the user with this email, creating it if absent.

        Existing users are never modified.
        """
        stmt = (
            pg_insert(User)
            .values(id=uuid.uuid4(), email=email, full_name=None, phone=phone)
            .on_conflict_do_nothing(index_elements=[User.email])
            .returning(User.id)
        )
        try:
            async with get_db_session(self.session_factory) as session:
                user_id = await session.scalar(stmt)
                if user_id is None:
                    user_id = await session.scalar(select(User.id).where(User.email == email))
                else:
                    logger.info("Created user", user_id=str(user_id))
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to resolve user", details=str(e)) from e

        if user_id is None:
            raise PersistenceError("User vanished after insert conflict", details=email)
        return str(user_id)

    # -------------------------------------------------------------------------
    # Products
    # -------------------------------------------------------------------------

    async def get_or_create_product(self, product_id: str, name: str) -> ProductRecord:
        """Return the product with this id, creating it with ``name`` if absent.

        The stored name of an existing product is never overwritten.
        """
        stmt = (
            pg_insert(Product)
            .values(id=product_id, name=name)
            .on_conflict_do_nothing(index_elements=[Product.id])
        )
        try:
            async with get_db_session(self.session_factory) as session:
                await session.execute(stmt)
                product = await session.get(Product, product_id)
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to resolve product", details=str(e)) from e

        if product is None:
            raise PersistenceError("Product vanished after insert conflict", details=product_id)
        return ProductRecord(id=product.id, name=product.name)

    async def get_products(self, product_ids: list[str]) -> list[ProductRecord]:
        if not product_ids:
            return []
        try:
            async with self.session_factory() as session:
                result = await session.scalars(select(Product).where(Product.id.in_(product_ids)))
                products = {product.id: product for product in result}
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to load products", details=str(e)) from e

        # Preserve the caller's ordering
        return [
            ProductRecord(id=products[pid].id, name=products[pid].name)
            for pid in product_ids
            if pid in products
        ]

    # -------------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------------

    async def create_view(
        self,
        user_id: str | None,
        product_id: str,
        product_name: str,
        timestamp: datetime,
    ) -> ViewRecord:
        view = ProductView(
            id=uuid.uuid4(),
            user_id=_parse_uuid(user_id) if user_id else None,
            product_id=product_id,
            product_name=product_name,
            timestamp=timestamp,
        )
        try:
            async with get_db_session(self.session_factory) as session:
                session.add(view)
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to track product view", details=str(e)) from e

        return ViewRecord(
            id=str(view.id),
            user_id=user_id,
            product_id=product_id,
            product_name=product_name,
            timestamp=timestamp,
        )

    async def get_view(self, view_id: str) -> ViewRecord | None:
        parsed = _parse_uuid(view_id)
        if parsed is None:
            return None
        try:
            async with self.session_factory() as session:
                view = await session.get(ProductView, parsed)
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to load product view", details=str(e)) from e

        if view is None:
            return None
        return ViewRecord(
            id=str(view.id),
            user_id=str(view.user_id) if view.user_id else None,
            product_id=view.product_id,
            product_name=view.product_name,
            timestamp=view.timestamp,
        )

    async def list_recent_views(self, since: datetime) -> list[RecentView]:
        """Views at or after ``since`` that belong to a known user, oldest first."""
        query = (
            select(ProductView, User)
            .join(User, ProductView.user_id == User.id)
            .where(ProductView.timestamp >= since)
            .order_by(ProductView.timestamp.asc())
        )
        try:
            async with self.session_factory() as session:
                rows = (await session.execute(query)).all()
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to fetch recent views", details=str(e)) from e

        return [_recent_view(view, user) for view, user in rows]

    async def list_latest_views(self, limit: int = 100) -> list[RecentView]:
        """Most recent views of known users, newest first."""
        query = (
            select(ProductView, User)
            .join(User, ProductView.user_id == User.id)
            .order_by(ProductView.timestamp.desc())
            .limit(limit)
        )
        try:
            async with self.session_factory() as session:
                rows = (await session.execute(query)).all()
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to fetch product views", details=str(e)) from e

        return [_recent_view(view, user) for view, user in rows]

    # -------------------------------------------------------------------------
    # Sent messages
    # -------------------------------------------------------------------------

    async def list_reminders(
        self, user_id: str, message_type: MessageType, since: datetime
    ) -> list[ReminderRecord]:
        query = (
            select(MessageSent)
            .where(MessageSent.user_id == _parse_uuid(user_id))
            .where(MessageSent.message_type == message_type)
            .where(MessageSent.sent_at >= since)
        )
        try:
            async with self.session_factory() as session:
                messages = (await session.scalars(query)).all()
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to check sent messages", details=str(e)) from e

        return [
            ReminderRecord(
                id=str(message.id),
                user_id=user_id,
                message_type=message.message_type,
                content=message.content,
                sent_at=message.sent_at,
            )
            for message in messages
        ]

    async def create_reminder(
        self,
        user_id: str,
        message_type: MessageType,
        content: str,
        sent_at: datetime,
    ) -> ReminderRecord:
        message = MessageSent(
            id=uuid.uuid4(),
            user_id=_parse_uuid(user_id),
            message_type=message_type,
            content=content,
            sent_at=sent_at,
        )
        try:
            async with get_db_session(self.session_factory) as session:
                session.add(message)
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to log message", details=str(e)) from e

        return ReminderRecord(
            id=str(message.id),
            user_id=user_id,
            message_type=message_type,
            content=content,
            sent_at=sent_at,
        )
