"""SQLAlchemy models for the cart recovery service.

All tables live in the 'cart_recovery' schema. View events and sent
messages are append-only facts; nothing in this service deletes them.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import (
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from shared.constants import (
    EMAIL_MAX_LENGTH,
    PHONE_MAX_LENGTH,
    PRODUCT_ID_MAX_LENGTH,
    PRODUCT_NAME_MAX_LENGTH,
)

# Schema for all cart recovery tables
SCHEMA = "cart_recovery"


class Base(DeclarativeBase):
    """Base class for all models."""

    __table_args__ = {"schema": SCHEMA}


# =============================================================================
# Enums
# =============================================================================


class MessageType(str, PyEnum):
    """Channel a reminder was sent through."""

    EMAIL = "email"
    SMS = "sms"
    PUSH = "push"
    IN_APP = "in_app"
    CHAT = "chat"


# =============================================================================
# Users
# =============================================================================


class User(Base):
    """Shopper identity, created lazily on first view or lookup by email."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(
        String(EMAIL_MAX_LENGTH), unique=True, nullable=False, index=True
    )
    full_name: Mapped[Optional[str]] = mapped_column(String(255))
    phone: Mapped[Optional[str]] = mapped_column(String(PHONE_MAX_LENGTH))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    __table_args__ = ({"schema": SCHEMA},)


# =============================================================================
# Products
# =============================================================================


class Product(Base):
    """Catalog entry keyed by the storefront's own product identifier."""

    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(PRODUCT_ID_MAX_LENGTH), primary_key=True)
    name: Mapped[str] = mapped_column(String(PRODUCT_NAME_MAX_LENGTH), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    price: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2))
    category: Mapped[Optional[str]] = mapped_column(String(255))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_products_category", "category"),
        {"schema": SCHEMA},
    )


# =============================================================================
# Product Views
# =============================================================================


class ProductView(Base):
    """A shopper looked at a product.

    The product name is a snapshot taken at write time and does not follow
    later renames. product_id is not a foreign key, so a view is
    still recorded when the product lookup fails.
    """

    __tablename__ = "products_viewed"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey(f"{SCHEMA}.users.id", ondelete="CASCADE"), index=True
    )
    product_id: Mapped[str] = mapped_column(
        String(PRODUCT_ID_MAX_LENGTH), nullable=False, index=True
    )
    product_name: Mapped[str] = mapped_column(String(PRODUCT_NAME_MAX_LENGTH), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = ({"schema": SCHEMA},)


# =============================================================================
# Sent Messages
# =============================================================================


class MessageSent(Base):
    """A reminder recorded for a user. Arms the cooldown for later scans."""

    __tablename__ = "messages_sent"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey(f"{SCHEMA}.users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    message_type: Mapped[MessageType] = mapped_column(
        Enum(
            MessageType,
            name="message_type",
            schema=SCHEMA,
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
        ),
        nullable=False,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    sent_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index(
            "ix_messages_sent_user_type_sent",
            "user_id",
            "message_type",
            "sent_at",
        ),
        {"schema": SCHEMA},
    )
