"""Initial cart recovery schema

Revision ID: 4f2a9c1d7e53
Revises:
Create Date: 2026-10-12 09:30:41.218305+00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '4f2a9c1d7e53'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

SCHEMA = 'cart_recovery'


def upgrade() -> None:
    # Create users table
    op.create_table('users',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('email', sa.String(length=320), nullable=False),
    sa.Column('full_name', sa.String(length=255), nullable=True),
    sa.Column('phone', sa.String(length=32), nullable=True),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('email'),
    schema=SCHEMA
    )
    op.create_index(op.f('ix_cart_recovery_users_email'), 'users', ['email'], unique=False, schema=SCHEMA)

    # Create products table
    op.create_table('products',
    sa.Column('id', sa.String(length=255), nullable=False),
    sa.Column('name', sa.String(length=500), nullable=False),
    sa.Column('description', sa.Text(), nullable=True),
    sa.Column('price', sa.Numeric(precision=10, scale=2), nullable=True),
    sa.Column('category', sa.String(length=255), nullable=True),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.PrimaryKeyConstraint('id'),
    schema=SCHEMA
    )
    op.create_index('ix_products_category', 'products', ['category'], unique=False, schema=SCHEMA)

    # Create products_viewed table
    op.create_table('products_viewed',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('user_id', sa.Uuid(), nullable=True),
    sa.Column('product_id', sa.String(length=255), nullable=False),
    sa.Column('product_name', sa.String(length=500), nullable=False),
    sa.Column('timestamp', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.ForeignKeyConstraint(['user_id'], [f'{SCHEMA}.users.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id'),
    schema=SCHEMA
    )
    op.create_index(op.f('ix_cart_recovery_products_viewed_user_id'), 'products_viewed', ['user_id'], unique=False, schema=SCHEMA)
    op.create_index(op.f('ix_cart_recovery_products_viewed_product_id'), 'products_viewed', ['product_id'], unique=False, schema=SCHEMA)
    op.create_index(op.f('ix_cart_recovery_products_viewed_timestamp'), 'products_viewed', ['timestamp'], unique=False, schema=SCHEMA)

    # Create messages_sent table
    op.create_table('messages_sent',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('user_id', sa.Uuid(), nullable=False),
    sa.Column('message_type', sa.Enum('email', 'sms', 'push', 'in_app', 'chat', name='message_type', schema=SCHEMA), nullable=False),
    sa.Column('content', sa.Text(), nullable=False),
    sa.Column('sent_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.ForeignKeyConstraint(['user_id'], [f'{SCHEMA}.users.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id'),
    schema=SCHEMA
    )
    op.create_index(op.f('ix_cart_recovery_messages_sent_user_id'), 'messages_sent', ['user_id'], unique=False, schema=SCHEMA)
    op.create_index('ix_messages_sent_user_type_sent', 'messages_sent', ['user_id', 'message_type', 'sent_at'], unique=False, schema=SCHEMA)


def downgrade() -> None:
    op.drop_index('ix_messages_sent_user_type_sent', table_name='messages_sent', schema=SCHEMA)
    op.drop_index(op.f('ix_cart_recovery_messages_sent_user_id'), table_name='messages_sent', schema=SCHEMA)
    op.drop_table('messages_sent', schema=SCHEMA)
    sa.Enum(name='message_type', schema=SCHEMA).drop(op.get_bind(), checkfirst=True)

    op.drop_index(op.f('ix_cart_recovery_products_viewed_timestamp'), table_name='products_viewed', schema=SCHEMA)
    op.drop_index(op.f('ix_cart_recovery_products_viewed_product_id'), table_name='products_viewed', schema=SCHEMA)
    op.drop_index(op.f('ix_cart_recovery_products_viewed_user_id'), table_name='products_viewed', schema=SCHEMA)
    op.drop_table('products_viewed', schema=SCHEMA)

    op.drop_index('ix_products_category', table_name='products', schema=SCHEMA)
    op.drop_table('products', schema=SCHEMA)

    op.drop_index(op.f('ix_cart_recovery_users_email'), table_name='users', schema=SCHEMA)
    op.drop_table('users', schema=SCHEMA)
