"""Initial checkout schema

Revision ID: 5f2c9a1d7e40
Revises:
Create Date: 2026-10-19 09:00:00.000000+00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '5f2c9a1d7e40'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create checkout_attempts table
    op.create_table('checkout_attempts',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('guest_session_id', sa.String(length=255), nullable=False),
    sa.Column('email', sa.String(length=320), nullable=True),
    sa.Column('contact', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
    sa.Column('address', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
    sa.Column('cart', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
    sa.Column('status', sa.Enum('in_progress', name='checkoutstatus', schema='checkout'), nullable=False),
    sa.Column('metadata', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
    sa.Column('extra_data', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('guest_session_id'),
    schema='checkout'
    )
    op.create_index(op.f('ix_checkout_checkout_attempts_guest_session_id'), 'checkout_attempts', ['guest_session_id'], unique=False, schema='checkout')
    op.create_index(op.f('ix_checkout_checkout_attempts_email'), 'checkout_attempts', ['email'], unique=False, schema='checkout')

    # Create abandoned_cart_reminders table
    op.create_table('abandoned_cart_reminders',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('guest_session_id', sa.String(length=255), nullable=False),
    sa.Column('email', sa.String(length=320), nullable=False),
    sa.Column('cart_snapshot', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
    sa.Column('email_captured_at', sa.DateTime(timezone=True), nullable=False),
    sa.Column('send_after', sa.DateTime(timezone=True), nullable=False),
    sa.Column('status', sa.Enum('pending', 'processing', 'sent', 'skipped', 'failed', name='reminderstatus', schema='checkout'), nullable=False),
    sa.Column('skip_reason', sa.String(length=50), nullable=True),
    sa.Column('error', sa.Text(), nullable=True),
    sa.Column('sent_at', sa.DateTime(timezone=True), nullable=True),
    sa.Column('message_id', sa.String(length=255), nullable=True),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('guest_session_id'),
    schema='checkout'
    )
    op.create_index('ix_abandoned_cart_reminders_due', 'abandoned_cart_reminders', ['status', 'send_after'], unique=False, schema='checkout')
    op.create_index(op.f('ix_checkout_abandoned_cart_reminders_email'), 'abandoned_cart_reminders', ['email'], unique=False, schema='checkout')


def downgrade() -> None:
    op.drop_index(op.f('ix_checkout_abandoned_cart_reminders_email'), table_name='abandoned_cart_reminders', schema='checkout')
    op.drop_index('ix_abandoned_cart_reminders_due', table_name='abandoned_cart_reminders', schema='checkout')
    op.drop_table('abandoned_cart_reminders', schema='checkout')
    op.drop_index(op.f('ix_checkout_checkout_attempts_email'), table_name='checkout_attempts', schema='checkout')
    op.drop_index(op.f('ix_checkout_checkout_attempts_guest_session_id'), table_name='checkout_attempts', schema='checkout')
    op.drop_table('checkout_attempts', schema='checkout')
    sa.Enum(name='reminderstatus', schema='checkout').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='checkoutstatus', schema='checkout').drop(op.get_bind(), checkfirst=True)
