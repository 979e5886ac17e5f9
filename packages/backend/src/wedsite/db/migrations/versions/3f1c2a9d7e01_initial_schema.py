"""Initial schema: accounts, weddings, slug index, owner links, audit events

Account namespaces are separate tables keyed by username, and
wedding_slugs is keyed by slug, so both uniqueness rules are primary
keys and a plain INSERT is the atomic claim.

Revision ID: 3f1c2a9d7e01
Revises:
Create Date: 2026-10-19 09:12:40.118204
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c2a9d7e01'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ─── Accounts ────────────────────────────────────────
    op.create_table(
        'super_admins',
        sa.Column('username', sa.String(30), primary_key=True),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_by', sa.String(30), nullable=True),
    )
    op.create_table(
        'wedding_admins',
        sa.Column('username', sa.String(30), primary_key=True),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('wedding_ids', sa.JSON(), nullable=False),
        sa.Column('user_type', sa.String(10), nullable=False),
        sa.Column('must_change_password', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_by', sa.String(30), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('idx_wedding_admins_user_type', 'wedding_admins', ['user_type'])
    op.create_table(
        'legacy_admins',
        sa.Column('username', sa.String(30), primary_key=True),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('must_change_password', sa.Boolean(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )

    # ─── Weddings ────────────────────────────────────────
    op.create_table(
        'weddings',
        sa.Column('wedding_id', sa.String(36), primary_key=True),
        sa.Column('slug', sa.String(50), nullable=False, unique=True),
        sa.Column('display_name', sa.String(100), nullable=False),
        sa.Column('status', sa.String(10), nullable=False),
        sa.Column('owner_id', sa.String(30), nullable=True),
        sa.Column('co_owner_ids', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_by', sa.String(30), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_by', sa.String(30), nullable=True),
    )
    op.create_index('idx_weddings_status', 'weddings', ['status'])
    op.create_index('idx_weddings_created_at', 'weddings', ['created_at'])
    op.create_table(
        'wedding_slugs',
        sa.Column('slug', sa.String(50), primary_key=True),
        sa.Column(
            'wedding_id', sa.String(36),
            sa.ForeignKey('weddings.wedding_id'), nullable=False,
        ),
    )
    op.create_table(
        'wedding_admin_links',
        sa.Column(
            'wedding_id', sa.String(36),
            sa.ForeignKey('weddings.wedding_id'), primary_key=True,
        ),
        sa.Column(
            'username', sa.String(30),
            sa.ForeignKey('wedding_admins.username'), primary_key=True,
        ),
        sa.Column('role', sa.String(20), nullable=False),
        sa.Column('added_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('added_by', sa.String(30), nullable=False),
    )
    op.create_index(
        'idx_wedding_admin_links_username', 'wedding_admin_links', ['username']
    )

    # ─── Audit log ───────────────────────────────────────
    op.create_table(
        'events',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('stream_id', sa.String(100), nullable=False),
        sa.Column('type', sa.String(50), nullable=False),
        sa.Column('data', sa.JSON(), nullable=False),
        sa.Column('meta', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('idx_events_stream', 'events', ['stream_id', 'id'])
    op.create_index('idx_events_type', 'events', ['type'])


def downgrade() -> None:
    op.drop_table('events')
    op.drop_table('wedding_admin_links')
    op.drop_table('wedding_slugs')
    op.drop_table('weddings')
    op.drop_table('legacy_admins')
    op.drop_table('wedding_admins')
    op.drop_table('super_admins')
