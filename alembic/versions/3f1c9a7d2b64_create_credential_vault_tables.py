"""Create credential vault tables

Revision ID: 3f1c9a7d2b64
Revises:
Create Date: 2026-10-19 10:12:41.508113

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c9a7d2b64'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create users, ecosystems, assignments, platform credentials and their history."""
    op.create_table(
        'app_user',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('email', sa.String(length=320), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('ecitizen_id', sa.String(length=100), nullable=True),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_app_user_email', 'app_user', ['email'], unique=True)

    op.create_table(
        'ecosystem',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('theme', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('active_status', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    # Case-insensitive natural key
    op.create_index('uq_ecosystem_name_ci', 'ecosystem', [sa.text('lower(name)')], unique=True)

    op.create_table(
        'user_ecosystem',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('ecosystem_id', sa.String(length=36), nullable=False),
        sa.Column('assigned_by', sa.String(length=36), nullable=True),
        sa.Column('assigned_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['app_user.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['ecosystem_id'], ['ecosystem.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['assigned_by'], ['app_user.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'ecosystem_id', name='uq_user_ecosystem'),
    )
    op.create_index('ix_user_ecosystem_ecosystem_id', 'user_ecosystem', ['ecosystem_id'])

    op.create_table(
        'platform_credential',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('ecosystem_id', sa.String(length=36), nullable=False),
        sa.Column('platform_name', sa.String(length=200), nullable=False),
        sa.Column('platform_type', sa.String(length=100), nullable=False),
        sa.Column('username', sa.Text(), nullable=True),
        sa.Column('password', sa.Text(), nullable=True),
        sa.Column('totp_secret', sa.Text(), nullable=True),
        sa.Column('profile_id', sa.String(length=255), nullable=True),
        sa.Column('profile_url', sa.Text(), nullable=True),
        sa.Column('totp_enabled', sa.Boolean(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['ecosystem_id'], ['ecosystem.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'ecosystem_id', 'platform_name', 'platform_type', name='uq_platform_natural_key'
        ),
    )
    op.create_index(
        'ix_platform_credential_ecosystem_id', 'platform_credential', ['ecosystem_id']
    )

    op.create_table(
        'credential_history',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('platform_id', sa.String(length=36), nullable=False),
        sa.Column('field_name', sa.String(length=20), nullable=False),
        sa.Column('old_value', sa.Text(), nullable=True),
        sa.Column('new_value', sa.Text(), nullable=True),
        sa.Column('changed_by', sa.String(length=36), nullable=True),
        sa.Column('changed_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['platform_id'], ['platform_credential.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['changed_by'], ['app_user.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_credential_history_platform', 'credential_history', ['platform_id', 'changed_at']
    )


def downgrade() -> None:
    """Drop the credential vault tables."""
    op.drop_index('ix_credential_history_platform', table_name='credential_history')
    op.drop_table('credential_history')
    op.drop_index('ix_platform_credential_ecosystem_id', table_name='platform_credential')
    op.drop_table('platform_credential')
    op.drop_index('ix_user_ecosystem_ecosystem_id', table_name='user_ecosystem')
    op.drop_table('user_ecosystem')
    op.drop_index('uq_ecosystem_name_ci', table_name='ecosystem')
    op.drop_table('ecosystem')
    op.drop_index('ix_app_user_email', table_name='app_user')
    op.drop_table('app_user')
