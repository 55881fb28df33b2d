"""Initial schema - usuarios, catálogos, evaluaciones e incidencias

Revision ID: 001
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # === Usuarios ===
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(100), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('role', sa.String(20), nullable=False),
        sa.Column('active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_login', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_users_id', 'users', ['id'], unique=False)
    op.create_index('ix_users_username', 'users', ['username'], unique=True)

    op.create_table(
        'user_sessions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('refresh_token_hash', sa.String(255), nullable=False),
        sa.Column('device_info', sa.String(255), nullable=True),
        sa.Column('ip_address', sa.String(45), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_used_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('refresh_token_hash')
    )
    op.create_index('ix_user_sessions_id', 'user_sessions', ['id'], unique=False)
    op.create_index('ix_user_sessions_user_id', 'user_sessions', ['user_id'], unique=False)
    op.create_index('ix_sessions_user_active', 'user_sessions', ['user_id', 'is_active'], unique=False)

    # === Cadenas y zonas ===
    op.create_table(
        'chains',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name')
    )
    op.create_index('ix_chains_id', 'chains', ['id'], unique=False)

    op.create_table(
        'zones',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('chain_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['chain_id'], ['chains.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_zones_id', 'zones', ['id'], unique=False)
    op.create_index('ix_zones_chain_id', 'zones', ['chain_id'], unique=False)

    # === Tiendas ===
    op.create_table(
        'stores',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('chain_id', sa.Integer(), nullable=False),
        sa.Column('zone_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('city', sa.String(120), nullable=True),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.Column('geofence_radius', sa.Integer(), nullable=True, server_default='100'),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['chain_id'], ['chains.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['zone_id'], ['zones.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_stores_id', 'stores', ['id'], unique=False)
    op.create_index('ix_stores_chain_id', 'stores', ['chain_id'], unique=False)
    op.create_index('ix_stores_zone_id', 'stores', ['zone_id'], unique=False)
    op.create_index('ix_stores_chain_zone', 'stores', ['chain_id', 'zone_id'], unique=False)

    # === Productos ===
    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('icon', sa.String(50), nullable=False),
        sa.Column('color', sa.String(50), nullable=False),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name')
    )
    op.create_index('ix_products_id', 'products', ['id'], unique=False)

    # === Asignaciones ===
    op.create_table(
        'store_assignments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'store_id', name='uq_store_assignment_user_store')
    )
    op.create_index('ix_store_assignments_id', 'store_assignments', ['id'], unique=False)
    op.create_index('ix_store_assignments_user_id', 'store_assignments', ['user_id'], unique=False)
    op.create_index('ix_store_assignments_store_id', 'store_assignments', ['store_id'], unique=False)

    # === Evaluaciones ===
    op.create_table(
        'evaluations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='in_progress'),
        sa.Column('current_step', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('stock', sa.Integer(), nullable=True),
        sa.Column('location', sa.String(50), nullable=True),
        sa.Column('display_condition', sa.String(20), nullable=True),
        sa.Column('area_photo_url', sa.Text(), nullable=True),
        sa.Column('freshness', sa.Integer(), nullable=True),
        sa.Column('appearance', sa.String(20), nullable=True),
        sa.Column('packaging_condition', sa.String(20), nullable=True),
        sa.Column('expiration_date', sa.Date(), nullable=True),
        sa.Column('temperature', sa.Float(), nullable=True),
        sa.Column('quality_photo_url', sa.Text(), nullable=True),
        sa.Column('current_price', sa.Numeric(10, 2), nullable=True),
        sa.Column('suggested_price', sa.Numeric(10, 2), nullable=True),
        sa.Column('active_promotions', sa.JSON(), nullable=True),
        sa.Column('price_photo_url', sa.Text(), nullable=True),
        sa.Column('has_incidents', sa.Boolean(), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_evaluations_id', 'evaluations', ['id'], unique=False)
    op.create_index('ix_evaluations_user_id', 'evaluations', ['user_id'], unique=False)
    op.create_index('ix_evaluations_store_id', 'evaluations', ['store_id'], unique=False)
    op.create_index('ix_evaluations_product_id', 'evaluations', ['product_id'], unique=False)
    op.create_index('ix_evaluations_store_created', 'evaluations', ['store_id', 'created_at'], unique=False)
    op.create_index('ix_evaluations_user_created', 'evaluations', ['user_id', 'created_at'], unique=False)

    # === Incidencias ===
    op.create_table(
        'incidents',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('evaluation_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(100), nullable=False),
        sa.Column('severity', sa.String(20), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('action_required', sa.Text(), nullable=True),
        sa.Column('photo_url', sa.Text(), nullable=True),
        sa.Column('resolved', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['evaluation_id'], ['evaluations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_incidents_id', 'incidents', ['id'], unique=False)
    op.create_index('ix_incidents_evaluation_id', 'incidents', ['evaluation_id'], unique=False)


def downgrade() -> None:
    op.drop_table('incidents')
    op.drop_table('evaluations')
    op.drop_table('store_assignments')
    op.drop_table('products')
    op.drop_table('stores')
    op.drop_table('zones')
    op.drop_table('chains')
    op.drop_table('user_sessions')
    op.drop_table('users')
