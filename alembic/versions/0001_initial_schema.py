"""initial schema: users, categories, reports

Creates the three tables with their foreign keys and the indexes used by
the report listing and proximity search.

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_initial_schema'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

user_role = sa.Enum('usuario', 'admin_operativo', 'admin_general', 'superadmin', name='user_role')
report_status = sa.Enum('nuevo', 'en_proceso', 'resuelto', 'cerrado', name='report_status')
report_priority = sa.Enum('baja', 'media', 'alta', 'urgente', name='report_priority')


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('nombre', sa.String(length=50), nullable=False),
        sa.Column('calle', sa.String(length=100), nullable=False),
        sa.Column('numero', sa.String(length=10), nullable=False),
        sa.Column('email', sa.String(length=100), nullable=False),
        sa.Column('whatsapp', sa.String(length=20), nullable=False),
        sa.Column('hashed_password', sa.String(length=255), nullable=False),
        sa.Column('role', user_role, nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('is_verified', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('verification_token', sa.String(length=255), nullable=True),
        sa.Column('reset_password_token', sa.String(length=255), nullable=True),
        sa.Column('reset_password_expire', sa.DateTime(timezone=False), nullable=True),
        sa.Column('last_login', sa.DateTime(timezone=True), nullable=True),
        sa.Column('avatar', sa.String(length=255), nullable=True),
        sa.Column('preferences', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_role', 'users', ['role'])
    op.create_index('ix_users_is_active', 'users', ['is_active'])
    op.create_index('ix_users_reset_password_token', 'users', ['reset_password_token'])
    op.create_index('ix_users_created_at', 'users', ['created_at'])

    op.create_table(
        'categories',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('nombre', sa.String(length=50), nullable=False),
        sa.Column('descripcion', sa.String(length=200), nullable=False),
        sa.Column('icono', sa.String(length=50), server_default='default-icon', nullable=False),
        sa.Column('color', sa.String(length=7), server_default='#3B82F6', nullable=False),
        sa.Column('subcategorias', sa.JSON(), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('orden', sa.Integer(), server_default='0', nullable=False),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='RESTRICT'), nullable=True),
        sa.Column('updated_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_categories_nombre', 'categories', ['nombre'], unique=True)
    op.create_index('ix_categories_is_active', 'categories', ['is_active'])
    op.create_index('ix_categories_orden', 'categories', ['orden'])

    op.create_table(
        'reports',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('titulo', sa.String(length=100), nullable=False),
        sa.Column('descripcion', sa.Text(), nullable=False),
        sa.Column('direccion', sa.String(length=200), nullable=False),
        sa.Column('latitud', sa.Float(), nullable=False),
        sa.Column('longitud', sa.Float(), nullable=False),
        sa.Column('categoria_id', sa.Integer(), sa.ForeignKey('categories.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('subcategoria', sa.String(length=50), nullable=True),
        sa.Column('estatus', report_status, nullable=False),
        sa.Column('prioridad', report_priority, nullable=False),
        sa.Column('folio', sa.String(length=50), nullable=True),
        sa.Column('multimedia', sa.JSON(), nullable=False),
        sa.Column('historial_estatus', sa.JSON(), nullable=False),
        sa.Column('comentarios', sa.JSON(), nullable=False),
        sa.Column('votos', sa.JSON(), nullable=False),
        sa.Column('etiquetas', sa.JSON(), nullable=False),
        sa.Column('usuario_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('asignado_a', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('is_publico', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('is_moderado', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('moderado_por', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('fecha_moderacion', sa.DateTime(timezone=True), nullable=True),
        sa.Column('motivo_moderacion', sa.Text(), nullable=True),
        sa.Column('visitas', sa.Integer(), server_default='0', nullable=False),
        sa.Column('ultima_visita', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_reports_categoria_id', 'reports', ['categoria_id'])
    op.create_index('ix_reports_estatus', 'reports', ['estatus'])
    op.create_index('ix_reports_folio', 'reports', ['folio'])
    op.create_index('ix_reports_usuario_id', 'reports', ['usuario_id'])
    op.create_index('ix_reports_asignado_a', 'reports', ['asignado_a'])
    op.create_index('ix_reports_is_publico', 'reports', ['is_publico'])
    op.create_index('ix_reports_created_at', 'reports', ['created_at'])
    op.create_index('ix_reports_lat_lng', 'reports', ['latitud', 'longitud'])
    op.create_index('ix_reports_estatus_created', 'reports', ['estatus', 'created_at'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('reports')
    op.drop_table('categories')
    op.drop_table('users')
    report_priority.drop(op.get_bind(), checkfirst=True)
    report_status.drop(op.get_bind(), checkfirst=True)
    user_role.drop(op.get_bind(), checkfirst=True)
