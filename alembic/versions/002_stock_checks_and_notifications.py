"""Stock check constraints and notifications

Revision ID: 002
Revises: 001
Create Date: 2024-02-01 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '002'
down_revision = '001'
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Batch mode so SQLite rebuilds the tables; PostgreSQL alters in place
    with op.batch_alter_table('medicines') as batch_op:
        batch_op.create_check_constraint('ck_medicines_quantity_non_negative', 'quantity >= 0')
        batch_op.create_check_constraint('ck_medicines_par_level_non_negative', 'par_level >= 0')

    with op.batch_alter_table('sale_items') as batch_op:
        batch_op.create_check_constraint('ck_sale_items_quantity_positive', 'quantity >= 1')

    with op.batch_alter_table('prescription_items') as batch_op:
        batch_op.create_check_constraint('ck_prescription_items_quantity_positive', 'quantity >= 1')
        batch_op.create_check_constraint(
            'ck_prescription_items_dispensed_bounds', 'dispensed >= 0 AND dispensed <= quantity'
        )

    # Create notifications table
    op.create_table(
        'notifications',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('type', sa.String(length=16), nullable=False),
        sa.Column('title', sa.String(length=100), nullable=False),
        sa.Column('message', sa.String(length=500), nullable=False),
        sa.Column('read', sa.Boolean(), nullable=False),
        sa.Column('priority', sa.String(length=8), nullable=False),
        sa.Column('action_url', sa.String(length=255), nullable=True),
        sa.Column('action_text', sa.String(length=50), nullable=True),
        sa.Column('data', sa.JSON(), nullable=False),
        sa.Column('alert_key', sa.String(length=64), nullable=True),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('read_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_notifications_type', 'notifications', ['type'], unique=False)
    op.create_index('ix_notifications_read', 'notifications', ['read'], unique=False)
    op.create_index('ix_notifications_priority', 'notifications', ['priority'], unique=False)
    op.create_index('ix_notifications_alert_key', 'notifications', ['alert_key'], unique=False)
    op.create_index('ix_notifications_expires_at', 'notifications', ['expires_at'], unique=False)
    op.create_index('ix_notifications_created_at', 'notifications', ['created_at'], unique=False)


def downgrade() -> None:
    op.drop_table('notifications')

    with op.batch_alter_table('prescription_items') as batch_op:
        batch_op.drop_constraint('ck_prescription_items_dispensed_bounds', type_='check')
        batch_op.drop_constraint('ck_prescription_items_quantity_positive', type_='check')

    with op.batch_alter_table('sale_items') as batch_op:
        batch_op.drop_constraint('ck_sale_items_quantity_positive', type_='check')

    with op.batch_alter_table('medicines') as batch_op:
        batch_op.drop_constraint('ck_medicines_par_level_non_negative', type_='check')
        batch_op.drop_constraint('ck_medicines_quantity_non_negative', type_='check')
