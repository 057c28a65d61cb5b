"""Initial migration

Revision ID: 001
Revises: 
Create Date: 2024-01-01 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Create categories table
    op.create_table(
        'categories',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=50), nullable=False),
        sa.Column('description', sa.String(length=200), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False),
        sa.Column('icon', sa.String(length=64), nullable=True),
        sa.Column('color', sa.String(length=7), nullable=True),
        sa.Column('parent_id', sa.String(length=36), nullable=True),
        sa.Column('sort_order', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['parent_id'], ['categories.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name')
    )
    op.create_index('ix_categories_parent_id', 'categories', ['parent_id'], unique=False)

    # Create suppliers table
    op.create_table(
        'suppliers',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('contact', sa.String(length=20), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('street', sa.String(length=100), nullable=True),
        sa.Column('city', sa.String(length=50), nullable=True),
        sa.Column('state', sa.String(length=50), nullable=True),
        sa.Column('zip_code', sa.String(length=10), nullable=True),
        sa.Column('country', sa.String(length=50), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False),
        sa.Column('gst_number', sa.String(length=15), nullable=True),
        sa.Column('pan_number', sa.String(length=10), nullable=True),
        sa.Column('payment_terms', sa.String(length=16), nullable=False),
        sa.Column('rating', sa.Integer(), nullable=False),
        sa.Column('notes', sa.String(length=500), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_suppliers_name', 'suppliers', ['name'], unique=False)
    op.create_index('ix_suppliers_email', 'suppliers', ['email'], unique=False)

    # Create medicines table; version backs optimistic locking of stock
    op.create_table(
        'medicines',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('category_id', sa.String(length=36), nullable=False),
        sa.Column('batch', sa.String(length=50), nullable=False),
        sa.Column('expiry_date', sa.Date(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('price', sa.Float(), nullable=False),
        sa.Column('mrp', sa.Float(), nullable=False),
        sa.Column('supplier_id', sa.String(length=36), nullable=False),
        sa.Column('par_level', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('description', sa.String(length=500), nullable=True),
        sa.Column('manufacturer', sa.String(length=100), nullable=True),
        sa.Column('dosage', sa.String(length=50), nullable=True),
        sa.Column('form', sa.String(length=16), nullable=False),
        sa.Column('prescription_required', sa.Boolean(), nullable=False),
        sa.Column('barcode', sa.String(length=64), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['category_id'], ['categories.id']),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('barcode')
    )
    op.create_index('ix_medicines_name', 'medicines', ['name'], unique=False)
    op.create_index('ix_medicines_category_id', 'medicines', ['category_id'], unique=False)
    op.create_index('ix_medicines_batch', 'medicines', ['batch'], unique=False)
    op.create_index('ix_medicines_expiry_date', 'medicines', ['expiry_date'], unique=False)
    op.create_index('ix_medicines_supplier_id', 'medicines', ['supplier_id'], unique=False)
    op.create_index('ix_medicines_status', 'medicines', ['status'], unique=False)

    # Create sales tables
    op.create_table(
        'sales',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('customer_name', sa.String(length=100), nullable=False),
        sa.Column('customer_phone', sa.String(length=20), nullable=True),
        sa.Column('customer_email', sa.String(length=255), nullable=True),
        sa.Column('customer_address', sa.String(length=200), nullable=True),
        sa.Column('subtotal', sa.Float(), nullable=False),
        sa.Column('discount', sa.Float(), nullable=False),
        sa.Column('tax', sa.Float(), nullable=False),
        sa.Column('total', sa.Float(), nullable=False),
        sa.Column('payment_method', sa.String(length=16), nullable=False),
        sa.Column('payment_status', sa.String(length=16), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_sales_customer_phone', 'sales', ['customer_phone'], unique=False)
    op.create_index('ix_sales_customer_email', 'sales', ['customer_email'], unique=False)
    op.create_index('ix_sales_payment_status', 'sales', ['payment_status'], unique=False)
    op.create_index('ix_sales_created_at', 'sales', ['created_at'], unique=False)

    op.create_table(
        'sale_items',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('sale_id', sa.String(length=36), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('medicine_id', sa.String(length=36), nullable=False),
        sa.Column('medicine_name', sa.String(length=100), nullable=False),
        sa.Column('batch', sa.String(length=50), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('price', sa.Float(), nullable=False),
        sa.Column('total', sa.Float(), nullable=False),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_sale_items_sale_id', 'sale_items', ['sale_id'], unique=False)
    op.create_index('ix_sale_items_medicine_id', 'sale_items', ['medicine_id'], unique=False)

    # Create prescriptions tables
    op.create_table(
        'prescriptions',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('prescription_number', sa.String(length=16), nullable=False),
        sa.Column('customer_name', sa.String(length=100), nullable=False),
        sa.Column('customer_phone', sa.String(length=20), nullable=False),
        sa.Column('customer_email', sa.String(length=255), nullable=True),
        sa.Column('customer_age', sa.Integer(), nullable=True),
        sa.Column('customer_gender', sa.String(length=8), nullable=True),
        sa.Column('customer_address', sa.String(length=200), nullable=True),
        sa.Column('doctor_name', sa.String(length=100), nullable=False),
        sa.Column('doctor_license', sa.String(length=20), nullable=False),
        sa.Column('doctor_specialization', sa.String(length=100), nullable=True),
        sa.Column('doctor_hospital', sa.String(length=100), nullable=True),
        sa.Column('doctor_phone', sa.String(length=20), nullable=True),
        sa.Column('doctor_email', sa.String(length=255), nullable=True),
        sa.Column('diagnosis', sa.String(length=200), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=24), nullable=False),
        sa.Column('priority', sa.String(length=8), nullable=False),
        sa.Column('valid_until', sa.Date(), nullable=False),
        sa.Column('dispensed_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('prescription_number')
    )
    op.create_index('ix_prescriptions_customer_name', 'prescriptions', ['customer_name'], unique=False)
    op.create_index('ix_prescriptions_customer_phone', 'prescriptions', ['customer_phone'], unique=False)
    op.create_index('ix_prescriptions_doctor_name', 'prescriptions', ['doctor_name'], unique=False)
    op.create_index('ix_prescriptions_status', 'prescriptions', ['status'], unique=False)
    op.create_index('ix_prescriptions_priority', 'prescriptions', ['priority'], unique=False)
    op.create_index('ix_prescriptions_valid_until', 'prescriptions', ['valid_until'], unique=False)
    op.create_index('ix_prescriptions_created_at', 'prescriptions', ['created_at'], unique=False)

    op.create_table(
        'prescription_items',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('prescription_id', sa.String(length=36), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('medicine_id', sa.String(length=36), nullable=False),
        sa.Column('medicine_name', sa.String(length=100), nullable=False),
        sa.Column('dosage', sa.String(length=50), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('dispensed', sa.Integer(), nullable=False),
        sa.Column('instructions', sa.String(length=200), nullable=False),
        sa.Column('frequency', sa.String(length=50), nullable=True),
        sa.Column('duration', sa.String(length=50), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['prescription_id'], ['prescriptions.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_prescription_items_prescription_id', 'prescription_items', ['prescription_id'], unique=False)
    op.create_index('ix_prescription_items_medicine_id', 'prescription_items', ['medicine_id'], unique=False)


def downgrade() -> None:
    # Drop all tables in reverse order of creation
    op.drop_table('prescription_items')
    op.drop_table('prescriptions')
    op.drop_table('sale_items')
    op.drop_table('sales')
    op.drop_table('medicines')
    op.drop_table('suppliers')
    op.drop_table('categories')
