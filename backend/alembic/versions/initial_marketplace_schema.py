"""Create profiles, products, orders and feedbacks with stock functions

Revision ID: initial_marketplace_schema
Revises:
Create Date: 2025-07-27

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = 'initial_marketplace_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    user_role = postgresql.ENUM('vendor', 'supplier', name='user_role')
    user_role.create(op.get_bind(), checkfirst=True)

    op.create_table('profiles',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('full_name', sa.String(length=200), nullable=True),
        sa.Column('location', sa.String(length=300), nullable=True),
        sa.Column('contact_number', sa.String(length=20), nullable=True),
        sa.Column('phone', sa.String(length=20), nullable=True),
        sa.Column('preferred_languages', postgresql.ARRAY(sa.Text()), server_default=sa.text("ARRAY['English']::text[]"), nullable=True),
        sa.Column('user_role', postgresql.ENUM('vendor', 'supplier', name='user_role', create_type=False), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['auth.users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id')
    )

    op.create_table('products',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('supplier_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('category', sa.String(length=100), nullable=False),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('unit', sa.String(length=50), nullable=False),
        sa.Column('quantity', sa.Integer(), server_default='0', nullable=False),
        sa.Column('freshness', sa.SmallInteger(), server_default='100', nullable=False),
        sa.Column('is_available', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('image_url', sa.String(length=500), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.CheckConstraint('price > 0', name='products_price_positive_check'),
        sa.CheckConstraint('quantity >= 0', name='products_quantity_non_negative_check'),
        sa.CheckConstraint('freshness >= 0 AND freshness <= 100', name='products_freshness_range_check'),
        sa.ForeignKeyConstraint(['supplier_id'], ['profiles.user_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('products_supplier_id_idx', 'products', ['supplier_id'])
    op.create_index('products_is_available_idx', 'products', ['is_available'])

    op.create_table('orders',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('vendor_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('supplier_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('product_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('quantity_requested', sa.Integer(), nullable=False),
        sa.Column('total_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('status', sa.String(length=20), server_default='pending', nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.CheckConstraint('total_amount > 0', name='orders_total_amount_positive_check'),
        sa.CheckConstraint('quantity_requested > 0', name='orders_quantity_positive_check'),
        sa.CheckConstraint("status IN ('pending', 'accepted', 'rejected', 'completed')", name='orders_status_check'),
        sa.ForeignKeyConstraint(['vendor_id'], ['profiles.user_id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['supplier_id'], ['profiles.user_id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('orders_vendor_id_idx', 'orders', ['vendor_id'])
    op.create_index('orders_supplier_id_idx', 'orders', ['supplier_id'])

    op.create_table('feedbacks',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('product_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('vendor_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('supplier_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('rating', sa.SmallInteger(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.CheckConstraint('rating >= 1 AND rating <= 5', name='feedbacks_rating_range_check'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['vendor_id'], ['profiles.user_id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['supplier_id'], ['profiles.user_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('feedbacks_supplier_id_idx', 'feedbacks', ['supplier_id'])

    # Conditional stock updates called through PostgREST RPC by the Supabase store.
    # SET expressions read the pre-update row.
    op.execute("""
        CREATE OR REPLACE FUNCTION public.decrement_product_quantity(p_product_id uuid, p_quantity integer)
        RETURNS SETOF public.products
        LANGUAGE sql
        AS $$
            UPDATE public.products
               SET quantity = quantity - p_quantity,
                   is_available = (quantity - p_quantity) > 0,
                   updated_at = now()
             WHERE id = p_product_id
               AND is_available
               AND quantity >= p_quantity
            RETURNING *;
        $$;
    """)
    op.execute("""
        CREATE OR REPLACE FUNCTION public.restore_product_quantity(p_product_id uuid, p_quantity integer)
        RETURNS SETOF public.products
        LANGUAGE sql
        AS $$
            UPDATE public.products
               SET quantity = quantity + p_quantity,
                   is_available = is_available OR quantity = 0,
                   updated_at = now()
             WHERE id = p_product_id
            RETURNING *;
        $$;
    """)

    # Supabase Realtime only streams tables in its publication
    op.execute("""
        DO $$
        BEGIN
            IF EXISTS (SELECT 1 FROM pg_publication WHERE pubname = 'supabase_realtime') THEN
                ALTER PUBLICATION supabase_realtime ADD TABLE public.profiles, public.products, public.orders;
            END IF;
        END
        $$;
    """)


def downgrade():
    op.execute("DROP FUNCTION IF EXISTS public.restore_product_quantity(uuid, integer)")
    op.execute("DROP FUNCTION IF EXISTS public.decrement_product_quantity(uuid, integer)")

    op.drop_index('feedbacks_supplier_id_idx', table_name='feedbacks')
    op.drop_table('feedbacks')
    op.drop_index('orders_supplier_id_idx', table_name='orders')
    op.drop_index('orders_vendor_id_idx', table_name='orders')
    op.drop_table('orders')
    op.drop_index('products_is_available_idx', table_name='products')
    op.drop_index('products_supplier_id_idx', table_name='products')
    op.drop_table('products')
    op.drop_table('profiles')

    postgresql.ENUM(name='user_role').drop(op.get_bind(), checkfirst=True)
