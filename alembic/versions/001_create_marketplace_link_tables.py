"""Create catalog, marketplace account and marketplace link tables.

Revision ID: 001
Revises:
Create Date: 2026-10-18

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
    """Create products, product_variants, marketplace_accounts and marketplace_links tables."""
    # Products table
    op.create_table(
        'products',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.String(500), nullable=False),
        sa.Column('parent_sku', sa.String(100), nullable=True, index=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
    )

    # Product variants table
    op.create_table(
        'product_variants',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('product_id', sa.String(36),
                  sa.ForeignKey('products.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('sku', sa.String(100), nullable=True, index=True),
        sa.Column('color', sa.String(50), nullable=True),
        sa.Column('size', sa.String(50), nullable=True),
    )

    op.create_unique_constraint(
        'uq_variants_product_sku',
        'product_variants',
        ['product_id', 'sku'],
    )

    # Marketplace accounts table
    op.create_table(
        'marketplace_accounts',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('channel', sa.String(50), nullable=False, index=True),
        sa.Column('display_name', sa.String(255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('credentials', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
    )

    # Marketplace links table
    op.create_table(
        'marketplace_links',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('linkable_type', sa.String(20), nullable=False),
        sa.Column('linkable_id', sa.String(36), nullable=False, index=True),
        sa.Column('account_id', sa.String(36),
                  sa.ForeignKey('marketplace_accounts.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('link_level', sa.String(20), nullable=False),
        # No foreign key: dangling parents are reported by validation
        sa.Column('parent_link_id', sa.String(36), nullable=True, index=True),
        sa.Column('internal_sku', sa.String(255), nullable=False, server_default='NO-SKU'),
        sa.Column('external_sku', sa.String(255), nullable=True),
        sa.Column('external_product_id', sa.String(255), nullable=True),
        sa.Column('external_variant_id', sa.String(255), nullable=True),
        sa.Column('link_status', sa.String(20), nullable=False, server_default='pending', index=True),
        sa.Column('linked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('linked_by', sa.String(255), nullable=True),
        sa.Column('marketplace_data', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
    )

    op.create_unique_constraint(
        'uq_marketplace_links_linkable_account',
        'marketplace_links',
        ['linkable_type', 'linkable_id', 'account_id'],
    )
    op.create_index(
        'ix_marketplace_links_account_level',
        'marketplace_links',
        ['account_id', 'link_level'],
    )


def downgrade() -> None:
    """Drop marketplace link, account and catalog tables."""
    op.drop_index('ix_marketplace_links_account_level', table_name='marketplace_links')
    op.drop_table('marketplace_links')
    op.drop_table('marketplace_accounts')
    op.drop_table('product_variants')
    op.drop_table('products')
