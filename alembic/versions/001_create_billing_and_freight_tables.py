"""Create usage billing and freight tariff tables

Revision ID: 001_billing_freight
Revises:
Create Date: 2026-03-02

Creates contracts with their service items, the warehouse operation
records read by usage metering, usage invoices and freight rate tables.
Invoices are unique per number and per (contract, period).
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001_billing_freight'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create billing, operations and freight tables."""

    # ==================== CONTRACTS ====================
    op.create_table(
        'service_contracts',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('contract_number', sa.String(30), nullable=False),
        sa.Column('customer_id', sa.Uuid(), nullable=False),
        sa.Column('recipient_id', sa.Uuid(), nullable=True),
        sa.Column('warehouse_id', sa.Uuid(), nullable=False),
        sa.Column('billing_cycle', sa.String(20), nullable=False, server_default='MONTHLY'),
        sa.Column('due_days', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='ACTIVE'),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('contract_number', name='uq_service_contract_number'),
    )
    op.create_index('ix_service_contracts_status', 'service_contracts', ['status'])
    op.create_index('ix_service_contracts_customer_id', 'service_contracts', ['customer_id'])
    op.create_index('ix_service_contracts_recipient_id', 'service_contracts', ['recipient_id'])
    op.create_index('ix_service_contracts_warehouse_id', 'service_contracts', ['warehouse_id'])

    op.create_table(
        'contract_service_items',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column(
            'contract_id', sa.Uuid(),
            sa.ForeignKey('service_contracts.id', ondelete='CASCADE'),
            nullable=False
        ),
        sa.Column('service_type', sa.String(30), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('included_quantity', sa.Numeric(12, 2), nullable=True, server_default='0'),
        sa.Column('minimum_quantity', sa.Numeric(12, 2), nullable=True, server_default='0'),
        sa.Column('unit_price', sa.Numeric(12, 4), nullable=False),
        sa.Column('overage_unit_price', sa.Numeric(12, 4), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_contract_service_items_contract_id', 'contract_service_items', ['contract_id'])

    # ==================== OPERATIONS (read by the usage meter) ====================
    op.create_table(
        'inbound_receipts',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('recipient_id', sa.Uuid(), nullable=False),
        sa.Column('warehouse_id', sa.Uuid(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='PENDING'),
        sa.Column('receipt_date', sa.Date(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        'ix_inbound_receipts_lookup', 'inbound_receipts',
        ['recipient_id', 'warehouse_id', 'receipt_date']
    )

    op.create_table(
        'receipt_pallets',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column(
            'receipt_id', sa.Uuid(),
            sa.ForeignKey('inbound_receipts.id', ondelete='CASCADE'),
            nullable=False
        ),
        sa.Column('barcode', sa.String(50), nullable=True),
    )
    op.create_index('ix_receipt_pallets_receipt_id', 'receipt_pallets', ['receipt_id'])

    op.create_table(
        'outbound_shipments',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('recipient_id', sa.Uuid(), nullable=False),
        sa.Column('warehouse_id', sa.Uuid(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='PLANNED'),
        sa.Column('dispatch_date', sa.Date(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        'ix_outbound_shipments_lookup', 'outbound_shipments',
        ['recipient_id', 'warehouse_id', 'dispatch_date']
    )

    op.create_table(
        'outbound_shipment_items',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column(
            'shipment_id', sa.Uuid(),
            sa.ForeignKey('outbound_shipments.id', ondelete='CASCADE'),
            nullable=False
        ),
        sa.Column('product_id', sa.Uuid(), nullable=True),
        sa.Column('quantity', sa.Numeric(12, 3), nullable=True, server_default='0'),
    )
    op.create_index('ix_outbound_shipment_items_shipment_id', 'outbound_shipment_items', ['shipment_id'])

    op.create_table(
        'storage_units',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('recipient_id', sa.Uuid(), nullable=False),
        sa.Column('warehouse_id', sa.Uuid(), nullable=False),
        sa.Column('remaining_quantity', sa.Numeric(12, 3), nullable=True, server_default='0'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_storage_units_lookup', 'storage_units', ['recipient_id', 'warehouse_id'])

    # ==================== USAGE INVOICES ====================
    op.create_table(
        'usage_invoices',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('invoice_number', sa.String(30), nullable=False),
        sa.Column(
            'contract_id', sa.Uuid(),
            sa.ForeignKey('service_contracts.id', ondelete='RESTRICT'),
            nullable=False
        ),
        sa.Column('customer_id', sa.Uuid(), nullable=False),
        sa.Column('recipient_id', sa.Uuid(), nullable=True),
        sa.Column('warehouse_id', sa.Uuid(), nullable=False),
        sa.Column('period_start', sa.Date(), nullable=False),
        sa.Column('period_end', sa.Date(), nullable=False),
        sa.Column('issue_date', sa.Date(), nullable=False),
        sa.Column('due_date', sa.Date(), nullable=False),
        sa.Column('service_amount', sa.Numeric(14, 2), nullable=True, server_default='0'),
        sa.Column('total_amount', sa.Numeric(14, 2), nullable=True, server_default='0'),
        sa.Column('status', sa.String(20), nullable=False, server_default='PENDING'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('invoice_number', name='uq_invoice_number'),
        sa.UniqueConstraint(
            'contract_id', 'period_start', 'period_end',
            name='uq_invoice_contract_period'
        ),
    )
    op.create_index('ix_usage_invoices_invoice_number', 'usage_invoices', ['invoice_number'])
    op.create_index('ix_usage_invoices_contract_id', 'usage_invoices', ['contract_id'])
    op.create_index('ix_usage_invoices_customer_id', 'usage_invoices', ['customer_id'])
    op.create_index('ix_usage_invoices_status', 'usage_invoices', ['status'])

    op.create_table(
        'usage_invoice_items',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column(
            'invoice_id', sa.Uuid(),
            sa.ForeignKey('usage_invoices.id', ondelete='CASCADE'),
            nullable=False
        ),
        sa.Column(
            'service_item_id', sa.Uuid(),
            sa.ForeignKey('contract_service_items.id', ondelete='SET NULL'),
            nullable=True
        ),
        sa.Column('line_number', sa.Integer(), nullable=True, server_default='1'),
        sa.Column('service_type', sa.String(30), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('quantity_used', sa.Numeric(14, 2), nullable=True, server_default='0'),
        sa.Column('quantity_included', sa.Numeric(14, 2), nullable=True, server_default='0'),
        sa.Column('quantity_minimum', sa.Numeric(14, 2), nullable=True, server_default='0'),
        sa.Column('quantity', sa.Numeric(14, 2), nullable=True, server_default='0'),
        sa.Column('unit_price', sa.Numeric(12, 4), nullable=False),
        sa.Column('overage_price', sa.Numeric(12, 4), nullable=False),
        sa.Column('amount', sa.Numeric(14, 2), nullable=True, server_default='0'),
        sa.Column('calculation_details', sa.JSON(), nullable=True),
    )
    op.create_index('ix_usage_invoice_items_invoice_id', 'usage_invoice_items', ['invoice_id'])

    # ==================== FREIGHT ====================
    op.create_table(
        'transporters',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('code', sa.String(20), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=True, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_transporters_code', 'transporters', ['code'], unique=True)

    op.create_table(
        'freight_rate_tables',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('owner_id', sa.Uuid(), nullable=False),
        sa.Column(
            'transporter_id', sa.Uuid(),
            sa.ForeignKey('transporters.id', ondelete='SET NULL'),
            nullable=True
        ),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=True, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_freight_rate_tables_owner_active', 'freight_rate_tables', ['owner_id', 'is_active'])
    op.create_index('ix_freight_rate_tables_transporter_id', 'freight_rate_tables', ['transporter_id'])

    op.create_table(
        'freight_rate_brackets',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column(
            'rate_table_id', sa.Uuid(),
            sa.ForeignKey('freight_rate_tables.id', ondelete='CASCADE'),
            nullable=False
        ),
        sa.Column('distance_min', sa.Numeric(10, 2), nullable=False),
        sa.Column('distance_max', sa.Numeric(10, 2), nullable=False),
        sa.Column('value_up_to_300kg', sa.Numeric(12, 2), nullable=False),
        sa.Column('value_per_kg_above_300', sa.Numeric(12, 4), nullable=False),
        sa.Column('toll_per_ton', sa.Numeric(12, 2), nullable=True, server_default='0'),
        sa.Column('lead_time_days', sa.Integer(), nullable=True, server_default='0'),
    )
    op.create_index('ix_freight_rate_brackets_rate_table_id', 'freight_rate_brackets', ['rate_table_id'])


def downgrade() -> None:
    """Drop billing, operations and freight tables."""
    op.drop_table('freight_rate_brackets')
    op.drop_table('freight_rate_tables')
    op.drop_table('transporters')
    op.drop_table('usage_invoice_items')
    op.drop_table('usage_invoices')
    op.drop_table('storage_units')
    op.drop_table('outbound_shipment_items')
    op.drop_table('outbound_shipments')
    op.drop_table('receipt_pallets')
    op.drop_table('inbound_receipts')
    op.drop_table('contract_service_items')
    op.drop_table('service_contracts')
