"""initial_schema

Revision ID: 3f7a9c2d1b64
Revises:
Create Date: 2026-10-19 09:12:44.118302+00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '3f7a9c2d1b64'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_JSON = sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), 'postgresql')

LOOKUP_TABLES = (
    'currencies',
    'incoterms',
    'carriers',
    'uoms',
    'urgencies',
    'shipping_types',
    'payment_processes',
    'categories',
)


def upgrade() -> None:
    # 1. lookup tables (no FKs)
    for table in LOOKUP_TABLES:
        op.create_table(table,
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
        )

    # 2. suppliers
    op.create_table('suppliers',
    sa.Column('id', sa.String(length=36), nullable=False),
    sa.Column('company_name', sa.String(length=200), nullable=False),
    sa.Column('registration_email', sa.String(length=255), nullable=False),
    sa.Column('supplier_type', sa.String(length=50), nullable=True),
    sa.Column('status', sa.String(length=20), nullable=False),
    sa.Column('contact_name', sa.String(length=200), nullable=True),
    sa.Column('phone', sa.String(length=30), nullable=True),
    sa.Column('country', sa.String(length=100), nullable=True),
    sa.Column('city', sa.String(length=100), nullable=True),
    sa.Column('created_at', sa.DateTime(), nullable=False),
    sa.Column('updated_at', sa.DateTime(), nullable=False),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('registration_email')
    )
    op.create_index('idx_suppliers_status', 'suppliers', ['status'], unique=False)

    # 3. users (optional 1:1 link to a supplier)
    op.create_table('users',
    sa.Column('id', sa.String(length=36), nullable=False),
    sa.Column('username', sa.String(length=100), nullable=False),
    sa.Column('email', sa.String(length=255), nullable=False),
    sa.Column('password_hash', sa.String(length=255), nullable=True),
    sa.Column('type', sa.String(length=20), nullable=False),
    sa.Column('supplier_id', sa.String(length=36), nullable=True),
    sa.Column('is_active', sa.Boolean(), nullable=False),
    sa.Column('created_at', sa.DateTime(), nullable=False),
    sa.Column('last_login_at', sa.DateTime(), nullable=True),
    sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id'], ),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('username'),
    sa.UniqueConstraint('supplier_id')
    )
    op.create_index('idx_users_email', 'users', ['email'], unique=False)
    op.create_index('idx_users_type', 'users', ['type'], unique=False)

    # 4. brfqs and children
    op.create_table('brfqs',
    sa.Column('id', sa.String(length=36), nullable=False),
    sa.Column('rfq_id', sa.String(length=50), nullable=False),
    sa.Column('title', sa.String(length=300), nullable=False),
    sa.Column('category_id', sa.String(length=36), nullable=True),
    sa.Column('status', sa.String(length=30), nullable=False),
    sa.Column('approval_status', sa.String(length=30), nullable=True),
    sa.Column('published', sa.Boolean(), nullable=False),
    sa.Column('publish_on_approval', sa.Boolean(), nullable=False),
    sa.Column('approved_by', sa.String(length=255), nullable=True),
    sa.Column('approved_at', sa.DateTime(), nullable=True),
    sa.Column('approval_note', sa.Text(), nullable=True),
    sa.Column('close_date', sa.DateTime(), nullable=True),
    sa.Column('requester', sa.String(length=255), nullable=True),
    sa.Column('requester_email', sa.String(length=255), nullable=True),
    sa.Column('currency', sa.String(length=20), nullable=True),
    sa.Column('incoterms', sa.String(length=50), nullable=True),
    sa.Column('carrier', sa.String(length=100), nullable=True),
    sa.Column('urgency', sa.String(length=50), nullable=True),
    sa.Column('shipping_type', sa.String(length=100), nullable=True),
    sa.Column('payment_process', sa.String(length=100), nullable=True),
    sa.Column('shipping_address', sa.Text(), nullable=True),
    sa.Column('notes_to_supplier', sa.Text(), nullable=True),
    sa.Column('target_price', sa.Numeric(precision=14, scale=2), nullable=True),
    sa.Column('created_by', sa.String(length=36), nullable=True),
    sa.Column('created_at', sa.DateTime(), nullable=False),
    sa.Column('updated_at', sa.DateTime(), nullable=False),
    sa.ForeignKeyConstraint(['category_id'], ['categories.id'], ),
    sa.ForeignKeyConstraint(['created_by'], ['users.id'], ),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('rfq_id')
    )
    op.create_index('idx_brfqs_status', 'brfqs', ['status'], unique=False)
    op.create_index('idx_brfqs_approval_status', 'brfqs', ['approval_status'], unique=False)

    op.create_table('brfq_suppliers',
    sa.Column('brfq_id', sa.String(length=36), nullable=False),
    sa.Column('supplier_id', sa.String(length=36), nullable=False),
    sa.ForeignKeyConstraint(['brfq_id'], ['brfqs.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('brfq_id', 'supplier_id')
    )

    op.create_table('request_items',
    sa.Column('id', sa.String(length=36), nullable=False),
    sa.Column('brfq_id', sa.String(length=36), nullable=False),
    sa.Column('internal_part_no', sa.String(length=100), nullable=True),
    sa.Column('manufacturer', sa.String(length=200), nullable=True),
    sa.Column('mfg_part_no', sa.String(length=100), nullable=True),
    sa.Column('description', sa.Text(), nullable=False),
    sa.Column('uom', sa.String(length=20), nullable=False),
    sa.Column('quantity', sa.Integer(), nullable=False),
    sa.ForeignKeyConstraint(['brfq_id'], ['brfqs.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_request_items_brfq', 'request_items', ['brfq_id'], unique=False)

    op.create_table('scope_of_work_items',
    sa.Column('id', sa.String(length=36), nullable=False),
    sa.Column('brfq_id', sa.String(length=36), nullable=False),
    sa.Column('title', sa.String(length=300), nullable=False),
    sa.Column('description', sa.Text(), nullable=True),
    sa.Column('position', sa.Integer(), nullable=False),
    sa.ForeignKeyConstraint(['brfq_id'], ['brfqs.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id')
    )

    op.create_table('brfq_approval_steps',
    sa.Column('id', sa.String(length=36), nullable=False),
    sa.Column('brfq_id', sa.String(length=36), nullable=False),
    sa.Column('action', sa.String(length=20), nullable=False),
    sa.Column('acted_by', sa.String(length=255), nullable=False),
    sa.Column('note', sa.Text(), nullable=True),
    sa.Column('acted_at', sa.DateTime(), nullable=False),
    sa.ForeignKeyConstraint(['brfq_id'], ['brfqs.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_brfq_steps_brfq', 'brfq_approval_steps', ['brfq_id'], unique=False)

    op.create_table('pause_actions',
    sa.Column('id', sa.String(length=36), nullable=False),
    sa.Column('brfq_id', sa.String(length=36), nullable=False),
    sa.Column('action', sa.String(length=20), nullable=False),
    sa.Column('performed_by', sa.String(length=255), nullable=False),
    sa.Column('previous_status', sa.String(length=30), nullable=True),
    sa.Column('reason', sa.Text(), nullable=True),
    sa.Column('notify_suppliers', sa.Boolean(), nullable=False),
    sa.Column('created_at', sa.DateTime(), nullable=False),
    sa.ForeignKeyConstraint(['brfq_id'], ['brfqs.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_pause_actions_brfq', 'pause_actions', ['brfq_id'], unique=False)

    # 5. quotes
    op.create_table('quotes',
    sa.Column('id', sa.String(length=36), nullable=False),
    sa.Column('rfq_id', sa.String(length=36), nullable=False),
    sa.Column('supplier_id', sa.String(length=36), nullable=False),
    sa.Column('supplier_quote_no', sa.String(length=100), nullable=False),
    sa.Column('valid_for', sa.String(length=100), nullable=False),
    sa.Column('currency', sa.String(length=20), nullable=False),
    sa.Column('shipping', sa.String(length=100), nullable=False),
    sa.Column('comments', sa.Text(), nullable=False),
    sa.Column('submitted_at', sa.DateTime(), nullable=False),
    sa.ForeignKeyConstraint(['rfq_id'], ['brfqs.id'], ),
    sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id'], ),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('rfq_id', 'supplier_id', name='uq_quote_rfq_supplier')
    )
    op.create_index('idx_quotes_rfq', 'quotes', ['rfq_id'], unique=False)

    op.create_table('quote_items',
    sa.Column('id', sa.String(length=36), nullable=False),
    sa.Column('quote_id', sa.String(length=36), nullable=False),
    sa.Column('supplier_part_no', sa.String(length=100), nullable=False),
    sa.Column('delivery_days', sa.String(length=50), nullable=False),
    sa.Column('unit_price', sa.Numeric(precision=14, scale=4), nullable=True),
    sa.Column('qty', sa.Numeric(precision=14, scale=4), nullable=True),
    sa.Column('uom', sa.String(length=20), nullable=False),
    sa.Column('cost', sa.Numeric(precision=16, scale=4), nullable=False),
    sa.ForeignKeyConstraint(['quote_id'], ['quotes.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id')
    )

    # 6. modification requests
    op.create_table('modification_requests',
    sa.Column('id', sa.String(length=36), nullable=False),
    sa.Column('brfq_id', sa.String(length=36), nullable=False),
    sa.Column('requested_by', sa.String(length=255), nullable=False),
    sa.Column('field', sa.String(length=100), nullable=False),
    sa.Column('reason', sa.Text(), nullable=False),
    sa.Column('summary', _JSON, nullable=True),
    sa.Column('status', sa.String(length=20), nullable=False),
    sa.Column('previous_status', sa.String(length=30), nullable=True),
    sa.Column('previous_published', sa.Boolean(), nullable=True),
    sa.Column('processed_by', sa.String(length=255), nullable=True),
    sa.Column('processed_at', sa.DateTime(), nullable=True),
    sa.Column('requested_at', sa.DateTime(), nullable=False),
    sa.CheckConstraint("status IN ('pending','approved','rejected')", name='chk_modification_status'),
    sa.ForeignKeyConstraint(['brfq_id'], ['brfqs.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_modifications_brfq', 'modification_requests', ['brfq_id'], unique=False)
    op.create_index('idx_modifications_status', 'modification_requests', ['status'], unique=False)

    op.create_table('modification_approval_history',
    sa.Column('id', sa.String(length=36), nullable=False),
    sa.Column('modification_id', sa.String(length=36), nullable=False),
    sa.Column('action', sa.String(length=20), nullable=False),
    sa.Column('acted_by', sa.String(length=255), nullable=False),
    sa.Column('acted_at', sa.DateTime(), nullable=False),
    sa.Column('note', sa.Text(), nullable=True),
    sa.ForeignKeyConstraint(['modification_id'], ['modification_requests.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_mod_history_modification', 'modification_approval_history', ['modification_id'], unique=False)

    # 7. awards
    op.create_table('awards',
    sa.Column('id', sa.String(length=36), nullable=False),
    sa.Column('brfq_id', sa.String(length=36), nullable=False),
    sa.Column('status', sa.String(length=20), nullable=False),
    sa.Column('justification', sa.Text(), nullable=True),
    sa.Column('estimated_value', sa.Numeric(precision=16, scale=2), nullable=True),
    sa.Column('split_award', sa.Boolean(), nullable=False),
    sa.Column('created_by', sa.String(length=255), nullable=False),
    sa.Column('approved_by', sa.String(length=255), nullable=True),
    sa.Column('approved_at', sa.DateTime(), nullable=True),
    sa.Column('created_at', sa.DateTime(), nullable=False),
    sa.ForeignKeyConstraint(['brfq_id'], ['brfqs.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_awards_brfq', 'awards', ['brfq_id'], unique=False)

    op.create_table('award_winners',
    sa.Column('id', sa.String(length=36), nullable=False),
    sa.Column('award_id', sa.String(length=36), nullable=False),
    sa.Column('supplier_id', sa.String(length=36), nullable=False),
    sa.Column('amount', sa.Numeric(precision=16, scale=2), nullable=True),
    sa.ForeignKeyConstraint(['award_id'], ['awards.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id'], ),
    sa.PrimaryKeyConstraint('id')
    )

    op.create_table('award_approval_history',
    sa.Column('id', sa.String(length=36), nullable=False),
    sa.Column('award_id', sa.String(length=36), nullable=False),
    sa.Column('action', sa.String(length=20), nullable=False),
    sa.Column('by_user', sa.String(length=255), nullable=False),
    sa.Column('note', sa.Text(), nullable=True),
    sa.Column('created_at', sa.DateTime(), nullable=False),
    sa.ForeignKeyConstraint(['award_id'], ['awards.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id')
    )

    # 8. audit_logs (no FKs; entity ids are polymorphic)
    op.create_table('audit_logs',
    sa.Column('id', sa.String(length=36), nullable=False),
    sa.Column('actor', sa.String(length=255), nullable=True),
    sa.Column('action', sa.String(length=100), nullable=False),
    sa.Column('entity_type', sa.String(length=50), nullable=False),
    sa.Column('entity_id', sa.String(length=36), nullable=False),
    sa.Column('before_state', _JSON, nullable=True),
    sa.Column('after_state', _JSON, nullable=True),
    sa.Column('changed_fields', _JSON, nullable=True),
    sa.Column('request_id', sa.String(length=64), nullable=True),
    sa.Column('created_at', sa.DateTime(), nullable=False),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_audit_entity', 'audit_logs', ['entity_type', 'entity_id'], unique=False)
    op.create_index('idx_audit_created', 'audit_logs', [sa.text('created_at DESC')], unique=False)


def downgrade() -> None:
    op.drop_table('audit_logs')
    op.drop_table('award_approval_history')
    op.drop_table('award_winners')
    op.drop_table('awards')
    op.drop_table('modification_approval_history')
    op.drop_table('modification_requests')
    op.drop_table('quote_items')
    op.drop_table('quotes')
    op.drop_table('pause_actions')
    op.drop_table('brfq_approval_steps')
    op.drop_table('scope_of_work_items')
    op.drop_table('request_items')
    op.drop_table('brfq_suppliers')
    op.drop_table('brfqs')
    op.drop_table('users')
    op.drop_table('suppliers')
    for table in reversed(LOOKUP_TABLES):
        op.drop_table(table)
