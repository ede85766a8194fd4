"""Initial schema: tenants, leads, call/SMS logs, consent, row-level security

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Tables with a direct tenant_id column
TENANT_SCOPED_TABLES = [
    'leads',
    'call_logs',
    'sms_logs',
    'sms_opt_ins',
    'sms_consent_audits',
]

_TENANT_MATCH = "tenant_id = get_current_tenant_id() OR get_current_tenant_id() IS NULL"


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        'tenants',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('business_name', sa.String(255), nullable=False),
        sa.Column('slug', sa.String(100), nullable=False),
        sa.Column('custom_domain', sa.String(255), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('twilio_phone_number', sa.String(50), nullable=True),
        sa.Column('twilio_forward_to', sa.String(50), nullable=True),
        sa.Column('notification_email', sa.String(255), nullable=True),
        sa.Column('notification_phone', sa.String(50), nullable=True),
        sa.Column('sms_auto_reply', sa.Text(), nullable=True),
        sa.Column('callback_window', sa.String(100), nullable=True),
        sa.Column('urgent_phone', sa.String(50), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("status IN ('active', 'inactive', 'suspended', 'trial')", name='ck_tenants_status'),
    )
    op.create_index('ix_tenants_slug', 'tenants', ['slug'], unique=True)
    op.create_index('ix_tenants_custom_domain', 'tenants', ['custom_domain'], unique=True)
    op.create_index('ix_tenants_twilio_phone_number', 'tenants', ['twilio_phone_number'], unique=True)

    op.create_table(
        'leads',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.Integer(), sa.ForeignKey('tenants.id'), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('service_type', sa.String(100), nullable=True),
        sa.Column('source', sa.String(20), nullable=False, server_default='website'),
        sa.Column('status', sa.String(20), nullable=False, server_default='new'),
        sa.Column('sms_opted_in', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('sms_opt_in_timestamp', sa.DateTime(), nullable=True),
        sa.Column('sms_opt_in_method', sa.String(50), nullable=True),
        sa.Column('sms_opt_in_ip', sa.String(64), nullable=True),
        sa.Column('ip_address', sa.String(64), nullable=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        sa.Column('referrer', sa.Text(), nullable=True),
        sa.Column('page_url', sa.Text(), nullable=True),
        sa.Column('utm_source', sa.String(255), nullable=True),
        sa.Column('utm_medium', sa.String(255), nullable=True),
        sa.Column('utm_campaign', sa.String(255), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("source IN ('website', 'phone', 'sms', 'referral')", name='ck_leads_source'),
        sa.CheckConstraint(
            "status IN ('new', 'contacted', 'qualified', 'converted', 'lost')", name='ck_leads_status'
        ),
    )
    op.create_index('ix_leads_tenant_id', 'leads', ['tenant_id'])
    op.create_index('ix_leads_phone', 'leads', ['phone'])

    op.create_table(
        'call_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.Integer(), sa.ForeignKey('tenants.id'), nullable=False),
        sa.Column('call_sid', sa.String(64), nullable=False),
        sa.Column('account_sid', sa.String(64), nullable=True),
        sa.Column('from_number', sa.String(50), nullable=False),
        sa.Column('to_number', sa.String(50), nullable=False),
        sa.Column('forwarded_to', sa.String(50), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='ringing'),
        sa.Column('direction', sa.String(20), nullable=False, server_default='inbound'),
        sa.Column('duration', sa.Integer(), nullable=True),
        sa.Column('answered_at', sa.DateTime(), nullable=True),
        sa.Column('ended_at', sa.DateTime(), nullable=True),
        sa.Column('recording_url', sa.Text(), nullable=True),
        sa.Column('recording_sid', sa.String(64), nullable=True),
        sa.Column('recording_duration', sa.Integer(), nullable=True),
        sa.Column('transcription_text', sa.Text(), nullable=True),
        sa.Column('dial_status', sa.String(20), nullable=True),
        sa.Column('dial_duration', sa.Integer(), nullable=True),
        sa.Column('connected_to_owner', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('owner_answered_at', sa.DateTime(), nullable=True),
        sa.Column('auto_sms_sent', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('missed_call_notified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('voicemail_notified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('caller_city', sa.String(100), nullable=True),
        sa.Column('caller_state', sa.String(50), nullable=True),
        sa.Column('caller_zip', sa.String(20), nullable=True),
        sa.Column('caller_country', sa.String(10), nullable=True),
        sa.Column('lead_id', sa.Integer(), sa.ForeignKey('leads.id'), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_call_logs_call_sid', 'call_logs', ['call_sid'], unique=True)
    op.create_index('ix_call_logs_tenant_id', 'call_logs', ['tenant_id'])
    op.create_index('ix_call_logs_lead_id', 'call_logs', ['lead_id'])

    op.create_table(
        'sms_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.Integer(), sa.ForeignKey('tenants.id'), nullable=False),
        sa.Column('message_sid', sa.String(64), nullable=True),
        sa.Column('from_number', sa.String(50), nullable=False),
        sa.Column('to_number', sa.String(50), nullable=False),
        sa.Column('body', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='received'),
        sa.Column('direction', sa.String(20), nullable=False, server_default='inbound'),
        sa.Column('is_auto_response', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('triggered_by_message_sid', sa.String(64), nullable=True),
        sa.Column('error_code', sa.String(20), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('lead_id', sa.Integer(), sa.ForeignKey('leads.id'), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "NOT is_auto_response OR triggered_by_message_sid IS NOT NULL",
            name='ck_sms_logs_auto_response_trigger',
        ),
    )
    op.create_index('ix_sms_logs_message_sid', 'sms_logs', ['message_sid'], unique=True)
    op.create_index('ix_sms_logs_tenant_id', 'sms_logs', ['tenant_id'])
    op.create_index('ix_sms_logs_triggered_by_message_sid', 'sms_logs', ['triggered_by_message_sid'])
    op.create_index('ix_sms_logs_lead_id', 'sms_logs', ['lead_id'])

    op.create_table(
        'sms_opt_ins',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.Integer(), sa.ForeignKey('tenants.id'), nullable=False),
        sa.Column('phone_number', sa.String(50), nullable=False),
        sa.Column('is_opted_in', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('opted_in_at', sa.DateTime(), nullable=True),
        sa.Column('opted_out_at', sa.DateTime(), nullable=True),
        sa.Column('opt_in_method', sa.String(50), nullable=True),
        sa.Column('opt_out_method', sa.String(50), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('tenant_id', 'phone_number', name='uq_sms_opt_ins_tenant_phone'),
    )
    op.create_index('ix_sms_opt_ins_tenant_id', 'sms_opt_ins', ['tenant_id'])
    op.create_index('ix_sms_opt_ins_phone_number', 'sms_opt_ins', ['phone_number'])

    op.create_table(
        'sms_consent_audits',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.Integer(), sa.ForeignKey('tenants.id'), nullable=False),
        sa.Column('phone_number', sa.String(50), nullable=False),
        sa.Column('action', sa.String(30), nullable=False),
        sa.Column('keyword', sa.String(30), nullable=True),
        sa.Column('method', sa.String(30), nullable=True),
        sa.Column('message_sid', sa.String(64), nullable=True),
        sa.Column('lead_id', sa.Integer(), sa.ForeignKey('leads.id'), nullable=True),
        sa.Column('consent_version', sa.String(20), nullable=True),
        sa.Column('ip_address', sa.String(64), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_sms_consent_audits_tenant_id', 'sms_consent_audits', ['tenant_id'])
    op.create_index('ix_sms_consent_audits_phone_number', 'sms_consent_audits', ['phone_number'])

    if op.get_bind().dialect.name != "postgresql":
        return

    # Row-level security keyed on the transaction-local app.current_tenant_id
    op.execute("""
        CREATE OR REPLACE FUNCTION get_current_tenant_id()
        RETURNS INTEGER AS $$
        BEGIN
            RETURN NULLIF(current_setting('app.current_tenant_id', true), '')::INTEGER;
        EXCEPTION
            WHEN OTHERS THEN
                RETURN NULL;
        END;
        $$ LANGUAGE plpgsql STABLE;
    """)

    for table in TENANT_SCOPED_TABLES:
        op.execute(f"ALTER TABLE {table} ENABLE ROW LEVEL SECURITY;")
        # Apply to the table owner too (the application role usually owns the tables)
        op.execute(f"ALTER TABLE {table} FORCE ROW LEVEL SECURITY;")
        op.execute(f"CREATE POLICY {table}_tenant_isolation_select ON {table} FOR SELECT USING ({_TENANT_MATCH});")
        op.execute(f"CREATE POLICY {table}_tenant_isolation_insert ON {table} FOR INSERT WITH CHECK ({_TENANT_MATCH});")
        op.execute(
            f"CREATE POLICY {table}_tenant_isolation_update ON {table} FOR UPDATE "
            f"USING ({_TENANT_MATCH}) WITH CHECK ({_TENANT_MATCH});"
        )
        op.execute(f"CREATE POLICY {table}_tenant_isolation_delete ON {table} FOR DELETE USING ({_TENANT_MATCH});")


def downgrade() -> None:
    if op.get_bind().dialect.name == "postgresql":
        for table in TENANT_SCOPED_TABLES:
            for action in ('select', 'insert', 'update', 'delete'):
                op.execute(f"DROP POLICY IF EXISTS {table}_tenant_isolation_{action} ON {table};")
            op.execute(f"ALTER TABLE {table} DISABLE ROW LEVEL SECURITY;")
        op.execute("DROP FUNCTION IF EXISTS get_current_tenant_id();")

    op.drop_table('sms_consent_audits')
    op.drop_table('sms_opt_ins')
    op.drop_table('sms_logs')
    op.drop_table('call_logs')
    op.drop_table('leads')
    op.drop_table('tenants')
