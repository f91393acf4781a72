"""Initial schema: users, cases, evidence, custody records and the audit ledger.

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False),
        sa.Column('role', sa.String(length=50), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_role', 'users', ['role'])

    op.create_table(
        'api_keys',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('prefix', sa.String(length=16), nullable=False),
        sa.Column('digest', sa.String(length=64), nullable=False),
        sa.Column('label', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('last_used_at', sa.DateTime(), nullable=True),
        sa.Column('revoked_at', sa.DateTime(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('digest')
    )
    op.create_index('ix_api_keys_id', 'api_keys', ['id'])
    op.create_index('ix_api_keys_user_id', 'api_keys', ['user_id'])
    op.create_index('ix_api_keys_prefix', 'api_keys', ['prefix'])

    op.create_table(
        'cases',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('case_number', sa.String(length=50), nullable=False),
        sa.Column('case_name', sa.String(length=255), nullable=False),
        sa.Column('case_type', sa.String(length=255), nullable=True),
        sa.Column('priority', sa.String(length=50), nullable=False),
        sa.Column('status', sa.String(length=50), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('lead_investigator_id', sa.Integer(), nullable=False),
        sa.Column('client_id', sa.Integer(), nullable=False),
        sa.Column('overview', sa.Text(), nullable=True),
        sa.Column('findings', sa.Text(), nullable=True),
        sa.Column('is_deleted', sa.Boolean(), nullable=False),
        sa.Column('deleted_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['lead_investigator_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['client_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_cases_id', 'cases', ['id'])
    op.create_index('ix_cases_case_number', 'cases', ['case_number'], unique=True)
    op.create_index('ix_cases_status', 'cases', ['status'])
    op.create_index('ix_cases_lead_investigator_id', 'cases', ['lead_investigator_id'])
    op.create_index('ix_cases_client_id', 'cases', ['client_id'])
    op.create_index('ix_cases_is_deleted', 'cases', ['is_deleted'])

    op.create_table(
        'case_team_members',
        sa.Column('case_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('added_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['case_id'], ['cases.id'], ),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('case_id', 'user_id')
    )
    op.create_index('ix_case_team_members_user_id', 'case_team_members', ['user_id'])

    op.create_table(
        'case_tools',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('case_id', sa.Integer(), nullable=False),
        sa.Column('tool_name', sa.String(length=255), nullable=False),
        sa.Column('tool_version', sa.String(length=100), nullable=True),
        sa.Column('purpose', sa.Text(), nullable=True),
        sa.Column('created_by', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['case_id'], ['cases.id'], ),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_case_tools_id', 'case_tools', ['id'])
    op.create_index('ix_case_tools_case_id', 'case_tools', ['case_id'])

    op.create_table(
        'evidence',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('case_id', sa.Integer(), nullable=False),
        sa.Column('file_reference', sa.String(length=1024), nullable=False),
        sa.Column('file_name', sa.String(length=255), nullable=False),
        sa.Column('file_size', sa.BigInteger(), nullable=False),
        sa.Column('content_type', sa.String(length=255), nullable=True),
        sa.Column('content_hash', sa.String(length=64), nullable=False),
        sa.Column('summary', sa.Text(), nullable=True),
        sa.Column('capture_metadata', sa.JSON(), nullable=True),
        sa.Column('uploaded_by', sa.Integer(), nullable=False),
        sa.Column('uploaded_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['case_id'], ['cases.id'], ),
        sa.ForeignKeyConstraint(['uploaded_by'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_evidence_id', 'evidence', ['id'])
    op.create_index('ix_evidence_case_id', 'evidence', ['case_id'])
    op.create_index('ix_evidence_content_hash', 'evidence', ['content_hash'])
    op.create_index('ix_evidence_uploaded_at', 'evidence', ['uploaded_at'])

    # Audit ledger: one hash chain per case
    op.create_table(
        'ledger_entries',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('case_id', sa.Integer(), nullable=False),
        sa.Column('actor_id', sa.Integer(), nullable=False),
        sa.Column('action', sa.String(length=100), nullable=False),
        sa.Column('details', sa.Text(), nullable=False),
        sa.Column('timestamp', sa.String(length=32), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.Column('entry_hash', sa.String(length=64), nullable=False),
        sa.Column('previous_hash', sa.String(length=64), nullable=False),
        sa.Column('format_version', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['case_id'], ['cases.id'], ),
        sa.ForeignKeyConstraint(['actor_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('case_id', 'previous_hash', name='uq_ledger_case_previous_hash'),
        sa.UniqueConstraint('case_id', 'sequence', name='uq_ledger_case_sequence'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_ledger_entries_id', 'ledger_entries', ['id'])
    op.create_index('ix_ledger_entries_case_id', 'ledger_entries', ['case_id'])
    op.create_index('ix_ledger_entries_actor_id', 'ledger_entries', ['actor_id'])
    op.create_index('ix_ledger_entries_action', 'ledger_entries', ['action'])
    op.create_index('ix_ledger_entries_timestamp', 'ledger_entries', ['timestamp'])
    op.create_index('ix_ledger_entries_entry_hash', 'ledger_entries', ['entry_hash'])

    op.create_table(
        'custody_records',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('case_id', sa.Integer(), nullable=False),
        sa.Column('evidence_id', sa.Integer(), nullable=False),
        sa.Column('event_type', sa.String(length=20), nullable=False),
        sa.Column('event_datetime', sa.DateTime(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=False),
        sa.Column('location', sa.String(length=255), nullable=True),
        sa.Column('condition_at_event', sa.String(length=255), nullable=True),
        sa.Column('security_controls', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('released_by_name', sa.String(length=255), nullable=True),
        sa.Column('released_by_role', sa.String(length=255), nullable=True),
        sa.Column('received_by_name', sa.String(length=255), nullable=True),
        sa.Column('received_by_role', sa.String(length=255), nullable=True),
        sa.Column('access_type', sa.String(length=100), nullable=True),
        sa.Column('hash_algorithm', sa.String(length=50), nullable=True),
        sa.Column('hash_value', sa.String(length=128), nullable=True),
        sa.Column('hash_verified', sa.Boolean(), nullable=False),
        sa.Column('hash_match', sa.Boolean(), nullable=True),
        sa.Column('created_by', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('ledger_entry_id', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['case_id'], ['cases.id'], ),
        sa.ForeignKeyConstraint(['evidence_id'], ['evidence.id'], ),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'], ),
        sa.ForeignKeyConstraint(['ledger_entry_id'], ['ledger_entries.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_custody_records_id', 'custody_records', ['id'])
    op.create_index('ix_custody_records_case_id', 'custody_records', ['case_id'])
    op.create_index('ix_custody_records_evidence_id', 'custody_records', ['evidence_id'])
    op.create_index('ix_custody_records_event_type', 'custody_records', ['event_type'])


def downgrade() -> None:
    op.drop_index('ix_custody_records_event_type', table_name='custody_records')
    op.drop_index('ix_custody_records_evidence_id', table_name='custody_records')
    op.drop_index('ix_custody_records_case_id', table_name='custody_records')
    op.drop_index('ix_custody_records_id', table_name='custody_records')
    op.drop_table('custody_records')
    op.drop_index('ix_ledger_entries_entry_hash', table_name='ledger_entries')
    op.drop_index('ix_ledger_entries_timestamp', table_name='ledger_entries')
    op.drop_index('ix_ledger_entries_action', table_name='ledger_entries')
    op.drop_index('ix_ledger_entries_actor_id', table_name='ledger_entries')
    op.drop_index('ix_ledger_entries_case_id', table_name='ledger_entries')
    op.drop_index('ix_ledger_entries_id', table_name='ledger_entries')
    op.drop_table('ledger_entries')
    op.drop_index('ix_evidence_uploaded_at', table_name='evidence')
    op.drop_index('ix_evidence_content_hash', table_name='evidence')
    op.drop_index('ix_evidence_case_id', table_name='evidence')
    op.drop_index('ix_evidence_id', table_name='evidence')
    op.drop_table('evidence')
    op.drop_index('ix_case_tools_case_id', table_name='case_tools')
    op.drop_index('ix_case_tools_id', table_name='case_tools')
    op.drop_table('case_tools')
    op.drop_index('ix_case_team_members_user_id', table_name='case_team_members')
    op.drop_table('case_team_members')
    op.drop_index('ix_cases_is_deleted', table_name='cases')
    op.drop_index('ix_cases_client_id', table_name='cases')
    op.drop_index('ix_cases_lead_investigator_id', table_name='cases')
    op.drop_index('ix_cases_status', table_name='cases')
    op.drop_index('ix_cases_case_number', table_name='cases')
    op.drop_index('ix_cases_id', table_name='cases')
    op.drop_table('cases')
    op.drop_index('ix_api_keys_prefix', table_name='api_keys')
    op.drop_index('ix_api_keys_user_id', table_name='api_keys')
    op.drop_index('ix_api_keys_id', table_name='api_keys')
    op.drop_table('api_keys')
    op.drop_index('ix_users_role', table_name='users')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_index('ix_users_id', table_name='users')
    op.drop_table('users')
