"""Baseline migration - tenants, guest messaging, auto-rules, approvals, jobs

Revision ID: 0001_baseline
Revises: 
Create Date: 2026-10-19

Creates every table of the GuestDesk operations API.
"""
from typing import Sequence, Union

from alembic import op


# revision identifiers, used by Alembic.
revision: str = '0001_baseline'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create all tables."""

    op.execute('CREATE EXTENSION IF NOT EXISTS pgcrypto')  # For gen_random_uuid()

    # ==========================================================================
    # Tenants & Operators
    # ==========================================================================
    op.execute('''
        CREATE TABLE clients (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            name VARCHAR(255) NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    ''')

    op.execute('''
        CREATE TABLE properties (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            client_id UUID NOT NULL REFERENCES clients(id) ON DELETE CASCADE,
            name VARCHAR(255) NOT NULL,
            address TEXT,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    ''')
    op.execute('CREATE INDEX idx_properties_client ON properties(client_id)')

    op.execute('''
        CREATE TABLE users (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            email VARCHAR(255) UNIQUE NOT NULL,
            name VARCHAR(255) NOT NULL,
            role VARCHAR(20) NOT NULL,
            is_active BOOLEAN NOT NULL DEFAULT true,
            token_version INTEGER NOT NULL DEFAULT 1,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT ck_users_role CHECK (role IN ('admin', 'manager', 'agent'))
        )
    ''')

    # ==========================================================================
    # Guest Messaging
    # ==========================================================================
    op.execute('''
        CREATE TABLE threads (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            client_id UUID NOT NULL REFERENCES clients(id) ON DELETE CASCADE,
            property_id UUID NOT NULL REFERENCES properties(id) ON DELETE CASCADE,
            guest_name VARCHAR(255) NOT NULL,
            guest_email VARCHAR(255),
            status VARCHAR(20) NOT NULL DEFAULT 'pending',
            last_received_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT ck_threads_status CHECK (
                status IN ('pending', 'open', 'resolved', 'closed', 'sent', 'declined')
            )
        )
    ''')
    op.execute('CREATE INDEX idx_threads_client_status ON threads(client_id, status)')
    op.execute('CREATE INDEX idx_threads_last_received ON threads(last_received_at)')

    op.execute('''
        CREATE TABLE messages (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            thread_id UUID NOT NULL REFERENCES threads(id) ON DELETE CASCADE,
            sender_type VARCHAR(20) NOT NULL,
            text TEXT NOT NULL,
            received_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    ''')
    op.execute('CREATE INDEX idx_messages_thread_received ON messages(thread_id, received_at)')

    op.execute('''
        CREATE TABLE analyses (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            message_id UUID UNIQUE NOT NULL REFERENCES messages(id) ON DELETE CASCADE,
            thread_id UUID NOT NULL REFERENCES threads(id) ON DELETE CASCADE,
            intent VARCHAR(50) NOT NULL,
            risk VARCHAR(20) NOT NULL,
            urgency VARCHAR(20) NOT NULL,
            suggested_reply TEXT NOT NULL DEFAULT '',
            thread_summary TEXT NOT NULL DEFAULT '',
            confidence DOUBLE PRECISION NOT NULL DEFAULT 0,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT ck_analyses_risk CHECK (risk IN ('low', 'medium', 'high', 'critical'))
        )
    ''')

    # ==========================================================================
    # Auto-Rules & Approvals
    # ==========================================================================
    op.execute('''
        CREATE TABLE templates (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            client_id UUID NOT NULL REFERENCES clients(id) ON DELETE CASCADE,
            name VARCHAR(255) NOT NULL,
            body TEXT NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    ''')
    op.execute('CREATE INDEX idx_templates_client ON templates(client_id)')

    op.execute('''
        CREATE TABLE auto_rules (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            client_id UUID NOT NULL REFERENCES clients(id) ON DELETE CASCADE,
            property_id UUID REFERENCES properties(id) ON DELETE CASCADE,
            intent VARCHAR(50),
            risk_max VARCHAR(20) NOT NULL DEFAULT 'low',
            conditions JSONB NOT NULL DEFAULT '{}'::jsonb,
            action VARCHAR(20) NOT NULL,
            enabled BOOLEAN NOT NULL DEFAULT true,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT ck_auto_rules_action CHECK (action IN ('queue', 'template', 'auto_send')),
            CONSTRAINT ck_auto_rules_risk_max CHECK (
                risk_max IN ('low', 'medium', 'high', 'critical')
            )
        )
    ''')
    op.execute('CREATE INDEX idx_auto_rules_client_enabled ON auto_rules(client_id, enabled)')

    op.execute('''
        CREATE TABLE approval_requests (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            message_id UUID NOT NULL REFERENCES messages(id) ON DELETE CASCADE,
            rule_id UUID REFERENCES auto_rules(id) ON DELETE SET NULL,
            status VARCHAR(20) NOT NULL DEFAULT 'pending',
            reviewer_id UUID REFERENCES users(id) ON DELETE SET NULL,
            notes TEXT,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT ck_approval_requests_status CHECK (
                status IN ('pending', 'approved', 'rejected')
            )
        )
    ''')
    op.execute(
        'CREATE INDEX idx_approvals_status_created ON approval_requests(status, created_at)'
    )
    op.execute('CREATE INDEX idx_approvals_message ON approval_requests(message_id)')

    op.execute('''
        CREATE TABLE send_logs (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            message_id UUID NOT NULL REFERENCES messages(id) ON DELETE CASCADE,
            thread_id UUID NOT NULL REFERENCES threads(id) ON DELETE CASCADE,
            approval_id UUID REFERENCES approval_requests(id) ON DELETE SET NULL,
            final_reply TEXT NOT NULL,
            channel VARCHAR(50) NOT NULL,
            provider_response JSONB NOT NULL DEFAULT '{}'::jsonb,
            sent_by_user_id UUID REFERENCES users(id) ON DELETE SET NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    ''')
    op.execute('CREATE INDEX idx_send_logs_created ON send_logs(created_at)')
    op.execute('CREATE INDEX idx_send_logs_thread ON send_logs(thread_id)')

    op.execute('''
        CREATE TABLE audit_logs (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            actor_user_id UUID REFERENCES users(id) ON DELETE SET NULL,
            action VARCHAR(50) NOT NULL,
            entity_type VARCHAR(50) NOT NULL,
            entity_id VARCHAR(255) NOT NULL,
            meta JSONB NOT NULL DEFAULT '{}'::jsonb,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    ''')
    op.execute('CREATE INDEX idx_audit_created ON audit_logs(created_at)')
    op.execute('CREATE INDEX idx_audit_action_created ON audit_logs(action, created_at)')
    op.execute('CREATE INDEX idx_audit_actor_created ON audit_logs(actor_user_id, created_at)')

    # ==========================================================================
    # Knowledge Base
    # ==========================================================================
    op.execute('''
        CREATE TABLE kb_entries (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            client_id UUID NOT NULL REFERENCES clients(id) ON DELETE CASCADE,
            property_id UUID REFERENCES properties(id) ON DELETE CASCADE,
            title VARCHAR(255) NOT NULL,
            content TEXT NOT NULL,
            tags JSONB NOT NULL DEFAULT '[]'::jsonb,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    ''')
    op.execute(
        'CREATE INDEX idx_kb_entries_client_property ON kb_entries(client_id, property_id)'
    )

    # ==========================================================================
    # Background Jobs
    # ==========================================================================
    op.execute('''
        CREATE TABLE jobs (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            job_type VARCHAR(50) NOT NULL,
            payload JSONB NOT NULL DEFAULT '{}'::jsonb,
            run_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            status VARCHAR(20) NOT NULL DEFAULT 'pending',
            attempts INTEGER NOT NULL DEFAULT 0,
            max_attempts INTEGER NOT NULL DEFAULT 3,
            last_error TEXT,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            started_at TIMESTAMPTZ,
            completed_at TIMESTAMPTZ,
            idempotency_key VARCHAR(255)
        )
    ''')
    op.execute(
        "CREATE INDEX idx_jobs_pending ON jobs(status, run_at) WHERE status = 'pending'"
    )
    op.execute(
        'CREATE UNIQUE INDEX uq_job_idempotency ON jobs(idempotency_key) '
        'WHERE idempotency_key IS NOT NULL'
    )


def downgrade() -> None:
    """Drop all tables."""
    for table in (
        'jobs',
        'kb_entries',
        'audit_logs',
        'send_logs',
        'approval_requests',
        'auto_rules',
        'templates',
        'analyses',
        'messages',
        'threads',
        'users',
        'properties',
        'clients',
    ):
        op.execute(f'DROP TABLE IF EXISTS {table}')
