"""Create catalog, contract instance and audit tables

Revision ID: create_contract_assembly_schema
Revises: 
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = 'create_contract_assembly_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Logical building blocks; "current published" is a pointer, not a version flag
    op.create_table(
        'clauses',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('tenant_id', sa.Uuid, nullable=False),
        sa.Column('title', sa.Text, nullable=False),
        sa.Column('jurisdiction', sa.String(16), nullable=False),
        sa.Column('current_published_version_id', sa.Uuid, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_clauses_tenant_id', 'clauses', ['tenant_id'])
    op.create_index('ix_clauses_current_published_version_id', 'clauses', ['current_published_version_id'])

    op.create_table(
        'templates',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('tenant_id', sa.Uuid, nullable=False),
        sa.Column('title', sa.Text, nullable=False),
        sa.Column('jurisdiction', sa.String(16), nullable=False),
        sa.Column('current_published_version_id', sa.Uuid, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_templates_tenant_id', 'templates', ['tenant_id'])
    op.create_index('ix_templates_current_published_version_id', 'templates', ['current_published_version_id'])

    # Append-only version rows
    op.create_table(
        'clause_versions',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('clause_id', sa.Uuid, sa.ForeignKey('clauses.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('version_number', sa.Integer, nullable=False),
        sa.Column('status', sa.String(16), nullable=False, server_default='draft'),
        sa.Column('content', sa.Text, nullable=False),
        sa.Column('parameters', sa.JSON, nullable=False),
        sa.Column('rules', sa.JSON, nullable=False),
        sa.Column('published_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('clause_id', 'version_number', name='uq_clause_version_number'),
    )
    op.create_index('ix_clause_versions_clause_id', 'clause_versions', ['clause_id'])

    op.create_table(
        'template_versions',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('template_id', sa.Uuid, sa.ForeignKey('templates.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('version_number', sa.Integer, nullable=False),
        sa.Column('status', sa.String(16), nullable=False, server_default='draft'),
        sa.Column('structure', sa.JSON, nullable=False),
        sa.Column('questions', sa.JSON, nullable=False),
        sa.Column('published_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('template_id', 'version_number', name='uq_template_version_number'),
    )
    op.create_index('ix_template_versions_template_id', 'template_versions', ['template_id'])

    # One row per instance; revision backs optimistic concurrency
    op.create_table(
        'contract_instances',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('tenant_id', sa.Uuid, nullable=False),
        sa.Column('title', sa.Text, nullable=False),
        sa.Column('client_reference', sa.String(255), nullable=True),
        sa.Column('tags', sa.JSON, nullable=False),
        sa.Column('template_version_id', sa.Uuid, sa.ForeignKey('template_versions.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('clause_version_ids', sa.JSON, nullable=False),
        sa.Column('answers', sa.JSON, nullable=False),
        sa.Column('selected_slots', sa.JSON, nullable=False),
        sa.Column('validation_state', sa.String(16), nullable=False, server_default='valid'),
        sa.Column('validation_messages', sa.JSON, nullable=False),
        sa.Column('status', sa.String(16), nullable=False, server_default='draft'),
        sa.Column('revision', sa.Integer, nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('archived_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_contract_instances_tenant_id', 'contract_instances', ['tenant_id'])
    op.create_index('ix_contract_instances_status', 'contract_instances', ['status'])

    op.create_table(
        'audit_events',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('tenant_id', sa.Uuid, nullable=False),
        sa.Column('action', sa.String(64), nullable=False),
        sa.Column('object_type', sa.String(64), nullable=False),
        sa.Column('object_id', sa.Uuid, nullable=False),
        sa.Column('details', sa.JSON, nullable=True),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_audit_events_tenant_id', 'audit_events', ['tenant_id'])
    op.create_index('ix_audit_events_object_id', 'audit_events', ['object_id'])


def downgrade() -> None:
    op.drop_table('audit_events')
    op.drop_table('contract_instances')
    op.drop_table('template_versions')
    op.drop_table('clause_versions')
    op.drop_table('templates')
    op.drop_table('clauses')
