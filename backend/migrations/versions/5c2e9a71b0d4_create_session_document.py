"""create session_document table

Revision ID: 5c2e9a71b0d4
Revises:
Create Date: 2026-10-17 00:00:00

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5c2e9a71b0d4'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    if 'session_document' in set(insp.get_table_names()):
        return
    op.create_table(
        'session_document',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(length=16), nullable=False),
        sa.Column('document', sa.Text(), nullable=False),
        sa.Column('created_at', sa.Float(), nullable=False),
        sa.Column('updated_at', sa.Float(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('session_document') as batch_op:
        batch_op.create_index(batch_op.f('ix_session_document_code'), ['code'], unique=True)


def downgrade():
    with op.batch_alter_table('session_document') as batch_op:
        batch_op.drop_index(batch_op.f('ix_session_document_code'))
    op.drop_table('session_document')
