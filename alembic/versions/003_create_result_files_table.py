"""Create result_files table

Revision ID: 003
Revises: 002
Create Date: 2026-03-02 09:20:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create result_files table."""
    op.create_table(
        "result_files",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("patient_id", sa.Integer(), nullable=False),
        sa.Column("uploaded_by_user_id", sa.Integer(), nullable=False),
        sa.Column("file_name", sa.String(255), nullable=False),
        sa.Column("storage_key", sa.String(512), nullable=False),
        sa.Column("file_type", sa.String(120), nullable=False),
        sa.Column("file_size_kb", sa.Integer(), nullable=False),
        sa.Column(
            "result_status", sa.String(20), nullable=False, server_default="pending_review"
        ),
        sa.Column("remarks", sa.Text(), nullable=True),
        sa.Column("issued_to_recipient_name", sa.String(200), nullable=True),
        sa.Column("issued_to_recipient_phone", sa.String(30), nullable=True),
        sa.Column("issued_to_recipient_relationship", sa.String(100), nullable=True),
        sa.Column("issued_to_recipient_email", sa.String(255), nullable=True),
        sa.Column("issued_by_user_id", sa.Integer(), nullable=True),
        sa.Column("issued_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_result_files"),
        sa.UniqueConstraint("storage_key", name="uq_result_files_storage_key"),
        sa.ForeignKeyConstraint(
            ["patient_id"],
            ["patients.id"],
            name="fk_result_files_patient_id_patients",
            ondelete="RESTRICT",
        ),
        sa.ForeignKeyConstraint(
            ["uploaded_by_user_id"],
            ["users.id"],
            name="fk_result_files_uploaded_by_user_id_users",
            ondelete="RESTRICT",
        ),
        sa.ForeignKeyConstraint(
            ["issued_by_user_id"],
            ["users.id"],
            name="fk_result_files_issued_by_user_id_users",
            ondelete="RESTRICT",
        ),
        sa.CheckConstraint(
            "result_status IN ('pending_review', 'final', 'issued')",
            name="ck_result_files_result_status",
        ),
    )
    op.create_index("ix_result_files_patient_id", "result_files", ["patient_id"])


def downgrade() -> None:
    """Drop result_files table."""
    op.drop_index("ix_result_files_patient_id", table_name="result_files")
    op.drop_table("result_files")
