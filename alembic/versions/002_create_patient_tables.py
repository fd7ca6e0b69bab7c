"""Create patients and examinations tables

Revision ID: 002
Revises: 001
Create Date: 2026-03-02 09:10:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create patients and examinations tables."""
    op.create_table(
        "patients",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("serial_number", sa.String(40), nullable=False),
        sa.Column("mri_code", sa.String(20), nullable=False),
        sa.Column("receipt_number", sa.String(40), nullable=False),
        sa.Column("patient_name", sa.String(200), nullable=False),
        sa.Column("gender", sa.String(30), nullable=True),
        sa.Column("contact_email", sa.String(255), nullable=True),
        sa.Column("contact_phone_number", sa.String(30), nullable=True),
        sa.Column("age", sa.Integer(), nullable=True),
        sa.Column("weight_kg", sa.Numeric(6, 2), nullable=True),
        sa.Column("referral_hospital", sa.String(200), nullable=True),
        sa.Column("referring_doctor", sa.String(200), nullable=True),
        sa.Column("radiographer_name", sa.String(200), nullable=True),
        sa.Column("radiologist_name", sa.String(200), nullable=True),
        sa.Column("remarks", sa.Text(), nullable=True),
        sa.Column("mri_date_time", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("total_amount", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("payment_type", sa.String(20), nullable=True),
        sa.Column("payment_status", sa.String(20), nullable=False, server_default="Not Paid"),
        sa.Column("approved_by_user_id", sa.Integer(), nullable=True),
        sa.Column("approved_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("recorded_by_staff_id", sa.Integer(), nullable=False),
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
        sa.PrimaryKeyConstraint("id", name="pk_patients"),
        sa.UniqueConstraint("serial_number", name="uq_patients_serial_number"),
        sa.UniqueConstraint("mri_code", name="uq_patients_mri_code"),
        sa.UniqueConstraint("receipt_number", name="uq_patients_receipt_number"),
        sa.ForeignKeyConstraint(
            ["approved_by_user_id"],
            ["users.id"],
            name="fk_patients_approved_by_user_id_users",
            ondelete="RESTRICT",
        ),
        sa.ForeignKeyConstraint(
            ["recorded_by_staff_id"],
            ["users.id"],
            name="fk_patients_recorded_by_staff_id_users",
            ondelete="RESTRICT",
        ),
        sa.CheckConstraint(
            "gender IS NULL OR gender IN ('Male', 'Female', 'Other', 'Prefer not to say')",
            name="ck_patients_gender",
        ),
        sa.CheckConstraint(
            "payment_type IS NULL OR payment_type IN ('Cash', 'Transfer', 'Card')",
            name="ck_patients_payment_type",
        ),
        sa.CheckConstraint(
            "payment_status IN ('Not Paid', 'Pending', 'Approved')",
            name="ck_patients_payment_status",
        ),
        sa.CheckConstraint("age IS NULL OR age > 0", name="ck_patients_age_positive"),
        sa.CheckConstraint(
            "weight_kg IS NULL OR weight_kg > 0", name="ck_patients_weight_positive"
        ),
    )
    op.create_index("ix_patients_mri_date_time", "patients", ["mri_date_time"])
    op.create_index("ix_patients_recorded_by_staff_id", "patients", ["recorded_by_staff_id"])

    op.create_table(
        "examinations",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("patient_id", sa.Integer(), nullable=False),
        sa.Column("exam_name", sa.String(200), nullable=False),
        sa.Column("exam_amount", sa.Numeric(14, 2), nullable=False),
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
        sa.PrimaryKeyConstraint("id", name="pk_examinations"),
        sa.ForeignKeyConstraint(
            ["patient_id"],
            ["patients.id"],
            name="fk_examinations_patient_id_patients",
            ondelete="RESTRICT",
        ),
        sa.CheckConstraint("exam_amount > 0", name="ck_examinations_exam_amount_positive"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_examinations_patient_id", "examinations", ["patient_id"])


def downgrade() -> None:
    """Drop patients and examinations tables."""
    op.drop_index("ix_examinations_patient_id", table_name="examinations")
    op.drop_table("examinations")
    op.drop_index("ix_patients_recorded_by_staff_id", table_name="patients")
    op.drop_index("ix_patients_mri_date_time", table_name="patients")
    op.drop_table("patients")
