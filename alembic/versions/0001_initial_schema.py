"""initial coupon lot schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ID_TYPE = sa.BigInteger().with_variant(sa.Integer(), "sqlite")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def _user_fk(column: str, table: str) -> sa.ForeignKeyConstraint:
    return sa.ForeignKeyConstraint(
        [column],
        ["users.id"],
        name=op.f(f"fk_{table}_{column}_users"),
        ondelete="SET NULL",
    )


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("username", sa.String(length=50), nullable=False),
        sa.Column("email", sa.String(length=100), nullable=True),
        sa.Column("full_name", sa.String(length=100), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint(
            "role IN ('admin','operator','qc_staff')", name=op.f("ck_users_role_enum")
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_users")),
        sa.UniqueConstraint("email", name=op.f("uq_users_email")),
        sa.UniqueConstraint("username", name=op.f("uq_users_username")),
    )
    op.create_index(op.f("ix_users_id"), "users", ["id"], unique=False)

    op.create_table(
        "prize_configs",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("prize_amount", sa.Integer(), nullable=False),
        sa.Column("total_coupons", sa.Integer(), nullable=False),
        sa.Column("coupons_per_box", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_by", ID_TYPE, nullable=True),
        sa.Column("updated_by", ID_TYPE, nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "prize_amount >= 0", name=op.f("ck_prize_configs_prize_amount_non_negative")
        ),
        sa.CheckConstraint(
            "total_coupons > 0", name=op.f("ck_prize_configs_total_coupons_positive")
        ),
        sa.CheckConstraint(
            "coupons_per_box > 0", name=op.f("ck_prize_configs_coupons_per_box_positive")
        ),
        _user_fk("created_by", "prize_configs"),
        _user_fk("updated_by", "prize_configs"),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_prize_configs")),
    )

    op.create_table(
        "batches",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("batch_number", sa.Integer(), nullable=False),
        sa.Column("operator_name", sa.String(length=100), nullable=False),
        sa.Column("location", sa.String(length=100), nullable=False),
        sa.Column("production_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("total_boxes", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("created_by", ID_TYPE, nullable=True),
        sa.Column("operator_id", ID_TYPE, nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "batch_number > 0", name=op.f("ck_batches_batch_number_positive")
        ),
        sa.CheckConstraint("total_boxes > 0", name=op.f("ck_batches_total_boxes_positive")),
        sa.CheckConstraint(
            "status IN ('pending','in_progress','completed','qc_passed','qc_failed')",
            name=op.f("ck_batches_status_enum"),
        ),
        _user_fk("created_by", "batches"),
        _user_fk("operator_id", "batches"),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_batches")),
        sa.UniqueConstraint("batch_number", name=op.f("uq_batches_batch_number")),
    )
    op.create_index(op.f("ix_batches_id"), "batches", ["id"], unique=False)

    op.create_table(
        "coupons",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("batch_id", ID_TYPE, nullable=False),
        sa.Column("coupon_number", sa.String(length=20), nullable=False),
        sa.Column("box_number", sa.Integer(), nullable=False),
        sa.Column("prize_amount", sa.Integer(), nullable=False),
        sa.Column("prize_description", sa.String(length=255), nullable=False),
        sa.Column("is_winner", sa.Boolean(), nullable=False),
        sa.Column("generated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("generated_by", ID_TYPE, nullable=True),
        sa.ForeignKeyConstraint(
            ["batch_id"],
            ["batches.id"],
            name=op.f("fk_coupons_batch_id_batches"),
            ondelete="CASCADE",
        ),
        _user_fk("generated_by", "coupons"),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_coupons")),
        sa.UniqueConstraint("batch_id", "coupon_number", name="uq_coupon_batch_number"),
    )
    op.create_index("ix_coupons_batch_box", "coupons", ["batch_id", "box_number"], unique=False)

    op.create_table(
        "qc_validations",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("batch_id", ID_TYPE, nullable=False),
        sa.Column("validation_type", sa.String(length=50), nullable=False),
        sa.Column("validation_status", sa.String(length=20), nullable=False),
        sa.Column("validation_details", sa.Text(), nullable=True),
        sa.Column("validated_by", sa.String(length=100), nullable=False),
        sa.Column("validated_by_user_id", ID_TYPE, nullable=True),
        sa.Column("validated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "validation_type IN ('distribution_check','box_composition','consecutive_check')",
            name=op.f("ck_qc_validations_validation_type_enum"),
        ),
        sa.CheckConstraint(
            "validation_status IN ('pass','fail','pending')",
            name=op.f("ck_qc_validations_validation_status_enum"),
        ),
        sa.ForeignKeyConstraint(
            ["batch_id"],
            ["batches.id"],
            name=op.f("fk_qc_validations_batch_id_batches"),
            ondelete="CASCADE",
        ),
        _user_fk("validated_by_user_id", "qc_validations"),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_qc_validations")),
    )
    op.create_index(
        op.f("ix_qc_validations_batch_id"), "qc_validations", ["batch_id"], unique=False
    )
    op.create_index(
        "ix_qc_validations_batch_type",
        "qc_validations",
        ["batch_id", "validation_type"],
        unique=False,
    )

    op.create_table(
        "production_logs",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("batch_id", ID_TYPE, nullable=False),
        sa.Column("action_type", sa.String(length=50), nullable=False),
        sa.Column("action_description", sa.Text(), nullable=True),
        sa.Column("operator_name", sa.String(length=100), nullable=False),
        sa.Column("operator_user_id", ID_TYPE, nullable=True),
        sa.Column("location", sa.String(length=100), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.ForeignKeyConstraint(
            ["batch_id"],
            ["batches.id"],
            name=op.f("fk_production_logs_batch_id_batches"),
            ondelete="CASCADE",
        ),
        _user_fk("operator_user_id", "production_logs"),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_production_logs")),
    )
    op.create_index(
        "ix_production_logs_batch_action",
        "production_logs",
        ["batch_id", "action_type"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_production_logs_batch_action", table_name="production_logs")
    op.drop_table("production_logs")
    op.drop_index("ix_qc_validations_batch_type", table_name="qc_validations")
    op.drop_index(op.f("ix_qc_validations_batch_id"), table_name="qc_validations")
    op.drop_table("qc_validations")
    op.drop_index("ix_coupons_batch_box", table_name="coupons")
    op.drop_table("coupons")
    op.drop_index(op.f("ix_batches_id"), table_name="batches")
    op.drop_table("batches")
    op.drop_table("prize_configs")
    op.drop_index(op.f("ix_users_id"), table_name="users")
    op.drop_table("users")
