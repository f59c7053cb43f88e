"""Initial schema for villa planning.

Revision ID: 20260105_0001
Revises:
Create Date: 2026-01-05 09:00:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20260105_0001"
down_revision = None
branch_labels = None
depends_on = None

ENUM_NAMES = (
    "counterkind",
    "participantpresence",
    "appointmentstatus",
    "appointmenttype",
    "absencestatus",
    "shiftstatus",
    "shifttype",
    "monthstatus",
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    ]


def upgrade() -> None:
    month_status_enum = sa.Enum("draft", "validated", "published", name="monthstatus")
    shift_type_enum = sa.Enum(
        "garde_24h", "garde_48h", "garde_weekend", "renfort", "autre", name="shifttype"
    )
    shift_status_enum = sa.Enum(
        "draft",
        "validated",
        "to_replace_absence",
        "to_replace_rdv",
        "to_replace_schedule_conflict",
        "cancelled",
        name="shiftstatus",
    )
    absence_status_enum = sa.Enum("pending", "approved", "refused", "cancelled", name="absencestatus")
    appointment_type_enum = sa.Enum("request", "summons", name="appointmenttype")
    appointment_status_enum = sa.Enum(
        "pending", "confirmed", "refused", "completed", "cancelled", name="appointmentstatus"
    )
    presence_enum = sa.Enum("pending", "confirmed", "absent", name="participantpresence")
    counter_kind_enum = sa.Enum("annual_days", "leave", name="counterkind")

    op.create_table(
        "villa",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False, unique=True),
        sa.Column("color", sa.String(length=7), nullable=False, server_default=sa.text("'#93C5FD'")),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )

    op.create_table(
        "user",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("first_name", sa.String(length=80), nullable=False),
        sa.Column("last_name", sa.String(length=80), nullable=False),
        sa.Column("email", sa.String(length=180), nullable=False, unique=True),
        sa.Column("roles", sa.JSON(), nullable=True),
        sa.Column("villa_id", sa.Integer(), sa.ForeignKey("villa.id", ondelete="RESTRICT"), nullable=True),
        sa.Column("color", sa.String(length=7), nullable=True),
        sa.Column("hired_on", sa.Date(), nullable=True),
    )
    op.create_index("ix_user_villa_id", "user", ["villa_id"])

    op.create_table(
        "shifttemplate",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("configuration", sa.JSON(), nullable=False),
        sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("usage_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("last_used_at", sa.DateTime(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "planningmonth",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("villa_id", sa.Integer(), sa.ForeignKey("villa.id", ondelete="CASCADE"), nullable=True),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column("status", month_status_enum, nullable=False, server_default="draft"),
        sa.Column("validated_at", sa.DateTime(), nullable=True),
        sa.Column("validated_by", sa.String(length=120), nullable=True),
        sa.Column("published_at", sa.DateTime(), nullable=True),
        sa.Column("published_by", sa.String(length=120), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.UniqueConstraint("villa_id", "year", "month", name="uq_planningmonth_villa_period"),
    )
    op.create_index("ix_planningmonth_villa_id", "planningmonth", ["villa_id"])
    op.create_index("ix_planningmonth_year", "planningmonth", ["year"])
    op.create_index("ix_planningmonth_month", "planningmonth", ["month"])
    # Only one reinforcement month schedule per period; NULL villas escape the unique constraint.
    op.create_index(
        "ux_planningmonth_pool_period",
        "planningmonth",
        ["year", "month"],
        unique=True,
        postgresql_where=sa.text("villa_id IS NULL"),
        sqlite_where=sa.text("villa_id IS NULL"),
    )

    op.create_table(
        "shift",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "planning_month_id",
            sa.Integer(),
            sa.ForeignKey("planningmonth.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("villa_id", sa.Integer(), sa.ForeignKey("villa.id", ondelete="RESTRICT"), nullable=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("user.id", ondelete="SET NULL"), nullable=True),
        sa.Column(
            "template_id", sa.Integer(), sa.ForeignKey("shifttemplate.id", ondelete="SET NULL"), nullable=True
        ),
        sa.Column("start_at", sa.DateTime(), nullable=False),
        sa.Column("end_at", sa.DateTime(), nullable=False),
        sa.Column("type", shift_type_enum, nullable=False),
        sa.Column("status", shift_status_enum, nullable=False, server_default="draft"),
        sa.Column("working_days", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("is_from_template", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("deducted_days", sa.Integer(), nullable=True),
        sa.Column("deducted_user_id", sa.Integer(), nullable=True),
        sa.Column("deducted_year", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
    )
    op.create_index("ix_shift_planning_month_id", "shift", ["planning_month_id"])
    op.create_index("ix_shift_villa_id", "shift", ["villa_id"])
    op.create_index("ix_shift_user_id", "shift", ["user_id"])
    op.create_index("ix_shift_start_at", "shift", ["start_at"])
    op.create_index("ix_shift_end_at", "shift", ["end_at"])

    op.create_table(
        "planningpublication",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "planning_month_id",
            sa.Integer(),
            sa.ForeignKey("planningmonth.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("published_at", sa.DateTime(), nullable=False),
        sa.Column("published_by", sa.String(length=120), nullable=True),
        sa.Column("deducted_shifts", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("deducted_days", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("warnings", sa.JSON(), nullable=True),
        sa.Column("failures", sa.JSON(), nullable=True),
    )
    op.create_index("ix_planningpublication_planning_month_id", "planningpublication", ["planning_month_id"])

    op.create_table(
        "absencetype",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("code", sa.String(length=16), nullable=False, unique=True),
        sa.Column("label", sa.String(length=120), nullable=False),
        sa.Column("color", sa.String(length=7), nullable=True),
        sa.Column("deducts_from_counter", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("seasonal", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("default_allocation", sa.Float(), nullable=False, server_default=sa.text("0")),
    )

    op.create_table(
        "absence",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("user.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "absence_type_id", sa.Integer(), sa.ForeignKey("absencetype.id", ondelete="RESTRICT"), nullable=False
        ),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("status", absence_status_enum, nullable=False, server_default="pending"),
        sa.Column("deducts_from_counter", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("working_days", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("deducted", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_absence_user_id", "absence", ["user_id"])
    op.create_index("ix_absence_start_date", "absence", ["start_date"])
    op.create_index("ix_absence_end_date", "absence", ["end_date"])

    op.create_table(
        "appointment",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("organizer_id", sa.Integer(), sa.ForeignKey("user.id", ondelete="CASCADE"), nullable=False),
        sa.Column("type", appointment_type_enum, nullable=False),
        sa.Column("status", appointment_status_enum, nullable=False, server_default="pending"),
        sa.Column("subject", sa.String(length=200), nullable=False),
        sa.Column("location", sa.String(length=200), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("start_at", sa.DateTime(), nullable=False),
        sa.Column("end_at", sa.DateTime(), nullable=False),
        sa.Column("impacts_duty", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_appointment_organizer_id", "appointment", ["organizer_id"])
    op.create_index("ix_appointment_start_at", "appointment", ["start_at"])
    op.create_index("ix_appointment_end_at", "appointment", ["end_at"])

    op.create_table(
        "appointmentparticipant",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "appointment_id", sa.Integer(), sa.ForeignKey("appointment.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("user.id", ondelete="CASCADE"), nullable=False),
        sa.Column("presence", presence_enum, nullable=False, server_default="pending"),
        sa.UniqueConstraint("appointment_id", "user_id", name="uq_participant_user"),
    )
    op.create_index("ix_appointmentparticipant_appointment_id", "appointmentparticipant", ["appointment_id"])
    op.create_index("ix_appointmentparticipant_user_id", "appointmentparticipant", ["user_id"])

    op.create_table(
        "oncallduty",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("start_at", sa.DateTime(), nullable=False),
        sa.Column("end_at", sa.DateTime(), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("user.id", ondelete="SET NULL"), nullable=True),
        sa.Column("period_label", sa.String(length=16), nullable=True),
        sa.Column("replacement_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_oncallduty_start_at", "oncallduty", ["start_at"])
    op.create_index("ix_oncallduty_end_at", "oncallduty", ["end_at"])
    op.create_index("ix_oncallduty_user_id", "oncallduty", ["user_id"])

    op.create_table(
        "daycounter",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("user.id", ondelete="CASCADE"), nullable=False),
        sa.Column("kind", counter_kind_enum, nullable=False),
        sa.Column("category", sa.String(length=16), nullable=False, server_default=sa.text("''")),
        sa.Column("period", sa.String(length=9), nullable=False),
        sa.Column("opening_balance", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("allocated", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("consumed", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("adjustment", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("adjustment_comment", sa.Text(), nullable=True),
        *_timestamps(),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.UniqueConstraint("user_id", "kind", "category", "period", name="uq_daycounter_key"),
    )
    op.create_index("ix_daycounter_user_id", "daycounter", ["user_id"])
    op.create_index("ix_daycounter_period", "daycounter", ["period"])

    op.create_table(
        "countermovement",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("counter_id", sa.Integer(), sa.ForeignKey("daycounter.id", ondelete="CASCADE"), nullable=False),
        sa.Column("operation", sa.String(length=16), nullable=False),
        sa.Column("days", sa.Float(), nullable=False),
        sa.Column("consumed_before", sa.Float(), nullable=False),
        sa.Column("consumed_after", sa.Float(), nullable=False),
        sa.Column("reference", sa.String(length=120), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_countermovement_counter_id", "countermovement", ["counter_id"])


def downgrade() -> None:
    op.drop_table("countermovement")
    op.drop_table("daycounter")
    op.drop_table("oncallduty")
    op.drop_table("appointmentparticipant")
    op.drop_table("appointment")
    op.drop_table("absence")
    op.drop_table("absencetype")
    op.drop_table("planningpublication")
    op.drop_table("shift")
    op.drop_index("ux_planningmonth_pool_period", table_name="planningmonth")
    op.drop_table("planningmonth")
    op.drop_table("shifttemplate")
    op.drop_table("user")
    op.drop_table("villa")

    bind = op.get_bind()
    for name in ENUM_NAMES:
        sa.Enum(name=name).drop(bind, checkfirst=True)
