"""create slot assignment schema

Revision ID: 20261019_0001
Revises: None
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


day_of_week_enum = sa.Enum(
    "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", name="day_of_week"
)
slot_assignment_status_enum = sa.Enum("pending_approval", "active", "inactive", name="slot_assignment_status")
notification_status_enum = sa.Enum("pending", "accepted", "rejected", "superseded", name="notification_status")
alteration_status_enum = sa.Enum("pending", "approved", "rejected", name="alteration_status")

BOOKED_WHERE = sa.text("status IN ('pending_approval', 'active')")


def _booked_unique_index(name: str, columns: list[str]) -> None:
    op.create_index(
        name,
        "timetable_slot_assignments",
        columns,
        unique=True,
        sqlite_where=BOOKED_WHERE,
        postgresql_where=BOOKED_WHERE,
    )


def upgrade() -> None:
    op.create_table(
        "faculty",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("designation", sa.String(length=200), nullable=False, server_default="Faculty"),
        sa.Column("department_id", sa.String(length=36), nullable=False),
        sa.Column("is_timetable_incharge", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_coordinator", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_faculty_email", "faculty", ["email"], unique=True)
    op.create_index("ix_faculty_department_id", "faculty", ["department_id"])

    op.create_table(
        "classes",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("department_id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("year", sa.String(length=20), nullable=False),
        sa.Column("section", sa.String(length=20), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_classes_department_id", "classes", ["department_id"])

    op.create_table(
        "timetables",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("department_id", sa.String(length=36), nullable=False),
        sa.Column("year", sa.String(length=20), nullable=False),
        sa.Column("session_start", sa.Date(), nullable=False),
        sa.Column("session_end", sa.Date(), nullable=False),
        sa.Column("is_published", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_by", sa.String(length=36), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("department_id", "year", name="uq_timetable_department_year"),
    )
    op.create_index("ix_timetables_department_id", "timetables", ["department_id"])

    op.create_table(
        "timetable_slot_assignments",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column(
            "timetable_id",
            sa.String(length=36),
            sa.ForeignKey("timetables.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("class_id", sa.String(length=36), nullable=False),
        sa.Column("subject_code", sa.String(length=20), nullable=False),
        sa.Column("subject_name", sa.String(length=255), nullable=False),
        sa.Column("faculty_id", sa.String(length=36), nullable=False),
        sa.Column("assigned_by", sa.String(length=36), nullable=False),
        sa.Column("day_of_week", day_of_week_enum, nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("room_number", sa.String(length=50), nullable=False),
        sa.Column("year", sa.String(length=20), nullable=False),
        sa.Column("status", slot_assignment_status_enum, nullable=False, server_default="pending_approval"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        "ix_timetable_slot_assignments_timetable_id", "timetable_slot_assignments", ["timetable_id"]
    )
    op.create_index("ix_timetable_slot_assignments_class_id", "timetable_slot_assignments", ["class_id"])
    op.create_index("ix_timetable_slot_assignments_faculty_id", "timetable_slot_assignments", ["faculty_id"])
    op.create_index(
        "ix_slot_assignment_timetable_status", "timetable_slot_assignments", ["timetable_id", "status"]
    )
    _booked_unique_index(
        "uq_slot_assignment_duplicate", ["timetable_id", "class_id", "subject_code", "faculty_id"]
    )
    _booked_unique_index(
        "uq_slot_assignment_faculty_time", ["faculty_id", "day_of_week", "start_time", "end_time", "year"]
    )
    _booked_unique_index(
        "uq_slot_assignment_room_time", ["class_id", "day_of_week", "start_time", "end_time", "room_number"]
    )

    op.create_table(
        "timetable_notifications",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("slot_assignment_id", sa.String(length=36), nullable=False),
        sa.Column("faculty_id", sa.String(length=36), nullable=False),
        sa.Column("requested_by", sa.String(length=36), nullable=False),
        sa.Column("subject_code", sa.String(length=20), nullable=False),
        sa.Column("subject_name", sa.String(length=255), nullable=False),
        sa.Column("class_id", sa.String(length=36), nullable=False),
        sa.Column("status", notification_status_enum, nullable=False, server_default="pending"),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("response_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        "ix_timetable_notifications_slot_assignment_id", "timetable_notifications", ["slot_assignment_id"]
    )
    op.create_index("ix_timetable_notifications_faculty_id", "timetable_notifications", ["faculty_id"])
    op.create_index("ix_timetable_notifications_status", "timetable_notifications", ["status"])

    op.create_table(
        "timetable_alterations",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("department_id", sa.String(length=36), nullable=False),
        sa.Column("timetable_id", sa.String(length=36), nullable=False),
        sa.Column("slot_assignment_id", sa.String(length=36), nullable=True),
        sa.Column("old_faculty_id", sa.String(length=36), nullable=False),
        sa.Column("new_faculty_id", sa.String(length=36), nullable=True),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("status", alteration_status_enum, nullable=False, server_default="pending"),
        sa.Column("requested_by", sa.String(length=36), nullable=False),
        sa.Column("approved_by", sa.String(length=36), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_timetable_alterations_department_id", "timetable_alterations", ["department_id"])
    op.create_index("ix_timetable_alterations_timetable_id", "timetable_alterations", ["timetable_id"])
    op.create_index(
        "ix_timetable_alterations_slot_assignment_id", "timetable_alterations", ["slot_assignment_id"]
    )

    op.create_table(
        "activity_logs",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("actor_faculty_id", sa.String(length=36), nullable=True),
        sa.Column("department_id", sa.String(length=36), nullable=True),
        sa.Column("action", sa.String(length=100), nullable=False),
        sa.Column("entity_type", sa.String(length=100), nullable=True),
        sa.Column("entity_id", sa.String(length=100), nullable=True),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_activity_logs_actor_faculty_id", "activity_logs", ["actor_faculty_id"])


def downgrade() -> None:
    op.drop_index("ix_activity_logs_actor_faculty_id", table_name="activity_logs")
    op.drop_table("activity_logs")
    op.drop_table("timetable_alterations")
    op.drop_table("timetable_notifications")
    op.drop_table("timetable_slot_assignments")
    op.drop_table("timetables")
    op.drop_table("classes")
    op.drop_index("ix_faculty_email", table_name="faculty")
    op.drop_table("faculty")
    bind = op.get_bind()
    alteration_status_enum.drop(bind, checkfirst=True)
    notification_status_enum.drop(bind, checkfirst=True)
    slot_assignment_status_enum.drop(bind, checkfirst=True)
    day_of_week_enum.drop(bind, checkfirst=True)
