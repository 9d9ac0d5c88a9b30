"""create contact lifecycle tables

Revision ID: 202610190001
Revises:
Create Date: 2026-10-19 00:01:00
"""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa


revision: str = "202610190001"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "agency_contacts",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("agency_id", sa.Uuid(), nullable=False),
        sa.Column("household_key", sa.Text(), nullable=True),
        sa.Column("first_name", sa.Text(), nullable=False),
        sa.Column("last_name", sa.Text(), nullable=False),
        sa.Column("phones", sa.JSON(), nullable=False),
        sa.Column("emails", sa.JSON(), nullable=False),
        sa.Column("zip_code", sa.String(length=16), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_agency_contacts_agency_id", "agency_contacts", ["agency_id"], unique=False)
    op.create_index(
        "ix_agency_contacts_agency_household_key",
        "agency_contacts",
        ["agency_id", "household_key"],
        unique=False,
    )
    op.create_index(
        "ix_agency_contacts_agency_name",
        "agency_contacts",
        ["agency_id", "last_name", "first_name"],
        unique=False,
    )

    op.create_table(
        "team_members",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("agency_id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_team_members_agency_id", "team_members", ["agency_id"], unique=False)

    op.create_table(
        "lqs_households",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("agency_id", sa.Uuid(), nullable=False),
        sa.Column("contact_id", sa.Uuid(), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=True),
        sa.Column("team_member_id", sa.Uuid(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["contact_id"], ["agency_contacts.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["team_member_id"], ["team_members.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_lqs_households_agency_contact", "lqs_households", ["agency_id", "contact_id"], unique=False)

    op.create_table(
        "renewal_records",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("agency_id", sa.Uuid(), nullable=False),
        sa.Column("contact_id", sa.Uuid(), nullable=True),
        sa.Column("policy_number", sa.Text(), nullable=True),
        sa.Column("product_name", sa.Text(), nullable=True),
        sa.Column("renewal_effective_date", sa.Date(), nullable=True),
        sa.Column("renewal_status", sa.String(length=32), nullable=True),
        sa.Column("current_status", sa.String(length=32), nullable=True),
        sa.Column("premium_old", sa.Numeric(12, 2), nullable=True),
        sa.Column("premium_new", sa.Numeric(12, 2), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("assigned_team_member_id", sa.Uuid(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["contact_id"], ["agency_contacts.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["assigned_team_member_id"], ["team_members.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_renewal_records_agency_contact", "renewal_records", ["agency_id", "contact_id"], unique=False)

    op.create_table(
        "cancel_audit_records",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("agency_id", sa.Uuid(), nullable=False),
        sa.Column("contact_id", sa.Uuid(), nullable=True),
        sa.Column("household_key", sa.Text(), nullable=True),
        sa.Column("cancel_status", sa.String(length=32), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="uncontacted"),
        sa.Column("cancel_reason", sa.Text(), nullable=True),
        sa.Column("policy_number", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("assigned_team_member_id", sa.Uuid(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["contact_id"], ["agency_contacts.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["assigned_team_member_id"], ["team_members.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_cancel_audit_records_agency_contact",
        "cancel_audit_records",
        ["agency_id", "contact_id"],
        unique=False,
    )

    op.create_table(
        "winback_households",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("agency_id", sa.Uuid(), nullable=False),
        sa.Column("contact_id", sa.Uuid(), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="untouched"),
        sa.Column("termination_date", sa.Date(), nullable=True),
        sa.Column("earliest_winback_date", sa.Date(), nullable=True),
        sa.Column("assigned_team_member_id", sa.Uuid(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["contact_id"], ["agency_contacts.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["assigned_team_member_id"], ["team_members.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_winback_households_agency_contact",
        "winback_households",
        ["agency_id", "contact_id"],
        unique=False,
    )

    op.create_table(
        "contact_activities",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("agency_id", sa.Uuid(), nullable=False),
        sa.Column("contact_id", sa.Uuid(), nullable=False),
        sa.Column("source_module", sa.String(length=32), nullable=False, server_default="direct"),
        sa.Column("activity_type", sa.String(length=64), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by_display_name", sa.Text(), nullable=True),
        sa.Column("activity_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["contact_id"], ["agency_contacts.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_contact_activities_agency_contact",
        "contact_activities",
        ["agency_id", "contact_id"],
        unique=False,
    )

    op.create_table(
        "winback_activities",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("agency_id", sa.Uuid(), nullable=False),
        sa.Column("household_id", sa.Uuid(), nullable=False),
        sa.Column("activity_type", sa.String(length=64), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by_name", sa.Text(), nullable=True),
        sa.Column("old_status", sa.String(length=32), nullable=True),
        sa.Column("new_status", sa.String(length=32), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["household_id"], ["winback_households.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_winback_activities_agency_household",
        "winback_activities",
        ["agency_id", "household_id"],
        unique=False,
    )

    op.create_table(
        "cancel_audit_activities",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("agency_id", sa.Uuid(), nullable=False),
        sa.Column("record_id", sa.Uuid(), nullable=True),
        sa.Column("household_key", sa.Text(), nullable=False),
        sa.Column("activity_type", sa.String(length=64), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("user_display_name", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["record_id"], ["cancel_audit_records.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_cancel_audit_activities_agency_household_key",
        "cancel_audit_activities",
        ["agency_id", "household_key"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_cancel_audit_activities_agency_household_key", table_name="cancel_audit_activities")
    op.drop_table("cancel_audit_activities")
    op.drop_index("ix_winback_activities_agency_household", table_name="winback_activities")
    op.drop_table("winback_activities")
    op.drop_index("ix_contact_activities_agency_contact", table_name="contact_activities")
    op.drop_table("contact_activities")
    op.drop_index("ix_winback_households_agency_contact", table_name="winback_households")
    op.drop_table("winback_households")
    op.drop_index("ix_cancel_audit_records_agency_contact", table_name="cancel_audit_records")
    op.drop_table("cancel_audit_records")
    op.drop_index("ix_renewal_records_agency_contact", table_name="renewal_records")
    op.drop_table("renewal_records")
    op.drop_index("ix_lqs_households_agency_contact", table_name="lqs_households")
    op.drop_table("lqs_households")
    op.drop_index("ix_team_members_agency_id", table_name="team_members")
    op.drop_table("team_members")
    op.drop_index("ix_agency_contacts_agency_name", table_name="agency_contacts")
    op.drop_index("ix_agency_contacts_agency_household_key", table_name="agency_contacts")
    op.drop_index("ix_agency_contacts_agency_id", table_name="agency_contacts")
    op.drop_table("agency_contacts")
