"""Initial schema: identity, budget configuration, movements, notifications, logs.

- users, roles, permissions, user_roles, role_permissions
- HRB_CONF_BU_SUP, HRB_CONF_PE_ALLOCATION
- HRB_PE_MOVEMENT, HRB_PE_NOTIFICATION
- HRB_ACTIVITY_LOG, HRB_UPLOAD_LOG
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "3c1d9e27a4b0"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

BIG_IDENTITY = sa.BigInteger().with_variant(sa.Integer(), "sqlite")


def _identity_columns():
    return [
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    # Identity
    op.create_table(
        "users",
        *_identity_columns(),
        sa.Column("user_name", sa.String(256), nullable=False),
        sa.Column("email", sa.String(256), nullable=False),
        sa.Column("name", sa.String(64), nullable=True),
        sa.Column("emp_code", sa.String(100), nullable=True),
        sa.Column("company", sa.String(20), nullable=True),
        sa.Column("auth_type", sa.String(20), nullable=False),
        sa.Column("hashed_password", sa.Text(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("is_superadmin", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("tenant_id", "user_name", name="uq_users_tenant_user_name"),
    )
    op.create_index("ix_users_tenant_id", "users", ["tenant_id"])
    op.create_index("ix_users_emp_code", "users", ["emp_code"])

    op.create_table(
        "roles",
        *_identity_columns(),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_roles"),
        sa.UniqueConstraint("tenant_id", "name", name="uq_roles_tenant_name"),
    )
    op.create_index("ix_roles_tenant_id", "roles", ["tenant_id"])

    op.create_table(
        "permissions",
        *_identity_columns(),
        sa.Column("code", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_permissions"),
        sa.UniqueConstraint("tenant_id", "code", name="uq_permissions_tenant_code"),
    )
    op.create_index("ix_permissions_tenant_id", "permissions", ["tenant_id"])

    op.create_table(
        "user_roles",
        *_identity_columns(),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("role_id", sa.Uuid(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_user_roles"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], name="fk_user_roles_user_id_users", ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["role_id"], ["roles.id"], name="fk_user_roles_role_id_roles", ondelete="CASCADE"),
        sa.UniqueConstraint("user_id", "role_id", name="uq_user_roles_user_role"),
    )
    op.create_index("ix_user_roles_tenant_id", "user_roles", ["tenant_id"])

    op.create_table(
        "role_permissions",
        *_identity_columns(),
        sa.Column("role_id", sa.Uuid(), nullable=False),
        sa.Column("permission_id", sa.Uuid(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_role_permissions"),
        sa.ForeignKeyConstraint(["role_id"], ["roles.id"], name="fk_role_permissions_role_id_roles", ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["permission_id"], ["permissions.id"],
            name="fk_role_permissions_permission_id_permissions", ondelete="CASCADE",
        ),
        sa.UniqueConstraint("role_id", "permission_id", name="uq_role_permissions_role_permission"),
    )
    op.create_index("ix_role_permissions_tenant_id", "role_permissions", ["tenant_id"])

    # Budget configuration
    op.create_table(
        "HRB_CONF_BU_SUP",
        sa.Column("BU_ID", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("COMPANY_ID", sa.Integer(), nullable=True),
        sa.Column("BU_CODE", sa.String(20), nullable=True),
        sa.Column("BU_NAME", sa.String(100), nullable=True),
        sa.Column("COBU_CODE", sa.String(50), nullable=True),
        sa.Column("IS_ACTIVE", sa.Boolean(), nullable=True),
        sa.Column("UPDATED_BY", sa.String(50), nullable=True),
        sa.Column("UPDATED_DATE", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("BU_ID", name="pk_HRB_CONF_BU_SUP"),
    )

    op.create_table(
        "HRB_CONF_PE_ALLOCATION",
        sa.Column("ALLOCATE_ID", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("COMPANY_ID", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("COST_CENTER_CODE", sa.String(20), nullable=False),
        sa.Column("EMP_CODE", sa.String(100), nullable=True),
        sa.Column("ALLOCATE_VALUE", sa.Numeric(5, 2), nullable=True),
        sa.Column("IS_ACTIVE", sa.Boolean(), nullable=False),
        sa.Column("UPDATED_BY", sa.String(50), nullable=True),
        sa.Column("UPDATED_DATE", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("ALLOCATE_ID", "COMPANY_ID", "COST_CENTER_CODE", name="pk_HRB_CONF_PE_ALLOCATION"),
    )

    # Movements and notifications
    op.create_table(
        "HRB_PE_MOVEMENT",
        sa.Column("ID", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("COMPANY_ID", sa.Integer(), nullable=True),
        sa.Column("MOVE_IN_COST_CENTER_CODE", sa.String(20), nullable=True),
        sa.Column("MOVE_IN_MONTH", sa.String(10), nullable=True),
        sa.Column("MOVE_IN_YEAR", sa.String(10), nullable=True),
        sa.Column("MOVE_IN_HC", sa.Integer(), nullable=True),
        sa.Column("MOVE_IN_BASE_WAGE", sa.Numeric(18, 2), nullable=True),
        sa.Column("MOVE_OUT_COST_CENTER_CODE", sa.String(20), nullable=True),
        sa.Column("MOVE_OUT_MONTH", sa.String(10), nullable=True),
        sa.Column("MOVE_OUT_YEAR", sa.String(10), nullable=True),
        sa.Column("MOVE_OUT_HC", sa.Integer(), nullable=True),
        sa.Column("MOVE_OUT_BASE_WAGE", sa.Numeric(18, 2), nullable=True),
        sa.Column("STATUS", sa.String(20), nullable=True),
        sa.Column("REQUIRES_APPROVAL", sa.Boolean(), nullable=False),
        sa.Column("APPROVAL_STATUS", sa.String(20), nullable=True),
        sa.Column("PENDING_COST_CENTER", sa.String(20), nullable=True),
        sa.Column("PENDING_EMP_CODE", sa.String(100), nullable=True),
        sa.Column("APPROVED_BY", sa.String(100), nullable=True),
        sa.Column("APPROVED_DATE", sa.DateTime(timezone=True), nullable=True),
        sa.Column("REJECTED_REASON", sa.Text(), nullable=True),
        sa.Column("UPLOAD_LOG_ID", sa.Integer(), nullable=True),
        sa.Column("UPDATED_BY", sa.String(100), nullable=True),
        sa.Column("UPDATED_DATE", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("ID", name="pk_HRB_PE_MOVEMENT"),
    )

    op.create_table(
        "HRB_PE_NOTIFICATION",
        sa.Column("NOTIFICATION_ID", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("MOVEMENT_ID", sa.Integer(), nullable=True),
        sa.Column("NOTIFICATION_TYPE", sa.String(50), nullable=False),
        sa.Column("NOTIFICATION_CATEGORY", sa.String(50), nullable=False),
        sa.Column("RECIPIENT_EMP_CODE", sa.String(100), nullable=False),
        sa.Column("RECIPIENT_COST_CENTER", sa.String(50), nullable=True),
        sa.Column("SENDER_EMP_CODE", sa.String(100), nullable=False),
        sa.Column("SENDER_COST_CENTER", sa.String(50), nullable=True),
        sa.Column("TITLE", sa.String(200), nullable=False),
        sa.Column("MESSAGE", sa.String(1000), nullable=True),
        sa.Column("HC", sa.Integer(), nullable=True),
        sa.Column("BASE_WAGE", sa.Numeric(18, 2), nullable=True),
        sa.Column("PE_MONTH", sa.Integer(), nullable=True),
        sa.Column("PE_YEAR", sa.Integer(), nullable=True),
        sa.Column("COMPANY_ID", sa.Integer(), nullable=True),
        sa.Column("ACTION_URL", sa.String(500), nullable=True),
        sa.Column("ACTION_DATA", sa.Text(), nullable=True),
        sa.Column("EMAIL_LOG_ID", sa.Integer(), nullable=True),
        sa.Column("EMAIL_SENT", sa.Boolean(), nullable=False),
        sa.Column("EMAIL_SENT_DATE", sa.DateTime(timezone=True), nullable=True),
        sa.Column("HAS_ATTACHMENT", sa.Boolean(), nullable=False),
        sa.Column("UPLOAD_LOG_ID", sa.Integer(), nullable=True),
        sa.Column("IS_READ", sa.Boolean(), nullable=False),
        sa.Column("READ_DATE", sa.DateTime(timezone=True), nullable=True),
        sa.Column("IS_ACTIVE", sa.Boolean(), nullable=False),
        sa.Column("CREATED_DATE", sa.DateTime(timezone=True), nullable=False),
        sa.Column("CREATED_BY", sa.String(100), nullable=True),
        sa.PrimaryKeyConstraint("NOTIFICATION_ID", name="pk_HRB_PE_NOTIFICATION"),
    )
    op.create_index(
        "IX_HRB_PE_NOTIFICATION_RECIPIENT",
        "HRB_PE_NOTIFICATION",
        ["RECIPIENT_EMP_CODE", "IS_READ", "IS_ACTIVE"],
    )

    # Logs
    op.create_table(
        "HRB_ACTIVITY_LOG",
        sa.Column("LogId", BIG_IDENTITY, autoincrement=True, nullable=False),
        sa.Column("Timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("UserId", sa.String(50), nullable=False),
        sa.Column("Username", sa.String(100), nullable=True),
        sa.Column("UserRole", sa.String(50), nullable=True),
        sa.Column("ModuleName", sa.String(100), nullable=False),
        sa.Column("Action", sa.String(30), nullable=False),
        sa.Column("TargetId", sa.String(100), nullable=True),
        sa.Column("TargetType", sa.String(50), nullable=True),
        sa.Column("OldValue", sa.Text(), nullable=True),
        sa.Column("NewValue", sa.Text(), nullable=True),
        sa.Column("IpAddress", sa.String(45), nullable=True),
        sa.Column("UserAgent", sa.String(500), nullable=True),
        sa.Column("RequestUrl", sa.String(500), nullable=True),
        sa.Column("Status", sa.String(20), nullable=False),
        sa.Column("ErrorMessage", sa.Text(), nullable=True),
        sa.Column("DurationMs", sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint("LogId", name="pk_HRB_ACTIVITY_LOG"),
    )
    op.create_index("ix_HRB_ACTIVITY_LOG_Timestamp", "HRB_ACTIVITY_LOG", ["Timestamp"])

    op.create_table(
        "HRB_UPLOAD_LOG",
        sa.Column("ID", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("SEQ", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("FILE_NAME", sa.String(255), nullable=True),
        sa.Column("FILE_SIZE", sa.String(50), nullable=True),
        sa.Column("FILE_DATA", sa.LargeBinary(), nullable=True),
        sa.Column("UPLOADED_BY", sa.String(100), nullable=True),
        sa.Column("UPLOADED_DATE", sa.DateTime(timezone=True), nullable=True),
        sa.Column("REF_TYPE", sa.String(50), nullable=True),
        sa.Column("REF_ID", sa.Integer(), nullable=True),
        sa.Column("FILE_TYPE", sa.String(50), nullable=True),
        sa.Column("MIME_TYPE", sa.String(100), nullable=True),
        sa.Column("IS_ACTIVE", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("ID", "SEQ", name="pk_HRB_UPLOAD_LOG"),
    )
    op.create_index("IX_HRB_UPLOAD_LOG", "HRB_UPLOAD_LOG", ["ID", "SEQ"])


def downgrade() -> None:
    op.drop_index("IX_HRB_UPLOAD_LOG", table_name="HRB_UPLOAD_LOG")
    op.drop_table("HRB_UPLOAD_LOG")
    op.drop_index("ix_HRB_ACTIVITY_LOG_Timestamp", table_name="HRB_ACTIVITY_LOG")
    op.drop_table("HRB_ACTIVITY_LOG")
    op.drop_index("IX_HRB_PE_NOTIFICATION_RECIPIENT", table_name="HRB_PE_NOTIFICATION")
    op.drop_table("HRB_PE_NOTIFICATION")
    op.drop_table("HRB_PE_MOVEMENT")
    op.drop_table("HRB_CONF_PE_ALLOCATION")
    op.drop_table("HRB_CONF_BU_SUP")
    for table in ("role_permissions", "user_roles", "permissions", "roles", "users"):
        op.drop_index(f"ix_{table}_tenant_id", table_name=table)
        if table == "users":
            op.drop_index("ix_users_emp_code", table_name="users")
        op.drop_table(table)
