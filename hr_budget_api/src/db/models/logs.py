from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, Boolean, DateTime, Index, Integer, LargeBinary, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.db.base import Base, utcnow

# BIGINT identity on real databases; SQLite only autoincrements INTEGER PRIMARY KEY.
_BigIdentity = BigInteger().with_variant(Integer(), "sqlite")


class ActivityLog(Base):
    """Append-only audit trail of user actions (HRB_ACTIVITY_LOG)."""
    __tablename__ = "HRB_ACTIVITY_LOG"

    log_id: Mapped[int] = mapped_column("LogId", _BigIdentity, primary_key=True, autoincrement=True)
    timestamp: Mapped[datetime] = mapped_column("Timestamp", DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    user_id: Mapped[str] = mapped_column("UserId", String(50), nullable=False)
    username: Mapped[Optional[str]] = mapped_column("Username", String(100), nullable=True)
    user_role: Mapped[Optional[str]] = mapped_column("UserRole", String(50), nullable=True)
    module_name: Mapped[str] = mapped_column("ModuleName", String(100), nullable=False)
    action: Mapped[str] = mapped_column("Action", String(30), nullable=False)
    target_id: Mapped[Optional[str]] = mapped_column("TargetId", String(100), nullable=True)
    target_type: Mapped[Optional[str]] = mapped_column("TargetType", String(50), nullable=True)
    old_value: Mapped[Optional[str]] = mapped_column("OldValue", Text, nullable=True)
    new_value: Mapped[Optional[str]] = mapped_column("NewValue", Text, nullable=True)
    ip_address: Mapped[Optional[str]] = mapped_column("IpAddress", String(45), nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column("UserAgent", String(500), nullable=True)
    request_url: Mapped[Optional[str]] = mapped_column("RequestUrl", String(500), nullable=True)
    status: Mapped[str] = mapped_column("Status", String(20), nullable=False, default="SUCCESS")
    error_message: Mapped[Optional[str]] = mapped_column("ErrorMessage", Text, nullable=True)
    duration_ms: Mapped[Optional[int]] = mapped_column("DurationMs", Integer, nullable=True)


class UploadLog(Base):
    """
    Uploaded attachment (HRB_UPLOAD_LOG).

    One logical upload (ID) holds several files numbered by SEQ.
    """
    __tablename__ = "HRB_UPLOAD_LOG"
    __table_args__ = (
        Index("IX_HRB_UPLOAD_LOG", "ID", "SEQ"),
    )

    id: Mapped[int] = mapped_column("ID", Integer, primary_key=True, autoincrement=False)
    seq: Mapped[int] = mapped_column("SEQ", Integer, primary_key=True, autoincrement=False)
    file_name: Mapped[Optional[str]] = mapped_column("FILE_NAME", String(255), nullable=True)
    file_size: Mapped[Optional[str]] = mapped_column("FILE_SIZE", String(50), nullable=True)
    file_data: Mapped[Optional[bytes]] = mapped_column("FILE_DATA", LargeBinary, nullable=True)
    uploaded_by: Mapped[Optional[str]] = mapped_column("UPLOADED_BY", String(100), nullable=True)
    uploaded_date: Mapped[Optional[datetime]] = mapped_column("UPLOADED_DATE", DateTime(timezone=True), nullable=True, default=utcnow)
    ref_type: Mapped[Optional[str]] = mapped_column("REF_TYPE", String(50), nullable=True)
    ref_id: Mapped[Optional[int]] = mapped_column("REF_ID", Integer, nullable=True)
    file_type: Mapped[Optional[str]] = mapped_column("FILE_TYPE", String(50), nullable=True)
    mime_type: Mapped[Optional[str]] = mapped_column("MIME_TYPE", String(100), nullable=True)
    is_active: Mapped[bool] = mapped_column("IS_ACTIVE", Boolean, nullable=False, default=True)
