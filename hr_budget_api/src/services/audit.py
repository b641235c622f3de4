from __future__ import annotations

import json
import logging
import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, List, Optional

from fastapi import Request
from pydantic import BaseModel
from pydantic.alias_generators import to_camel
from pydantic_core import to_jsonable_python
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.models.logs import ActivityLog, UploadLog
from src.repositories.base import BaseRepository
from src.schemas.audit import (
    ActivityEntry,
    ActivityLogDto,
    ActivityLogQuery,
    UploadLogDto,
    UploadLogQuery,
)
from src.schemas.common import PagedResult
from src.services.base import BaseService

logger = logging.getLogger(__name__)

SYSTEM_USER = "SYSTEM"
UNKNOWN = "Unknown"
MASK = "***MASKED***"
MAX_HEADER_LENGTH = 500

SENSITIVE_FIELDS = frozenset({
    "password",
    "passwordhash",
    "passwordsalt",
    "idcard",
    "idcardnumber",
    "creditcard",
    "cvv",
    "pin",
    "secret",
    "token",
    "apikey",
})

_SENSITIVE_JSON_PATTERN = re.compile(
    r'"(' + "|".join(sorted(SENSITIVE_FIELDS)) + r')"\s*:\s*"[^"]*"',
    re.IGNORECASE,
)

ACTIVITY_SORT_FIELDS = {
    "userid": ActivityLog.user_id,
    "username": ActivityLog.username,
    "modulename": ActivityLog.module_name,
    "action": ActivityLog.action,
    "targetid": ActivityLog.target_id,
    "status": ActivityLog.status,
    "ipaddress": ActivityLog.ip_address,
}

UPLOAD_SORT_FIELDS = {
    "filename": UploadLog.file_name,
    "uploadedby": UploadLog.uploaded_by,
    "filesize": UploadLog.file_size,
    "reftype": UploadLog.ref_type,
    "filetype": UploadLog.file_type,
}


def _day_start(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def _camel_key(key: str) -> str:
    # to_camel title-cases PascalCase input, so the head is lowered first
    return to_camel(key[:1].lower() + key[1:])


def _camelize(value: Any) -> Any:
    """Recursively camelCase snake_case dict keys and drop null members."""
    if isinstance(value, dict):
        return {_camel_key(str(k)): _camelize(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [_camelize(v) for v in value]
    return value


def _mask(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: (MASK if str(k).lower() in SENSITIVE_FIELDS else _mask(v)) for k, v in value.items()}
    if isinstance(value, list):
        return [_mask(v) for v in value]
    return value


# PUBLIC_INTERFACE
def serialize_and_mask(obj: Any) -> Optional[str]:
    """
    Render a value as camelCase JSON with sensitive members replaced by ***MASKED***.

    Strings are assumed to be JSON already; if they do not parse, sensitive
    "key":"value" pairs are masked textually.
    """
    if obj is None:
        return None
    if isinstance(obj, str):
        try:
            parsed = json.loads(obj)
        except ValueError:
            return _SENSITIVE_JSON_PATTERN.sub(lambda m: f'"{m.group(1)}":"{MASK}"', obj)
        return json.dumps(_mask(parsed), ensure_ascii=False)
    if isinstance(obj, BaseModel):
        obj = obj.model_dump(mode="json", exclude_none=True)
    try:
        data = to_jsonable_python(obj)
    except Exception:
        logger.warning("Could not serialize %s for activity log", type(obj).__name__, exc_info=True)
        return str(obj)
    return json.dumps(_mask(_camelize(data)), ensure_ascii=False)


def client_ip(request: Optional[Request]) -> str:
    """First X-Forwarded-For hop, then the socket peer, else 'Unknown'."""
    if request is None:
        return UNKNOWN
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client and request.client.host:
        return request.client.host
    return UNKNOWN


def user_agent(request: Optional[Request]) -> str:
    ua = request.headers.get("User-Agent") if request is not None else None
    if not ua:
        return UNKNOWN
    return ua[:MAX_HEADER_LENGTH]


def request_line(request: Optional[Request]) -> Optional[str]:
    """'METHOD /path?query' truncated to the column size."""
    if request is None:
        return None
    line = f"{request.method} {request.url.path}"
    if request.url.query:
        line = f"{line}?{request.url.query}"
    return line[:MAX_HEADER_LENGTH]


def _actor(request: Optional[Request]) -> tuple[str, Optional[str], Optional[str]]:
    user = getattr(request.state, "user", None) if request is not None else None
    if user is None:
        return SYSTEM_USER, None, None
    roles = getattr(request.state, "user_roles", None) or []
    return (
        (user.emp_code or user.user_name or SYSTEM_USER)[:50],
        (user.name or user.user_name),
        roles[0] if roles else None,
    )


class AuditLogService(BaseService):
    """Writes and queries HRB_ACTIVITY_LOG, and queries HRB_UPLOAD_LOG for the audit screens."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = BaseRepository(session)

    # PUBLIC_INTERFACE
    async def log_activity(self, entry: ActivityEntry, request: Optional[Request] = None) -> None:
        """
        Append an activity row for the request's user (or SYSTEM).

        Never raises: a failed write is logged and rolled back so the caller's
        operation still completes.
        """
        try:
            user_id, username, user_role = _actor(request)
            row = ActivityLog(
                user_id=user_id,
                username=username,
                user_role=user_role,
                module_name=entry.module_name,
                action=entry.action,
                target_id=entry.target_id,
                target_type=entry.target_type,
                old_value=serialize_and_mask(entry.old_value),
                new_value=serialize_and_mask(entry.new_value),
                ip_address=client_ip(request)[:45],
                user_agent=user_agent(request),
                request_url=request_line(request),
                status=entry.status,
                error_message=entry.error_message,
                duration_ms=entry.duration_ms,
            )
            await self.repo.add(row)
            await self.repo.commit()
        except Exception:
            logger.exception("Error logging activity: %s/%s", entry.module_name, entry.action)
            try:
                await self.session.rollback()
            except Exception:
                logger.exception("Rollback after failed activity log also failed")

    # PUBLIC_INTERFACE
    async def log(
        self,
        request: Optional[Request],
        module_name: str,
        action: str,
        target_id: Optional[str] = None,
        target_type: Optional[str] = None,
        old_value: Any = None,
        new_value: Any = None,
        status: str = "SUCCESS",
        error_message: Optional[str] = None,
    ) -> None:
        """Shorthand for log_activity with positional module/action."""
        await self.log_activity(
            ActivityEntry(
                module_name=module_name,
                action=action,
                target_id=target_id,
                target_type=target_type,
                old_value=old_value,
                new_value=new_value,
                status=status,
                error_message=error_message,
            ),
            request,
        )

    # PUBLIC_INTERFACE
    async def get_activity_logs(self, query: ActivityLogQuery) -> PagedResult[ActivityLogDto]:
        """Return every matching activity row; the grid pages on the client."""
        stmt = select(ActivityLog)
        if query.date_from:
            stmt = stmt.where(ActivityLog.timestamp >= _day_start(query.date_from))
        if query.date_to:
            stmt = stmt.where(ActivityLog.timestamp < _day_start(query.date_to + timedelta(days=1)))
        if query.module_name and query.module_name != "ALL":
            stmt = stmt.where(ActivityLog.module_name == query.module_name)
        if query.action and query.action != "ALL":
            stmt = stmt.where(ActivityLog.action == query.action)
        if query.status and query.status != "ALL":
            stmt = stmt.where(ActivityLog.status == query.status)
        if query.user_id:
            like = f"%{query.user_id}%"
            stmt = stmt.where(or_(ActivityLog.user_id.like(like), ActivityLog.username.like(like)))
        if query.search_text:
            like = f"%{query.search_text}%"
            stmt = stmt.where(or_(
                ActivityLog.user_id.like(like),
                ActivityLog.username.like(like),
                ActivityLog.module_name.like(like),
                ActivityLog.action.like(like),
                ActivityLog.target_id.like(like),
            ))

        total = await self.repo.count(stmt)
        column = ACTIVITY_SORT_FIELDS.get((query.sort_field or "").lower(), ActivityLog.timestamp)
        ordered = column.desc() if query.sort_order.lower() == "desc" else column.asc()
        rows = list(await self.repo.scalars(stmt.order_by(ordered, ActivityLog.log_id.desc())))
        return PagedResult[ActivityLogDto](
            data=[ActivityLogDto.model_validate(r) for r in rows],
            total_count=total,
            page=1,
            page_size=total,
        )

    # PUBLIC_INTERFACE
    async def get_upload_logs(self, query: UploadLogQuery) -> PagedResult[UploadLogDto]:
        """Upload history filtered by date, uploader and free text."""
        stmt = select(UploadLog)
        if query.date_from:
            stmt = stmt.where(UploadLog.uploaded_date >= _day_start(query.date_from))
        if query.date_to:
            stmt = stmt.where(UploadLog.uploaded_date < _day_start(query.date_to + timedelta(days=1)))
        if query.username:
            stmt = stmt.where(UploadLog.uploaded_by.like(f"%{query.username}%"))
        if query.search_text:
            like = f"%{query.search_text}%"
            stmt = stmt.where(or_(
                UploadLog.file_name.like(like),
                UploadLog.uploaded_by.like(like),
                UploadLog.ref_type.like(like),
            ))

        total = await self.repo.count(stmt)
        column = UPLOAD_SORT_FIELDS.get((query.sort_field or "").lower(), UploadLog.uploaded_date)
        ordered = column.desc() if query.sort_order.lower() == "desc" else column.asc()
        rows = list(await self.repo.scalars(stmt.order_by(ordered)))
        return PagedResult[UploadLogDto](
            data=[UploadLogDto.model_validate(r) for r in rows],
            total_count=total,
            page=1,
            page_size=total,
        )

    # PUBLIC_INTERFACE
    async def get_distinct_modules(self) -> List[str]:
        stmt = select(ActivityLog.module_name).distinct().order_by(ActivityLog.module_name)
        return list(await self.repo.scalars(stmt))

    # PUBLIC_INTERFACE
    async def get_distinct_actions(self) -> List[str]:
        stmt = select(ActivityLog.action).distinct().order_by(ActivityLog.action)
        return list(await self.repo.scalars(stmt))
