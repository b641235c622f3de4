from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.settings import get_app_settings
from src.db.models.logs import UploadLog
from src.repositories.base import BaseRepository
from src.schemas.audit import FileUploadResult, UploadLogDto
from src.services.base import BaseService

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"

ALLOWED_MIME_TYPES = frozenset({
    "application/pdf",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-excel",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "image/png",
    "image/jpeg",
    "image/jpg",
})


@dataclass
class UploadInput:
    """One file to attach to a reference (e.g. REF_TYPE=PE_MOVEMENT, REF_ID=movement id)."""
    file_name: str
    content_type: Optional[str]
    data: bytes
    ref_type: str
    ref_id: Optional[int]
    uploaded_by: str


@dataclass
class DownloadedFile:
    data: bytes
    file_name: str
    content_type: str


def format_file_size(size: int) -> str:
    """Human readable size: 'N B', 'N.N KB' or 'N.NN MB'."""
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.2f} MB"


def file_type_for(mime_type: Optional[str]) -> str:
    """Coarse file family stored in FILE_TYPE."""
    mime = (mime_type or "").lower()
    if mime == "application/pdf":
        return "PDF"
    if "spreadsheet" in mime or "excel" in mime:
        return "EXCEL"
    if "word" in mime:
        return "WORD"
    if mime.startswith("image/"):
        return "IMAGE"
    return "OTHER"


class FileUploadService(BaseService):
    """Stores attachments in HRB_UPLOAD_LOG and serves them back."""

    def __init__(self, session: AsyncSession, max_file_size: Optional[int] = None) -> None:
        super().__init__(session)
        self.repo = BaseRepository(session)
        self.max_file_size = max_file_size or get_app_settings().UPLOAD_MAX_FILE_SIZE_BYTES

    def validate(self, upload: UploadInput) -> Optional[str]:
        """Return an error message, or None when the file is acceptable."""
        if not upload.data:
            return "File is empty"
        if len(upload.data) > self.max_file_size:
            return f"File size exceeds {format_file_size(self.max_file_size)} limit"
        if (upload.content_type or "").lower() not in ALLOWED_MIME_TYPES:
            return f"File type '{upload.content_type}' is not allowed"
        return None

    async def _next_key(self, ref_type: str, ref_id: Optional[int]) -> tuple[int, int]:
        # Files for the same reference share an ID; SEQ numbers them.
        existing_id = (
            await self.repo.execute(
                select(func.max(UploadLog.id)).where(UploadLog.ref_type == ref_type, UploadLog.ref_id == ref_id)
            )
        ).scalar_one_or_none()
        if existing_id is None:
            if ref_id is not None:
                upload_id = ref_id
            else:
                max_id = (await self.repo.execute(select(func.max(UploadLog.id)))).scalar_one_or_none()
                upload_id = int(max_id or 0) + 1
        else:
            upload_id = int(existing_id)
        max_seq = (
            await self.repo.execute(select(func.max(UploadLog.seq)).where(UploadLog.id == upload_id))
        ).scalar_one_or_none()
        return upload_id, int(max_seq or 0) + 1

    # PUBLIC_INTERFACE
    async def upload_file(self, upload: UploadInput) -> FileUploadResult:
        """Validate and store one file; failures come back as success=False with a message."""
        error = self.validate(upload)
        if error:
            logger.info("Rejected upload %s: %s", upload.file_name, error)
            return FileUploadResult(success=False, message=error, file_name=upload.file_name)

        upload_id, seq = await self._next_key(upload.ref_type, upload.ref_id)
        size = format_file_size(len(upload.data))
        row = UploadLog(
            id=upload_id,
            seq=seq,
            file_name=upload.file_name,
            file_size=size,
            file_data=upload.data,
            uploaded_by=upload.uploaded_by,
            ref_type=upload.ref_type,
            ref_id=upload.ref_id,
            file_type=file_type_for(upload.content_type),
            mime_type=upload.content_type,
            is_active=True,
        )
        await self.repo.add(row)
        await self.repo.commit()
        logger.info("Stored upload %s/%s (%s) for %s:%s", upload_id, seq, size, upload.ref_type, upload.ref_id)
        return FileUploadResult(
            success=True,
            message="File uploaded successfully",
            upload_log_id=upload_id,
            seq=seq,
            file_name=upload.file_name,
            file_size=size,
        )

    # PUBLIC_INTERFACE
    async def get_files_by_reference(self, ref_type: str, ref_id: int) -> List[UploadLogDto]:
        stmt = (
            select(UploadLog)
            .where(UploadLog.ref_type == ref_type, UploadLog.ref_id == ref_id, UploadLog.is_active.is_(True))
            .order_by(UploadLog.seq)
        )
        return [UploadLogDto.model_validate(r) for r in await self.repo.scalars(stmt)]

    async def _get(self, upload_id: int, seq: int) -> Optional[UploadLog]:
        stmt = select(UploadLog).where(UploadLog.id == upload_id, UploadLog.seq == seq)
        return await self.repo.scalar_one_or_none(stmt)

    # PUBLIC_INTERFACE
    async def get_file(self, upload_id: int, seq: int) -> Optional[DownloadedFile]:
        """Return the stored bytes of an active file, or None."""
        row = await self._get(upload_id, seq)
        if row is None or not row.is_active or row.file_data is None:
            return None
        return DownloadedFile(
            data=row.file_data,
            file_name=row.file_name or f"file_{upload_id}_{seq}",
            content_type=row.mime_type or DEFAULT_CONTENT_TYPE,
        )

    # PUBLIC_INTERFACE
    async def delete_file(self, upload_id: int, seq: int) -> bool:
        """Soft delete; False when the file does not exist."""
        row = await self._get(upload_id, seq)
        if row is None:
            return False
        row.is_active = False
        await self.repo.commit()
        return True
