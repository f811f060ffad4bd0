"""
Portal Backend - File Storage Service
=======================================

What:  Stores, lists, serves and deletes user files on the local filesystem.
How:   Files live in one directory per bucket under STORAGE_ROOT. Each file
       name starts with the owner's user id, which is how ownership is checked:
           {storage_root}/{bucket}/{user_id}_{epoch_ms}_{random}.{ext}
Who:   Storage routes (upload/list/download/delete) and the avatar route.

Bucket Rules:
    uploads    50 MB   image/*, application/pdf, text/*, video/*, audio/*
    avatars     5 MB   image/jpeg, image/png, image/gif, image/webp   (public reads)
    documents 100 MB   application/pdf, application/msword,
                       application/vnd.openxmlformats-officedocument*, text/*

    Type rules ending in "/" match by prefix; the others must match exactly,
    except the OOXML family which is a prefix by nature.

Security Model:
    - Stored names contain no user input apart from the extension, which is
      reduced to alphanumerics
    - Every resolved path must stay inside its bucket directory
"""

import logging
import mimetypes
import os
import re
import secrets
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import aiofiles

from portal.exceptions import (
    FileStorageError,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)

logger = logging.getLogger(__name__)

MB = 1024 * 1024


@dataclass(frozen=True)
class BucketPolicy:
    name: str
    max_size: int
    allowed_types: Tuple[str, ...]
    public: bool = False

    def allows(self, content_type: str) -> bool:
        content_type = content_type.lower()
        for allowed in self.allowed_types:
            if allowed.endswith("/") or allowed.endswith("officedocument"):
                if content_type.startswith(allowed):
                    return True
            elif content_type == allowed:
                return True
        return False


BUCKETS: Dict[str, BucketPolicy] = {
    "uploads": BucketPolicy(
        name="uploads",
        max_size=50 * MB,
        allowed_types=("image/", "application/pdf", "text/", "video/", "audio/"),
    ),
    "avatars": BucketPolicy(
        name="avatars",
        max_size=5 * MB,
        allowed_types=("image/jpeg", "image/png", "image/gif", "image/webp"),
        public=True,
    ),
    "documents": BucketPolicy(
        name="documents",
        max_size=100 * MB,
        allowed_types=(
            "application/pdf",
            "application/msword",
            "application/vnd.openxmlformats-officedocument",
            "text/",
        ),
    ),
}

DEFAULT_BUCKET = "uploads"
RECENT_FILES_LIMIT = 10

_EXTENSION_RE = re.compile(r"[^A-Za-z0-9]")


@dataclass(frozen=True)
class StoredFile:
    name: str
    bucket: str
    size: int
    content_type: str
    created_at: datetime

    @property
    def path(self) -> str:
        return self.name

    @property
    def url(self) -> str:
        return f"/api/storage/{self.bucket}/{self.name}"


class StorageService:
    """Local filesystem storage with per-bucket size and type rules."""

    def __init__(self, storage_root: str):
        self.storage_root = Path(storage_root).resolve()
        self.storage_root.mkdir(parents=True, exist_ok=True)
        logger.info("StorageService initialized with storage_root=%s", self.storage_root)

    # ── Validation ────────────────────────────────────────────────────────

    def get_bucket(self, bucket: str) -> BucketPolicy:
        policy = BUCKETS.get(bucket)
        if policy is None:
            raise ValidationError("Invalid bucket", field="bucket")
        return policy

    def validate_upload(self, policy: BucketPolicy, size: int, content_type: str) -> None:
        if size > policy.max_size:
            raise ValidationError(
                f"File too large. Maximum size for {policy.name} is {policy.max_size // MB}MB",
                field="file",
                details={"max_size": policy.max_size},
            )
        if not policy.allows(content_type):
            raise ValidationError(
                f"Invalid file type for {policy.name}. "
                f"Allowed types: {', '.join(policy.allowed_types)}",
                field="file",
            )

    @staticmethod
    def is_owner(user_id: str, file_path: str) -> bool:
        return file_path.startswith(f"{user_id}_")

    def _resolve(self, bucket: str, file_path: str) -> Path:
        """Stored files sit directly in their bucket directory; nested or
        traversing paths are rejected after normalization."""
        bucket_dir = (self.storage_root / bucket).resolve()
        target = (bucket_dir / file_path).resolve()
        if target.parent != bucket_dir:
            raise ValidationError("Invalid file path", field="path")
        return target

    def generate_name(self, user_id: str, original_filename: Optional[str]) -> str:
        ext = ""
        if original_filename and "." in original_filename:
            ext = _EXTENSION_RE.sub("", original_filename.rsplit(".", 1)[1])[:16].lower()
        stamp = int(time.time() * 1000)
        name = f"{user_id}_{stamp}_{secrets.token_hex(6)}"
        return f"{name}.{ext}" if ext else name

    # ── Operations ────────────────────────────────────────────────────────

    async def upload(
        self,
        user_id: str,
        bucket: str,
        filename: Optional[str],
        content: bytes,
        content_type: Optional[str],
    ) -> StoredFile:
        policy = self.get_bucket(bucket)
        content_type = content_type or _guess_type(filename)
        self.validate_upload(policy, len(content), content_type)

        name = self.generate_name(user_id, filename)
        target = self._resolve(bucket, name)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(target, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store file at %s: %s", target, e)
            raise FileStorageError(
                "Failed to upload file",
                context={"path": str(target), "os_error": str(e)},
            )

        logger.info("File stored: %s/%s (%d bytes)", bucket, name, len(content))
        return self._describe(bucket, target)

    async def list_recent(self, user_id: str, limit: int = RECENT_FILES_LIMIT) -> List[StoredFile]:
        """The caller's most recently written files across every bucket."""
        files: List[StoredFile] = []
        for bucket in BUCKETS:
            bucket_dir = self.storage_root / bucket
            if not bucket_dir.is_dir():
                continue
            try:
                for entry in bucket_dir.iterdir():
                    if entry.is_file() and self.is_owner(user_id, entry.name):
                        files.append(self._describe(bucket, entry))
            except OSError as e:
                logger.warning("Failed to list files in bucket %s: %s", bucket, e)
        files.sort(key=lambda f: f.created_at, reverse=True)
        return files[:limit]

    async def read(self, user_id: Optional[str], bucket: str, file_path: str) -> Tuple[bytes, str]:
        """
        Returns (content, content_type).

        Files in public buckets are readable by anyone; everything else only by
        its owner.
        """
        policy = self.get_bucket(bucket)
        target = self._resolve(bucket, file_path)
        if not policy.public:
            if user_id is None:
                raise UnauthorizedError("Authentication required")
            if not self.is_owner(user_id, target.name):
                raise ForbiddenError("You can only access your own files")

        if not target.is_file():
            raise NotFoundError(resource="File", resource_id=f"{bucket}/{file_path}")
        try:
            async with aiofiles.open(target, "rb") as f:
                content = await f.read()
        except OSError as e:
            logger.error("Failed to read %s: %s", target, e)
            raise FileStorageError(context={"path": str(target), "os_error": str(e)})
        return content, _guess_type(target.name)

    async def delete(self, user_id: str, bucket: str, file_path: str) -> None:
        self.get_bucket(bucket)
        target = self._resolve(bucket, file_path)
        if not self.is_owner(user_id, target.name):
            raise ForbiddenError("You can only delete your own files")

        if not target.is_file():
            raise NotFoundError(resource="File", resource_id=f"{bucket}/{file_path}")
        try:
            os.remove(target)
        except OSError as e:
            logger.error("Failed to delete %s: %s", target, e)
            raise FileStorageError(
                "Failed to delete file",
                context={"path": str(target), "os_error": str(e)},
            )
        logger.info("File deleted: %s/%s", bucket, file_path)

    def _describe(self, bucket: str, path: Path) -> StoredFile:
        stat = path.stat()
        return StoredFile(
            name=path.name,
            bucket=bucket,
            size=stat.st_size,
            content_type=_guess_type(path.name),
            created_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
        )


def _guess_type(filename: Optional[str]) -> str:
    if not filename:
        return "application/octet-stream"
    guessed, _ = mimetypes.guess_type(filename)
    return guessed or "application/octet-stream"
