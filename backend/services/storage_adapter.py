"""
Storage Adapter - GridFS-based asset hosting for thumbnails, avatars and editor images.

Every stored asset is addressed by its GridFS id and published under
/api/v1/files/{file_id}. Callers keep the `{file_id, secure_url}` pair
on their own documents.
"""
import hashlib
import io
import logging
from datetime import datetime, timezone
from typing import Optional, Dict, Any
from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorGridFSBucket
from gridfs.errors import NoFile
from database import database
from utils.public_app_url import asset_url

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = {"image/png", "image/jpeg", "image/jpg", "image/webp", "image/gif"}
MAX_IMAGE_BYTES = 10 * 1024 * 1024


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class AssetNotFoundError(StorageError):
    """Asset not found in storage."""
    pass


class FileMetadata:
    """File metadata model."""
    def __init__(
        self,
        file_id: str,
        filename: str,
        content_type: str,
        size_bytes: int,
        sha256_hash: str,
        upload_timestamp: datetime,
        uploaded_by: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        self.file_id = file_id
        self.filename = filename
        self.content_type = content_type
        self.size_bytes = size_bytes
        self.sha256_hash = sha256_hash
        self.upload_timestamp = upload_timestamp
        self.uploaded_by = uploaded_by
        self.metadata = metadata or {}

    @property
    def secure_url(self) -> str:
        return asset_url(self.file_id)

    def to_asset(self) -> Dict[str, str]:
        """Reference stored on owning documents."""
        return {"file_id": self.file_id, "secure_url": self.secure_url}

    @classmethod
    def from_gridfs(cls, file_doc: Dict[str, Any]) -> "FileMetadata":
        gridfs_meta = file_doc.get("metadata") or {}
        uploaded = gridfs_meta.get("upload_timestamp")
        return cls(
            file_id=str(file_doc["_id"]),
            filename=file_doc["filename"],
            content_type=gridfs_meta.get("content_type", "application/octet-stream"),
            size_bytes=file_doc["length"],
            sha256_hash=gridfs_meta.get("sha256_hash", ""),
            upload_timestamp=datetime.fromisoformat(uploaded) if uploaded else datetime.now(timezone.utc),
            uploaded_by=gridfs_meta.get("uploaded_by"),
            metadata=gridfs_meta.get("custom_metadata", {}),
        )


def _object_id(file_id: str) -> Optional[ObjectId]:
    try:
        return ObjectId(file_id)
    except (InvalidId, TypeError):
        return None


class GridFSStorageAdapter:
    """Stores assets in MongoDB GridFS with metadata tracking."""

    def __init__(self, bucket_name: str = "assets"):
        self.bucket_name = bucket_name
        self._bucket = None

    def _get_bucket(self) -> AsyncIOMotorGridFSBucket:
        if self._bucket is None:
            db = database.get_db()
            self._bucket = AsyncIOMotorGridFSBucket(db, bucket_name=self.bucket_name)
        return self._bucket

    async def upload_file(
        self,
        content: bytes,
        filename: str,
        content_type: str,
        uploaded_by: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> FileMetadata:
        """Upload bytes to GridFS."""
        bucket = self._get_bucket()
        sha256_hash = hashlib.sha256(content).hexdigest()
        now = datetime.now(timezone.utc)

        gridfs_metadata = {
            "content_type": content_type,
            "sha256_hash": sha256_hash,
            "uploaded_by": uploaded_by,
            "upload_timestamp": now.isoformat(),
            "custom_metadata": metadata or {},
        }

        file_id = await bucket.upload_from_stream(
            filename,
            io.BytesIO(content),
            metadata=gridfs_metadata,
        )

        file_meta = FileMetadata(
            file_id=str(file_id),
            filename=filename,
            content_type=content_type,
            size_bytes=len(content),
            sha256_hash=sha256_hash,
            upload_timestamp=now,
            uploaded_by=uploaded_by,
            metadata=metadata,
        )

        logger.info(f"File uploaded to GridFS: {filename} ({file_meta.file_id})")
        return file_meta

    async def download_file(self, file_id: str) -> tuple[bytes, FileMetadata]:
        """Download file content and metadata."""
        object_id = _object_id(file_id)
        if object_id is None:
            raise AssetNotFoundError(f"Invalid file ID: {file_id}")

        db = database.get_db()
        file_doc = await db[f"{self.bucket_name}.files"].find_one({"_id": object_id})
        if not file_doc:
            raise AssetNotFoundError(f"File not found: {file_id}")

        stream = io.BytesIO()
        await self._get_bucket().download_to_stream(object_id, stream)
        return stream.getvalue(), FileMetadata.from_gridfs(file_doc)

    async def delete_file(self, file_id: str) -> bool:
        """Delete file from GridFS. Returns False when it was already gone."""
        object_id = _object_id(file_id)
        if object_id is None:
            logger.warning(f"Skipping delete of invalid file id {file_id}")
            return False
        try:
            await self._get_bucket().delete(object_id)
        except NoFile:
            logger.warning(f"File {file_id} already absent from GridFS")
            return False
        logger.info(f"File deleted from GridFS: {file_id}")
        return True

storage_adapter = GridFSStorageAdapter()


# Helper functions for common operations
def validate_image(content: bytes, content_type: Optional[str]):
    """Raise ValueError when an upload is not an acceptable image."""
    if not content:
        raise ValueError("Uploaded file is empty")
    if (content_type or "").lower() not in ALLOWED_IMAGE_TYPES:
        raise ValueError("Only image files are allowed")
    if len(content) > MAX_IMAGE_BYTES:
        raise ValueError("Image must be 10MB or smaller")


async def upload_image(
    content: bytes,
    filename: str,
    content_type: str,
    folder: str,
    uploaded_by: Optional[str] = None,
) -> Dict[str, str]:
    """Validate and store an image under a logical folder; returns `{file_id, secure_url}`."""
    validate_image(content, content_type)
    meta = await storage_adapter.upload_file(
        content=content,
        filename=f"{folder}/{filename or 'upload'}",
        content_type=content_type,
        uploaded_by=uploaded_by,
        metadata={"folder": folder},
    )
    return meta.to_asset()


async def delete_asset(asset: Optional[Dict[str, Any]]) -> bool:
    """Delete the asset referenced by a `{file_id, secure_url}` dict, if any."""
    file_id = (asset or {}).get("file_id")
    if not file_id:
        return False
    return await storage_adapter.delete_file(file_id)


async def read_upload(upload) -> Optional[Dict[str, Any]]:
    """`{content, filename, content_type}` from a FastAPI UploadFile, or None when absent."""
    if upload is None:
        return None
    content = await upload.read()
    if not content:
        return None
    return {"content": content, "filename": upload.filename, "content_type": upload.content_type}
