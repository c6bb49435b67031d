"""Object storage for generated media, and the uploader that re-hosts it."""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass

import aioboto3
import httpx
from botocore.exceptions import BotoCoreError, ClientError

from artisan_studio.errors import UploadFailed
from artisan_studio.logging import get_logger
from artisan_studio.models.media import (
    DEFAULT_CONTENT_TYPES,
    MediaFile,
    MediaFileDescriptor,
    MediaKind,
)

logger = get_logger(__name__)

EXTENSIONS: dict[str, str] = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
    "video/mp4": "mp4",
    "video/webm": "webm",
    "video/mov": "mov",
    "video/quicktime": "mov",
    "audio/mp3": "mp3",
    "audio/mpeg": "mp3",
    "audio/wav": "wav",
    "audio/ogg": "ogg",
}

# First content type wins for extensions shared by several types
_CONTENT_TYPES_BY_EXTENSION: dict[str, str] = {}
for _content_type, _ext in EXTENSIONS.items():
    _CONTENT_TYPES_BY_EXTENSION.setdefault(_ext, _content_type)
_CONTENT_TYPES_BY_EXTENSION.setdefault("jpeg", "image/jpeg")


def file_extension(content_type: str) -> str:
    """File extension (without dot) for a content type, "bin" if unknown."""
    return EXTENSIONS.get(content_type.split(";")[0].strip().lower(), "bin")


def content_type_for_path(path: str) -> str:
    """Guess the content type of a stored object from its extension."""
    _, _, ext = path.rpartition(".")
    return _CONTENT_TYPES_BY_EXTENSION.get(ext.lower(), "application/octet-stream")


def storage_key(media_kind: MediaKind, user_id: str, content_type: str) -> str:
    """Deterministic layout: {kind}s/{user_id}/{random id}.{ext}."""
    return f"{media_kind}s/{user_id}/{uuid.uuid4()}.{file_extension(content_type)}"


def upload_key(user_id: str, filename: str) -> str:
    """Key for a user attachment: uploads/{user_id}/{random id}.{ext}.

    The extension comes from the client's file name, "jpg" if it has none.
    """
    _, dot, ext = filename.rpartition(".")
    ext = ext.lower() if dot and ext else "jpg"
    return f"uploads/{user_id}/{uuid.uuid4()}.{ext}"


@dataclass(frozen=True)
class StoredObject:
    """An object read back from storage."""

    body: bytes
    content_type: str | None
    size: int


class ObjectStorage:
    """S3-compatible object storage (AWS S3, MinIO, R2).

    Objects are served publicly through the application's /m/ route, so the
    public URL is derived from the application base URL, not the bucket.
    """

    def __init__(
        self,
        bucket_name: str,
        region: str,
        public_base_url: str,
        access_key_id: str | None = None,
        secret_access_key: str | None = None,
        endpoint_url: str | None = None,
    ) -> None:
        """Initialize storage.

        Args:
            bucket_name: Bucket holding all media.
            region: Bucket region.
            public_base_url: Base URL of this service, used for public URLs.
            access_key_id: Access key (optional, can use IAM role).
            secret_access_key: Secret key (optional, can use IAM role).
            endpoint_url: Custom endpoint for S3-compatible services.
        """
        self._bucket = bucket_name
        self._endpoint_url = endpoint_url
        self.public_base_url = public_base_url.rstrip("/")

        session_kwargs = {"region_name": region}
        if access_key_id and secret_access_key:
            session_kwargs["aws_access_key_id"] = access_key_id
            session_kwargs["aws_secret_access_key"] = secret_access_key
        self._session = aioboto3.Session(**session_kwargs)

        logger.info(
            "Object storage initialized",
            bucket=bucket_name,
            endpoint=endpoint_url or "aws",
        )

    async def _get_client(self):
        """Get an S3 client context manager."""
        return self._session.client("s3", endpoint_url=self._endpoint_url)

    def public_url(self, key: str) -> str:
        """Public URL under which the object is served."""
        return f"{self.public_base_url}/m/{key}"

    async def put(self, key: str, body: bytes, content_type: str) -> None:
        """Write an object."""
        async with await self._get_client() as s3:
            await s3.put_object(
                Bucket=self._bucket,
                Key=key,
                Body=body,
                ContentType=content_type,
            )
        logger.debug("Stored object", key=key, size=len(body))

    async def presign_put(self, key: str, content_type: str, expires_in: int = 3600) -> str:
        """Presigned URL a client can PUT the object to directly."""
        async with await self._get_client() as s3:
            url = await s3.generate_presigned_url(
                "put_object",
                Params={"Bucket": self._bucket, "Key": key, "ContentType": content_type},
                ExpiresIn=expires_in,
            )
        logger.debug("Presigned upload", key=key, expires_in=expires_in)
        return url

    async def get(self, key: str) -> StoredObject | None:
        """Read an object, or None if it does not exist."""
        async with await self._get_client() as s3:
            try:
                response = await s3.get_object(Bucket=self._bucket, Key=key)
            except ClientError as e:
                code = e.response.get("Error", {}).get("Code")
                if code in ("NoSuchKey", "404", "NotFound"):
                    return None
                raise
            body = await response["Body"].read()
        return StoredObject(
            body=body,
            content_type=response.get("ContentType"),
            size=len(body),
        )


class MediaUploader:
    """Fetches generated files from their origin and re-hosts them."""

    def __init__(self, storage: ObjectStorage, http_client: httpx.AsyncClient | None = None) -> None:
        """Initialize the uploader.

        Args:
            storage: Destination storage.
            http_client: Client used to fetch origin URLs.
        """
        self.storage = storage
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(120.0), follow_redirects=True
        )

    async def close(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    async def upload(
        self,
        descriptors: list[MediaFileDescriptor],
        user_id: str,
        media_kind: MediaKind,
    ) -> list[MediaFile]:
        """Re-host a batch of generated files.

        All uploads run concurrently and every one is allowed to finish. If any
        failed, the batch fails as a whole with UploadFailed, whose ``failures``
        lists each failed origin URL with its error.

        Args:
            descriptors: Files to re-host.
            user_id: Owner; part of the storage path.
            media_kind: Kind of the producing model.

        Returns:
            Re-hosted files, in input order.
        """
        results = await asyncio.gather(
            *(self._upload_one(d, user_id, media_kind) for d in descriptors),
            return_exceptions=True,
        )

        files: list[MediaFile] = []
        failures: list[tuple[str, BaseException]] = []
        for descriptor, result in zip(descriptors, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                failures.append((descriptor.url, result))
            else:
                files.append(result)

        if failures:
            logger.error(
                "Media upload failed",
                media_kind=media_kind,
                failed=len(failures),
                succeeded=len(files),
            )
            first = failures[0][1]
            cause = first.cause if isinstance(first, UploadFailed) else first
            raise UploadFailed(media_kind, cause, failures=failures)

        return files

    async def _upload_one(
        self,
        descriptor: MediaFileDescriptor,
        user_id: str,
        media_kind: MediaKind,
    ) -> MediaFile:
        content_type = descriptor.content_type or DEFAULT_CONTENT_TYPES[media_kind]

        try:
            response = await self._client.get(descriptor.url)
        except httpx.HTTPError as e:
            raise UploadFailed(media_kind, f"Failed to fetch {media_kind} from URL: {e}") from e
        if response.is_error:
            raise UploadFailed(
                media_kind, f"Failed to fetch {media_kind} from URL: {response.reason_phrase}"
            )

        key = storage_key(media_kind, user_id, content_type)
        try:
            await self.storage.put(key, response.content, content_type)
        except (ClientError, BotoCoreError) as e:
            raise UploadFailed(media_kind, e) from e

        logger.info("Uploaded media", media_kind=media_kind, key=key, size=len(response.content))
        return MediaFile(
            url=self.storage.public_url(key),
            content_type=content_type,
            media_kind=media_kind,
            size=len(response.content),
            duration=descriptor.duration,
            dimensions=descriptor.dimensions,
        )
