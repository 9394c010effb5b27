import base64
import hashlib
import logging
import secrets
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Optional

from jose import JWTError, jwt
from sqlalchemy.orm import Session

from notes_api.config import Settings
from notes_api.models.blob import Blob
from notes_api.utils.clock import utcnow
from notes_api.utils.exceptions import (
    InvalidParameterError, InvalidTokenError, NotFoundError, TokenExpiredError,
)

logger = logging.getLogger(__name__)


def compute_checksum(data: bytes) -> str:
    """Base64-encoded MD5 digest, the format browsers send as Content-MD5."""
    return base64.b64encode(hashlib.md5(data).digest()).decode("ascii")


# ─── Disk Backend ─────────────────────────────────────────────────────────────
class LocalDiskStorage:
    """Stores blob bytes under `root`, fanned out by the first characters of the key."""

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def path_for(self, key: str) -> Path:
        return self.root / key[:2] / key[2:4] / key

    def upload(self, key: str, data: bytes) -> None:
        path = self.path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    def exists(self, key: str) -> bool:
        return self.path_for(key).is_file()

    def delete(self, key: str) -> None:
        self.path_for(key).unlink(missing_ok=True)


# ─── Blob Service ─────────────────────────────────────────────────────────────
class BlobService:
    """
    Direct-upload flow: the client registers file metadata, receives a short-lived
    upload URL, PUTs the bytes there, then attaches the blob to a note by signed id.
    """

    def __init__(
        self,
        storage: LocalDiskStorage,
        secret_key: str,
        algorithm: str = "HS256",
        upload_ttl: timedelta = timedelta(minutes=5),
        public_base_url: str = "http://localhost:8000",
        api_prefix: str = "",
        cdn_host: Optional[str] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.storage = storage
        self._secret_key = secret_key
        self.algorithm = algorithm
        self.upload_ttl = upload_ttl
        self.base_url = public_base_url.rstrip("/") + api_prefix
        self.cdn_host = cdn_host
        self.clock = clock

    @classmethod
    def from_settings(cls, settings: Settings) -> "BlobService":
        return cls(
            storage=LocalDiskStorage(settings.STORAGE_ROOT),
            secret_key=settings.SECRET_KEY,
            algorithm=settings.ALGORITHM,
            upload_ttl=timedelta(minutes=settings.DIRECT_UPLOAD_EXPIRE_MINUTES),
            public_base_url=settings.PUBLIC_BASE_URL,
            api_prefix=settings.API_PREFIX,
            cdn_host=settings.CDN_HOST,
        )

    # ─── Signed ids ───────────────────────────────────────────────────────────
    def signed_id(self, blob: Blob) -> str:
        return jwt.encode({"blob_id": blob.id, "type": "blob"}, self._secret_key, algorithm=self.algorithm)

    def find_signed(self, db: Session, signed_id: str) -> Optional[Blob]:
        """Resolve a signed id; tampered or unknown ids resolve to None."""
        try:
            payload = jwt.decode(signed_id, self._secret_key, algorithms=[self.algorithm])
        except JWTError:
            return None
        if payload.get("type") != "blob" or not isinstance(payload.get("blob_id"), int):
            return None
        return db.get(Blob, payload["blob_id"])

    # ─── Direct uploads ───────────────────────────────────────────────────────
    def create_before_direct_upload(
        self, db: Session, filename: str, byte_size: int, checksum: str, content_type: str,
    ) -> Blob:
        blob = Blob(
            key=secrets.token_hex(14),
            filename=filename,
            byte_size=byte_size,
            checksum=checksum,
            content_type=content_type,
            uploaded=False,
        )
        db.add(blob)
        db.commit()
        db.refresh(blob)
        logger.info(f"Registered blob id={blob.id} ({content_type}, {byte_size} bytes)")
        return blob

    def direct_upload_url(self, blob: Blob) -> str:
        expire = self.clock() + self.upload_ttl
        token = jwt.encode(
            {"blob_id": blob.id, "type": "upload", "exp": int(expire.timestamp())},
            self._secret_key,
            algorithm=self.algorithm,
        )
        return f"{self.base_url}/direct_uploads/{token}"

    def direct_upload_headers(self, blob: Blob) -> dict:
        return {"Content-Type": blob.content_type, "Content-MD5": blob.checksum}

    def find_upload_target(self, db: Session, token: str) -> Blob:
        """Resolve a direct-upload token to the blob it was issued for."""
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[self.algorithm],
                                 options={"verify_exp": False})
        except JWTError:
            raise InvalidTokenError()
        if payload.get("type") != "upload" or not isinstance(payload.get("blob_id"), int):
            raise InvalidTokenError()
        exp = payload.get("exp")
        if not isinstance(exp, (int, float)) or int(self.clock().timestamp()) > exp:
            raise TokenExpiredError()

        blob = db.get(Blob, payload["blob_id"])
        if not blob:
            raise NotFoundError("Blob")
        return blob

    def accept_upload(self, db: Session, blob: Blob, data: bytes) -> Blob:
        """Store bytes PUT to a direct-upload URL after checking size and checksum."""
        if len(data) != blob.byte_size:
            raise InvalidParameterError("Uploaded size does not match the declared byte_size")
        if compute_checksum(data) != blob.checksum:
            raise InvalidParameterError("Uploaded content does not match the declared checksum")

        self.storage.upload(blob.key, data)
        blob.uploaded = True
        db.commit()
        logger.info(f"Stored blob id={blob.id} key={blob.key}")
        return blob

    # ─── Serving / purging ────────────────────────────────────────────────────
    def url_for(self, blob: Blob) -> str:
        if self.cdn_host:
            return f"https://{self.cdn_host}/{blob.key}"
        return f"{self.base_url}/blobs/{self.signed_id(blob)}"

    def path_for(self, blob: Blob) -> Path:
        return self.storage.path_for(blob.key)

    def delete_files(self, keys: list[str]) -> None:
        for key in keys:
            self.storage.delete(key)

