import os
from typing import Optional
from urllib.parse import quote
from config import settings
from utils.logger import get_logger

logger = get_logger(__name__)

CONTENT_TYPE_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}

class StorageValidationError(ValueError):
    pass

def validate_upload(data: bytes, content_type: str,
                    max_bytes: Optional[int] = None, allowed_types: Optional[list] = None):
    """
    アップロード前のクライアント側チェック (サイズ上限と MIME の許可リスト)
    """
    max_bytes = max_bytes or settings.UPLOAD_MAX_BYTES
    allowed_types = allowed_types or settings.UPLOAD_ALLOWED_TYPES
    if content_type not in allowed_types:
        raise StorageValidationError("JPEG, PNG, WebP, GIF のみアップロードできます")
    if len(data) > max_bytes:
        raise StorageValidationError(f"ファイルサイズは{max_bytes // (1024 * 1024)}MB以下にしてください")

def extension_for(content_type: str) -> str:
    return CONTENT_TYPE_EXTENSIONS.get(content_type, "bin")

class LocalObjectStorage:
    """
    バケット/パス単位でファイルを保存するローカルのオブジェクトストレージ。
    公開URLは PUBLIC_BASE_URL/storage/<bucket>/<path> の形になる。
    """

    def __init__(self, root_dir: Optional[str] = None, public_base_url: Optional[str] = None):
        self.root_dir = root_dir or settings.STORAGE_DIR
        self.public_base_url = (public_base_url or settings.PUBLIC_BASE_URL).rstrip("/")

    def _resolve(self, bucket: str, path: str) -> str:
        base = os.path.abspath(os.path.join(self.root_dir, bucket))
        full = os.path.abspath(os.path.join(base, path))
        if not full.startswith(base + os.sep):
            raise StorageValidationError(f"Invalid object path: {path}")
        return full

    def upload(self, bucket: str, path: str, data: bytes, content_type: str, upsert: bool = False) -> str:
        validate_upload(data, content_type)
        full = self._resolve(bucket, path)
        if os.path.exists(full) and not upsert:
            raise FileExistsError(f"Object already exists: {bucket}/{path}")

        os.makedirs(os.path.dirname(full), exist_ok=True)
        with open(full, "wb") as f:
            f.write(data)
        logger.info(f"Stored object {bucket}/{path} ({len(data)} bytes)")
        return path

    def download(self, bucket: str, path: str) -> bytes:
        with open(self._resolve(bucket, path), "rb") as f:
            return f.read()

    def remove(self, bucket: str, path: str) -> bool:
        full = self._resolve(bucket, path)
        if not os.path.exists(full):
            return False
        os.remove(full)
        return True

    def get_public_url(self, bucket: str, path: str) -> str:
        return f"{self.public_base_url}/storage/{quote(bucket)}/{quote(path)}"

object_storage = LocalObjectStorage()
