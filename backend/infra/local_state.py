import json
import os
import threading
from typing import Any, Dict, Optional
from utils.logger import get_logger

logger = get_logger(__name__)

class LocalState:
    """
    ブラウザの localStorage / sessionStorage 相当のキーバリューストア。
    path を渡すと JSON ファイルに永続化し、None ならメモリ上だけで保持する。
    読み込みに失敗した場合は空の状態から始める。
    """

    def __init__(self, path: Optional[str] = None):
        self.path = path
        self._lock = threading.Lock()
        self._data: Dict[str, Any] = self._load()

    def _load(self) -> Dict[str, Any]:
        if not self.path or not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            if isinstance(data, dict):
                return data
            logger.warning(f"Ignoring malformed local state in {self.path}")
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to read local state {self.path}: {e}")
        return {}

    def _flush(self):
        if not self.path:
            return
        try:
            os.makedirs(os.path.dirname(os.path.abspath(self.path)), exist_ok=True)
            tmp_path = f"{self.path}.tmp"
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(self._data, f, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except OSError as e:
            # 保存に失敗してもメモリ上の値は保持する
            logger.warning(f"Failed to write local state {self.path}: {e}")

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._data.get(key, default)

    def set(self, key: str, value: Any):
        with self._lock:
            self._data[key] = value
            self._flush()

    def remove(self, key: str):
        with self._lock:
            if key in self._data:
                del self._data[key]
                self._flush()

    def keys(self):
        with self._lock:
            return list(self._data.keys())

    def clear(self):
        with self._lock:
            self._data = {}
            self._flush()
