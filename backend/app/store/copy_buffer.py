import time
from typing import Callable, List, Optional
from pydantic import BaseModel, ValidationError

from domain.constants import COPY_BUFFER_MAX, COPY_BUFFER_TTL_SEC
from infra.local_state import LocalState
from utils.logger import get_logger

logger = get_logger(__name__)

COPY_BUFFER_KEY = "myprompt-copy-buffer"

class BufferItem(BaseModel):
    id: str
    title: str
    content: str
    timestamp: float

class CopyBuffer:
    """
    直近にコピーしたプロンプト (最大3件、5分で消える)。
    同じ id を追加し直すと先頭に移動する。
    """

    def __init__(self, local_state: Optional[LocalState] = None, max_items: int = COPY_BUFFER_MAX,
                 ttl_sec: float = COPY_BUFFER_TTL_SEC, clock: Callable[[], float] = time.time):
        self.local_state = local_state
        self.max_items = max_items
        self.ttl_sec = ttl_sec
        self.clock = clock
        self._items: List[BufferItem] = self._load()

    def _load(self) -> List[BufferItem]:
        if self.local_state is None:
            return []
        try:
            return [BufferItem.model_validate(i) for i in self.local_state.get(COPY_BUFFER_KEY) or []]
        except (ValidationError, TypeError) as e:
            logger.warning(f"Discarding malformed copy buffer: {e}")
            return []

    def _save(self):
        if self.local_state is not None:
            self.local_state.set(COPY_BUFFER_KEY, [i.model_dump() for i in self._items])

    def _prune(self):
        now = self.clock()
        kept = [i for i in self._items if now - i.timestamp < self.ttl_sec]
        if len(kept) != len(self._items):
            self._items = kept
            self._save()

    def add(self, item_id: str, title: str, content: str):
        item = BufferItem(id=item_id, title=title, content=content, timestamp=self.clock())
        self._items = [item] + [i for i in self._items if i.id != item_id]
        self._items = self._items[:self.max_items]
        self._save()

    def items(self) -> List[BufferItem]:
        self._prune()
        return list(self._items)

    def remove(self, item_id: str):
        self._items = [i for i in self._items if i.id != item_id]
        self._save()

    def clear(self):
        self._items = []
        self._save()
