import uuid
from datetime import datetime
from typing import List, Optional, Sequence
from pydantic import BaseModel, Field, ValidationError

from domain.constants import CHAINS_KEY
from infra.local_state import LocalState
from app.store.types import PromptEntry
from utils.logger import get_logger

logger = get_logger(__name__)

CHAIN_SEPARATOR = "\n\n---\n\n"

class ChainItem(BaseModel):
    prompt_id: str
    note: str = ""

class SavedChain(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = "新しいチェイン"
    items: List[ChainItem] = []
    created_at: datetime = Field(default_factory=datetime.now)

def compose_chain(chain: SavedChain, prompts: Sequence[PromptEntry]) -> str:
    """チェインのプロンプトを順番に連結する。見つからないものは飛ばす"""
    by_id = {p.id: p for p in prompts}
    texts = [
        f"## {by_id[item.prompt_id].title}\n\n{by_id[item.prompt_id].content}"
        for item in chain.items
        if item.prompt_id in by_id
    ]
    return CHAIN_SEPARATOR.join(texts)

class ChainStore:
    """プロンプトチェインをローカルに保存する"""

    def __init__(self, local_state: LocalState):
        self.local_state = local_state

    def list(self) -> List[SavedChain]:
        raw = self.local_state.get(CHAINS_KEY) or []
        try:
            return [SavedChain.model_validate(c) for c in raw]
        except (ValidationError, TypeError) as e:
            logger.warning(f"Discarding malformed chains: {e}")
            return []

    def _write(self, chains: List[SavedChain]):
        self.local_state.set(CHAINS_KEY, [c.model_dump(mode="json") for c in chains])

    def get(self, chain_id: str) -> Optional[SavedChain]:
        return next((c for c in self.list() if c.id == chain_id), None)

    def save(self, chain: SavedChain) -> SavedChain:
        # 保存したチェインは先頭に来る
        chains = [chain] + [c for c in self.list() if c.id != chain.id]
        self._write(chains)
        return chain

    def delete(self, chain_id: str) -> bool:
        chains = self.list()
        remaining = [c for c in chains if c.id != chain_id]
        if len(remaining) == len(chains):
            return False
        self._write(remaining)
        return True

    def add_item(self, chain_id: str, prompt_id: str, note: str = "") -> Optional[SavedChain]:
        chain = self.get(chain_id)
        if not chain:
            return None
        if any(i.prompt_id == prompt_id for i in chain.items):
            return chain
        chain.items.append(ChainItem(prompt_id=prompt_id, note=note))
        return self.save(chain)

    def remove_item(self, chain_id: str, index: int) -> Optional[SavedChain]:
        chain = self.get(chain_id)
        if not chain or not 0 <= index < len(chain.items):
            return chain
        del chain.items[index]
        return self.save(chain)

    def move_item(self, chain_id: str, index: int, direction: int) -> Optional[SavedChain]:
        chain = self.get(chain_id)
        if not chain:
            return None
        target = index + direction
        if not (0 <= index < len(chain.items) and 0 <= target < len(chain.items)):
            return chain
        chain.items[index], chain.items[target] = chain.items[target], chain.items[index]
        return self.save(chain)
