from typing import Iterable, Optional
from pydantic import BaseModel

from domain.services.import_export import (
    export_json, export_markdown, parse_import, coerce_entries,
)
from domain.services.quick_capture import build_quick_capture
from app.store.prompt_store import PromptStore
from app.store.types import PromptInput
from utils.logger import get_logger

logger = get_logger(__name__)

class BulkResult(BaseModel):
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0

    @property
    def total(self) -> int:
        return self.succeeded + self.failed + self.skipped

class BulkActions:
    """
    複数選択したプロンプトへの一括操作。
    トランザクションは張らないので、途中で失敗したものはそのまま残る。
    """

    def __init__(self, store: PromptStore):
        self.store = store

    def _selected(self, ids: Iterable[str]):
        wanted = set(ids)
        return [p for p in self.store.prompts if p.id in wanted]

    async def add_tag(self, ids: Iterable[str], tag: str) -> BulkResult:
        tag = tag.strip()
        result = BulkResult()
        if not tag:
            return result
        for prompt in self._selected(ids):
            if tag in prompt.tags:
                result.skipped += 1
                continue
            if await self.store.update_prompt(prompt.id, {"tags": list(prompt.tags) + [tag]}):
                result.succeeded += 1
            else:
                result.failed += 1
        return result

    async def delete(self, ids: Iterable[str]) -> BulkResult:
        result = BulkResult()
        # 1件ずつ順番に消す
        for prompt_id in list(ids):
            if await self.store.delete_prompt(prompt_id):
                result.succeeded += 1
            else:
                result.failed += 1
        if result.failed:
            logger.warning(f"Bulk delete: {result.failed} of {result.total} failed")
        return result

    async def move_to_folder(self, ids: Iterable[str], folder_id: Optional[str]) -> BulkResult:
        result = BulkResult()
        for prompt_id in list(ids):
            if await self.store.move_to_folder(prompt_id, folder_id):
                result.succeeded += 1
            else:
                result.failed += 1
        return result

    def export(self, ids: Iterable[str], fmt: str = "json") -> str:
        selected = self._selected(ids)
        if fmt == "json":
            return export_json(selected)
        if fmt in ("md", "markdown"):
            return export_markdown(selected)
        raise ValueError(f"Unknown export format: {fmt}")

async def import_prompts(store: PromptStore, raw: str) -> BulkResult:
    """
    エクスポートした JSON を取り込む。形式が不正なら ImportFormatError を投げ、何も作らない。
    """
    data = parse_import(raw)
    entries = coerce_entries(data)
    result = BulkResult(skipped=len(data["prompts"]) - len(entries))
    for entry in entries:
        if await store.add_prompt(PromptInput(**entry)):
            result.succeeded += 1
        else:
            result.failed += 1
    logger.info(f"Imported {result.succeeded} prompts ({result.failed} failed, {result.skipped} skipped)")
    return result

async def quick_capture(store: PromptStore, text: str) -> str:
    """1行メモから Private のプロンプトを作る。空のメモは何もしない"""
    try:
        data = build_quick_capture(text)
    except ValueError:
        return ""
    return await store.add_prompt(PromptInput(**data))
