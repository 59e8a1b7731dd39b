from typing import Any, Dict, Tuple
from sqlmodel import Session

from domain.services.import_export import (
    export_json, export_markdown, export_filename, parse_import, coerce_entries,
)
from infra.repositories.prompt_repository import PromptRepository
from app.services.prompt_app_service import PromptAppService
from utils.logger import get_logger

logger = get_logger(__name__)

EXPORT_MEDIA_TYPES = {
    "json": "application/json",
    "md": "text/markdown",
}

class TransferAppService:
    """プロンプトのエクスポート (JSON / Markdown) とインポート"""

    def __init__(self, session: Session):
        self.session = session
        self.repository = PromptRepository(session)
        self.prompt_service = PromptAppService(session)

    def export_prompts(self, user_id: str, fmt: str = "json") -> Tuple[str, str, str]:
        """自分のプロンプトを書き出す。(本文, MIME, ファイル名) を返す"""
        if fmt not in EXPORT_MEDIA_TYPES:
            raise ValueError(f"Unknown export format: {fmt}")
        prompts = [p for p in self.repository.find_visible(user_id) if p.user_id == user_id]
        content = export_json(prompts) if fmt == "json" else export_markdown(prompts)
        return content, EXPORT_MEDIA_TYPES[fmt], export_filename(fmt)

    def import_prompts(self, user_id: str, raw: str) -> Dict[str, Any]:
        """
        形式チェックは最初にまとめて行い、不正なら ImportFormatError (1件も作らない)。
        その後は1件ずつ作成し、作れなかったものはスキップとして数える。
        """
        data = parse_import(raw)
        entries = coerce_entries(data)
        imported = 0
        failed = 0
        for entry in entries:
            try:
                self.prompt_service.create_prompt(user_id, entry)
                imported += 1
            except Exception as e:
                logger.warning(f"Failed to import prompt '{entry['title']}': {e}")
                self.session.rollback()
                failed += 1

        skipped = len(data["prompts"]) - len(entries)
        logger.info(f"Imported {imported} prompts for {user_id} (skipped={skipped}, failed={failed})")
        return {"imported": imported, "skipped": skipped, "failed": failed}
