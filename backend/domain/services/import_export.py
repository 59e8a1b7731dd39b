import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from domain.constants import PHASES, DEFAULT_PHASE, VISIBILITY_PUBLIC, VISIBILITY_PRIVATE

EXPORT_VERSION = 1

class ImportFormatError(ValueError):
    pass

def _iso_timestamp(now: datetime) -> str:
    # 2026-10-19T12:34:56.789Z 形式
    utc = now.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"

def export_filename(ext: str, now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"myprompt-export-{now.astimezone(timezone.utc).strftime('%Y-%m-%d')}.{ext}"

def build_export_data(prompts: Sequence[Any], now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or datetime.now(timezone.utc)
    return {
        "version": EXPORT_VERSION,
        "exportedAt": _iso_timestamp(now),
        "prompts": [
            {
                "title": p.title,
                "content": p.content,
                "tags": list(p.tags),
                "phase": p.phase,
                "visibility": p.visibility,
            }
            for p in prompts
        ],
    }

def export_json(prompts: Sequence[Any], now: Optional[datetime] = None) -> str:
    return json.dumps(build_export_data(prompts, now), ensure_ascii=False, indent=2)

def export_markdown(prompts: Sequence[Any], now: Optional[datetime] = None) -> str:
    now = (now or datetime.now(timezone.utc)).astimezone()
    sections = []
    for p in prompts:
        tag_str = f"\nTags: {' '.join('#' + t for t in p.tags)}" if p.tags else ""
        sections.append(f"## {p.title}\n\n{p.content}{tag_str}\n\n---\n")

    header = (
        "# MyPrompt エクスポート\n\n"
        f"エクスポート日: {now.year}/{now.month}/{now.day}\n"
        f"プロンプト数: {len(prompts)}\n\n---\n\n"
    )
    return header + "\n".join(sections)

def parse_import(raw: str) -> Dict[str, Any]:
    """
    インポートファイルの検証。version が真値で prompts が配列のものだけ受け付ける。
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        raise ImportFormatError("JSONの解析に失敗しました")

    if not isinstance(data, dict) or not data.get("version") or not isinstance(data.get("prompts"), list):
        raise ImportFormatError("無効なファイル形式です")
    return data

def coerce_phase(value: Any) -> str:
    return value if value in PHASES else DEFAULT_PHASE

def coerce_visibility(value: Any) -> str:
    return VISIBILITY_PUBLIC if value == VISIBILITY_PUBLIC else VISIBILITY_PRIVATE

def coerce_entry(entry: Any) -> Optional[Dict[str, Any]]:
    """1件分を正規化する。title/content が文字列でなければ None (スキップ)"""
    if not isinstance(entry, dict):
        return None
    title = entry.get("title")
    content = entry.get("content")
    if not isinstance(title, str) or not isinstance(content, str):
        return None
    if not title.strip() or not content.strip():
        return None

    tags = entry.get("tags")
    if not isinstance(tags, list):
        tags = []
    return {
        "title": title,
        "content": content,
        "tags": [t for t in tags if isinstance(t, str)],
        "phase": coerce_phase(entry.get("phase")),
        "visibility": coerce_visibility(entry.get("visibility")),
    }

def coerce_entries(data: Dict[str, Any]) -> List[Dict[str, Any]]:
    return [e for e in (coerce_entry(item) for item in data["prompts"]) if e is not None]
