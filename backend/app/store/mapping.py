from typing import Any, Dict, Optional

from app.store.types import PromptEntry, Lineage, FolderEntry, HistoryEntry, AppNotification

def row_to_prompt(row: Dict[str, Any], profile: Optional[Dict[str, Any]] = None) -> PromptEntry:
    """prompts の行 (+ 作成者の profiles 行) をストアのエントリに変換する"""
    parent_id = row.get("parent_id")
    return PromptEntry(
        id=row["id"],
        title=row["title"],
        content=row["content"],
        tags=tuple(row.get("tags") or ()),
        phase=row.get("phase") or "Implementation",
        visibility=row.get("visibility") or "Private",
        notes=row.get("notes") or "",
        rating=row.get("rating"),
        like_count=row.get("like_count") or 0,
        use_count=row.get("use_count") or 0,
        is_pinned=bool(row.get("is_pinned")),
        lineage=Lineage(is_original=parent_id is None, parent=parent_id),
        author_id=row["user_id"],
        author_name=(profile or {}).get("display_name") or "",
        author_avatar_url=(profile or {}).get("avatar_url") or None,
        folder_id=row.get("folder_id"),
        last_used_at=row.get("last_used_at"),
        updated_at=row.get("updated_at"),
    )

def row_to_folder(row: Dict[str, Any]) -> FolderEntry:
    return FolderEntry(
        id=row["id"],
        name=row["name"],
        color=row.get("color") or "#6366f1",
        sort_order=row.get("sort_order") or 0,
    )

def row_to_history(row: Dict[str, Any]) -> HistoryEntry:
    return HistoryEntry(timestamp=row["created_at"], title=row["title"], content=row["content"])

def row_to_notification(row: Dict[str, Any]) -> AppNotification:
    return AppNotification(
        id=row["id"],
        type=row["type"],
        prompt_id=row.get("prompt_id"),
        prompt_title=row.get("prompt_title") or "",
        actor_name=row.get("actor_name") or "",
        timestamp=row["created_at"],
        read=bool(row.get("read")),
    )
