import unicodedata
from typing import Iterable, List, Optional, Sequence, TypeVar
from pydantic import BaseModel

from domain.constants import (
    PHASE_ALL, VISIBILITY_FILTER_ALL, VISIBILITY_PUBLIC, VIEW_LIBRARY, VIEW_TREND,
)

T = TypeVar("T")

class FilterState(BaseModel):
    view: str = VIEW_LIBRARY
    current_phase: str = PHASE_ALL
    visibility_filter: str = VISIBILITY_FILTER_ALL
    selected_folder_id: Optional[str] = None
    search_query: str = ""
    sort_order: str = "updated"

def title_sort_key(title: str) -> str:
    # 全角/半角・大文字/小文字の差を吸収したキー
    return unicodedata.normalize("NFKC", title).casefold()

def matches_search(prompt, query: str) -> bool:
    q = query.strip()
    if not q:
        return True
    if q.startswith("#"):
        tag_name = q[1:].lower()
        return any(t.lower() == tag_name for t in prompt.tags)
    lower = q.lower()
    return (
        lower in prompt.title.lower()
        or lower in prompt.content.lower()
        or any(lower in t.lower() for t in prompt.tags)
    )

def sort_prompts(prompts: List[T], sort_order: str) -> List[T]:
    # sorted は安定ソートなので同値のものは元の (updated_at 降順の) 並びを保つ
    if sort_order == "useCount":
        return sorted(prompts, key=lambda p: p.use_count or 0, reverse=True)
    if sort_order == "likes":
        return sorted(prompts, key=lambda p: p.like_count or 0, reverse=True)
    if sort_order == "title":
        return sorted(prompts, key=lambda p: title_sort_key(p.title))
    return list(prompts)

def pin_first(prompts: Iterable[T]) -> List[T]:
    prompts = list(prompts)
    return [p for p in prompts if p.is_pinned] + [p for p in prompts if not p.is_pinned]

def filter_prompts(
    prompts: Sequence[T],
    state: FilterState,
    viewer_id: str = "",
    favorites: Iterable[str] = (),
) -> List[T]:
    """
    表示用のプロンプト一覧を作る純粋関数。
    view -> phase -> visibility -> folder -> search -> sort -> pin の順に適用する。
    """
    favorite_ids = set(favorites)
    result = list(prompts)

    if state.view == VIEW_LIBRARY:
        result = [p for p in result if (viewer_id and p.author_id == viewer_id) or p.id in favorite_ids]
    elif state.view == VIEW_TREND:
        # トレンドには自分の Private も含めない
        result = [p for p in result if p.visibility == VISIBILITY_PUBLIC]

    if state.current_phase != PHASE_ALL:
        result = [p for p in result if p.phase == state.current_phase]

    if state.visibility_filter != VISIBILITY_FILTER_ALL:
        result = [p for p in result if p.visibility == state.visibility_filter]

    if state.selected_folder_id:
        result = [p for p in result if p.folder_id == state.selected_folder_id]

    if state.search_query.strip():
        result = [p for p in result if matches_search(p, state.search_query)]

    result = sort_prompts(result, state.sort_order)
    return pin_first(result)
