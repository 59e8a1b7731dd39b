from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Union
import uuid

from domain.constants import (
    PHASES, PHASE_ALL, VISIBILITIES, VISIBILITY_FILTER_ALL, VISIBILITY_PUBLIC, VISIBILITY_PRIVATE,
    VIEWS, SORT_ORDERS, PIN_LIMIT, RECENTLY_USED_LIMIT,
)
from domain.services.prompt_filter import FilterState, filter_prompts
from infra.local_state import LocalState
from app.gateway import GatewayError, RemoteGateway
from app.services.profile_app_service import default_display_name
from app.store.background import BackgroundTasks
from app.store.mapping import row_to_prompt, row_to_folder, row_to_history, row_to_notification
from app.store.mutation import Mutation
from app.store.onboarding import MilestoneTracker
from app.store.tracker import AnalyticsTracker
from app.store.types import (
    AuthState, PromptEntry, PromptInput, Lineage, FolderEntry, HistoryEntry, AppNotification,
)
from utils.logger import get_logger

logger = get_logger(__name__)

# セッションに保存するフィルタのキー
SESSION_KEYS = {
    "view": "mp-view",
    "visibility_filter": "mp-vf",
    "search_query": "mp-sq",
    "current_phase": "mp-phase",
    "sort_order": "mp-sort",
}

# update_prompt で受け付けるフィールド (prompts のカラム名への対応)
UPDATE_COLUMNS = {
    "title": "title",
    "content": "content",
    "tags": "tags",
    "phase": "phase",
    "visibility": "visibility",
    "notes": "notes",
    "rating": "rating",
    "is_pinned": "is_pinned",
    "folder_id": "folder_id",
}

NOTIFICATION_FETCH_LIMIT = 50

Toast = Callable[[str], None]
StoreHook = Callable[["PromptStore"], None]

class PromptStore:
    """
    プロンプト・お気に入り・いいね・フォルダ・通知と、フィルタ/選択/編集中の状態を持つクライアント側ストア。
    書き込みはすべて楽観的更新 -> 保存 -> (失敗時) ロールバックの順で行う。
    ゲストは increment_use_count 以外の書き込みができない。
    """

    def __init__(
        self,
        gateway: RemoteGateway,
        auth: AuthState,
        session_state: Optional[LocalState] = None,
        milestones: Optional[MilestoneTracker] = None,
        tracker: Optional[AnalyticsTracker] = None,
        toast: Optional[Toast] = None,
        on_hydrated: Optional[StoreHook] = None,
        on_prompts_changed: Optional[StoreHook] = None,
        pin_limit: int = PIN_LIMIT,
    ):
        self.gateway = gateway
        self.session_state = session_state or LocalState()
        self.milestones = milestones
        self.tracker = tracker
        self._toast = toast
        self.on_hydrated = on_hydrated
        self.on_prompts_changed = on_prompts_changed
        self.pin_limit = pin_limit
        self.tasks = BackgroundTasks()

        self._auth = auth
        self.gateway.set_identity(auth.user_id if auth.is_authenticated else None)

        self._prompts: List[PromptEntry] = []
        self._favorites: List[str] = []
        self._likes: List[str] = []
        self._folders: List[FolderEntry] = []
        self._notifications: List[AppNotification] = []
        self._filters = self._restore_filters()

        self.selected_prompt_id: Optional[str] = None
        self.editing_prompt: Optional[PromptEntry] = None
        self.hydrated = False
        self._generation = 0
        self._closed = False

    # --- Auth ---

    @property
    def auth(self) -> AuthState:
        return self._auth

    @property
    def user_id(self) -> str:
        return (self._auth.user_id or "") if self._auth.is_authenticated else ""

    @property
    def is_authenticated(self) -> bool:
        return self._auth.is_authenticated

    def set_auth(self, auth: AuthState):
        """
        認証状態を切り替える。進行中のハイドレーションは破棄され、状態は空になる。
        続けて hydrate() を呼ぶこと。
        """
        self._generation += 1
        self._auth = auth
        self.gateway.set_identity(auth.user_id if auth.is_authenticated else None)
        self._prompts = []
        self._favorites = []
        self._likes = []
        self._folders = []
        self._notifications = []
        self.selected_prompt_id = None
        self.editing_prompt = None
        self.hydrated = False

    # --- Read access (常にコピーを返す) ---

    @property
    def prompts(self) -> List[PromptEntry]:
        return list(self._prompts)

    @property
    def favorites(self) -> List[str]:
        return list(self._favorites)

    @property
    def likes(self) -> List[str]:
        return list(self._likes)

    @property
    def folders(self) -> List[FolderEntry]:
        return list(self._folders)

    @property
    def notifications(self) -> List[AppNotification]:
        return list(self._notifications)

    @property
    def unread_count(self) -> int:
        return sum(1 for n in self._notifications if not n.read)

    def get_prompt(self, prompt_id: str) -> Optional[PromptEntry]:
        return next((p for p in self._prompts if p.id == prompt_id), None)

    def is_favorited(self, prompt_id: str) -> bool:
        return prompt_id in self._favorites

    def is_liked(self, prompt_id: str) -> bool:
        return prompt_id in self._likes

    def get_arrangements(self, prompt_id: str) -> List[PromptEntry]:
        return [p for p in self._prompts if p.lineage.parent == prompt_id]

    def get_filtered_prompts(self) -> List[PromptEntry]:
        return filter_prompts(self._prompts, self._filters, self.user_id, self._favorites)

    def get_recently_used(self) -> List[PromptEntry]:
        used = [p for p in self._prompts if p.last_used_at and p.author_id == self.user_id]
        used.sort(key=lambda p: p.last_used_at, reverse=True)
        return used[:RECENTLY_USED_LIMIT]

    def pinned_count(self) -> int:
        return sum(1 for p in self._prompts if p.is_pinned and p.author_id == self.user_id)

    # --- Filters ---

    def _restore_filters(self) -> FilterState:
        restored = {}
        allowed = {
            "view": VIEWS,
            "visibility_filter": VISIBILITIES + (VISIBILITY_FILTER_ALL,),
            "current_phase": PHASES + (PHASE_ALL,),
            "sort_order": SORT_ORDERS,
        }
        for field, key in SESSION_KEYS.items():
            value = self.session_state.get(key)
            if not isinstance(value, str):
                continue
            if field in allowed and value not in allowed[field]:
                continue
            restored[field] = value
        return FilterState(**restored)

    def _set_filter(self, field: str, value: Any):
        self._filters = self._filters.model_copy(update={field: value})
        if field in SESSION_KEYS:
            self.session_state.set(SESSION_KEYS[field], value)

    @property
    def filter_state(self) -> FilterState:
        return self._filters

    @property
    def view(self) -> str:
        return self._filters.view

    @property
    def current_phase(self) -> str:
        return self._filters.current_phase

    @property
    def visibility_filter(self) -> str:
        return self._filters.visibility_filter

    @property
    def search_query(self) -> str:
        return self._filters.search_query

    @property
    def sort_order(self) -> str:
        return self._filters.sort_order

    @property
    def selected_folder_id(self) -> Optional[str]:
        return self._filters.selected_folder_id

    def set_view(self, view: str):
        if view not in VIEWS:
            raise ValueError(f"Unknown view: {view}")
        self._set_filter("view", view)

    def set_current_phase(self, phase: str):
        if phase not in PHASES and phase != PHASE_ALL:
            raise ValueError(f"Unknown phase: {phase}")
        self._set_filter("current_phase", phase)

    def set_visibility_filter(self, value: str):
        if value not in VISIBILITIES and value != VISIBILITY_FILTER_ALL:
            raise ValueError(f"Unknown visibility filter: {value}")
        self._set_filter("visibility_filter", value)

    def set_sort_order(self, order: str):
        if order not in SORT_ORDERS:
            raise ValueError(f"Unknown sort order: {order}")
        self._set_filter("sort_order", order)

    def set_search_query(self, query: str):
        self._set_filter("search_query", query)
        if query.strip():
            self._track("search_execute", {"query": query.strip()})
            self._mark("search")

    def set_selected_folder_id(self, folder_id: Optional[str]):
        self._set_filter("selected_folder_id", folder_id)

    def set_selected_prompt_id(self, prompt_id: Optional[str]):
        self.selected_prompt_id = prompt_id

    # --- Side channels ---

    def _notify(self, message: str):
        if self._toast:
            self._toast(message)

    def _track(self, event_name: str, metadata: Optional[Dict[str, Any]] = None):
        if self.tracker:
            self.tracker.track(event_name, metadata)

    def _mark(self, milestone_id: str):
        if self.milestones:
            self.milestones.mark(milestone_id)

    def _prompts_changed(self):
        if self.on_prompts_changed:
            self.on_prompts_changed(self)
        # 何も選択されていなければ先頭を選ぶ
        if self.hydrated and self._prompts and self.selected_prompt_id is None:
            self.selected_prompt_id = self._prompts[0].id

    def _replace_prompt(self, prompt_id: str, **changes) -> Optional[PromptEntry]:
        for i, p in enumerate(self._prompts):
            if p.id == prompt_id:
                self._prompts[i] = p.model_copy(update=changes)
                return self._prompts[i]
        return None

    def _restore_prompt(self, prompt: PromptEntry):
        for i, p in enumerate(self._prompts):
            if p.id == prompt.id:
                self._prompts[i] = prompt
                return

    # --- Hydration ---

    async def hydrate(self) -> bool:
        """
        プロンプト -> お気に入り -> いいね -> フォルダ -> 通知の順に読み込む。
        途中で set_auth() / close() された場合は何も書き込まずに False を返す。
        """
        if self._auth.status == "loading" or self._closed:
            return False
        self._generation += 1
        generation = self._generation

        def cancelled() -> bool:
            return self._closed or generation != self._generation

        prompts = await self._fetch_prompts()
        if cancelled():
            return False
        if prompts is not None:
            self._prompts = prompts

        for relation in ("favorites", "likes"):
            ids = await self._fetch_prompt_ids(relation)
            if cancelled():
                return False
            if ids is not None:
                setattr(self, f"_{relation}", ids)

        folders = await self._fetch_folders()
        if cancelled():
            return False
        if folders is not None:
            self._folders = folders

        notifications = await self._fetch_notifications()
        if cancelled():
            return False
        if notifications is not None:
            self._notifications = notifications

        self.hydrated = True
        logger.info(f"Store hydrated: {len(self._prompts)} prompts ({self._auth.status})")
        if self.on_hydrated:
            self.on_hydrated(self)
        self._prompts_changed()
        return True

    async def _fetch_profiles(self, user_ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        ids = sorted(set(user_ids))
        if not ids:
            return {}
        rows = await self.gateway.select("profiles", in_={"id": ids})
        return {r["id"]: r for r in rows}

    async def _fetch_prompts(self) -> Optional[List[PromptEntry]]:
        try:
            if self.is_authenticated:
                rows = await self.gateway.select(
                    "prompts",
                    any_of=[("user_id", self.user_id), ("visibility", VISIBILITY_PUBLIC)],
                    order_by="updated_at", descending=True,
                )
            else:
                rows = await self.gateway.select(
                    "prompts", eq={"visibility": VISIBILITY_PUBLIC},
                    order_by="updated_at", descending=True,
                )
            profiles = await self._fetch_profiles(r["user_id"] for r in rows)
            return [row_to_prompt(r, profiles.get(r["user_id"])) for r in rows]
        except GatewayError as e:
            # 取得に失敗したら今の一覧を残す
            logger.warning(f"Failed to fetch prompts: {e}")
            return None
        except Exception as e:
            logger.exception(f"Unexpected error while loading prompts: {e}")
            return None

    async def _fetch_prompt_ids(self, relation: str) -> Optional[List[str]]:
        if not self.is_authenticated:
            return []
        try:
            rows = await self.gateway.select(relation, eq={"user_id": self.user_id}, order_by="created_at")
        except GatewayError as e:
            logger.warning(f"Failed to fetch {relation}: {e}")
            return None
        return [r["prompt_id"] for r in rows if r.get("prompt_id")]

    async def _fetch_folders(self) -> Optional[List[FolderEntry]]:
        if not self.is_authenticated:
            return []
        try:
            rows = await self.gateway.select("folders", eq={"user_id": self.user_id}, order_by="sort_order")
        except GatewayError as e:
            logger.warning(f"Failed to fetch folders: {e}")
            return None
        return [row_to_folder(r) for r in rows]

    async def _fetch_notifications(self) -> Optional[List[AppNotification]]:
        if not self.is_authenticated:
            return []
        try:
            rows = await self.gateway.select(
                "notifications", eq={"user_id": self.user_id},
                order_by="created_at", descending=True, limit=NOTIFICATION_FETCH_LIMIT,
            )
        except GatewayError as e:
            logger.warning(f"Failed to fetch notifications: {e}")
            return None
        return [row_to_notification(r) for r in rows]

    async def refresh_prompts(self):
        """一覧を取り直して丸ごと置き換える (マージはしない)"""
        if self._auth.status == "loading":
            return
        generation = self._generation
        prompts = await self._fetch_prompts()
        if prompts is None or generation != self._generation or self._closed:
            return
        self._prompts = prompts
        self._prompts_changed()

    async def refresh_notifications(self):
        generation = self._generation
        notifications = await self._fetch_notifications()
        if notifications is None or generation != self._generation or self._closed:
            return
        self._notifications = notifications

    # --- Prompts ---

    async def _ensure_profile(self) -> bool:
        existing = await self.gateway.select("profiles", eq={"id": self.user_id})
        if existing:
            return True
        await self.gateway.upsert("profiles", {
            "id": self.user_id,
            "display_name": default_display_name(self._auth.display_name, self._auth.email),
            "avatar_url": self._auth.avatar_url or "",
        })
        return True

    async def _write_history(self, prompt_id: str, title: str, content: str):
        try:
            await self.gateway.insert("prompt_history", {"prompt_id": prompt_id, "title": title, "content": content})
        except GatewayError as e:
            logger.warning(f"prompt_history insert failed: {e}")

    async def add_prompt(self, data: Union[PromptInput, Dict[str, Any]]) -> str:
        """
        先に保存してから一覧に追加する。作成者のプロフィールが無くて失敗した場合は
        プロフィールを作り直して1回だけ再試行する。失敗/ゲストは "" を返す。
        """
        if not self.is_authenticated:
            self._notify("ログインが必要です")
            return ""
        if isinstance(data, dict):
            data = PromptInput.model_validate(data)

        payload = {
            "user_id": self.user_id,
            "title": data.title,
            "content": data.content,
            "tags": list(data.tags),
            "phase": data.phase,
            "visibility": data.visibility,
            "notes": data.notes or None,
            "parent_id": data.lineage.parent,
        }

        try:
            row = await self.gateway.insert("prompts", payload)
        except GatewayError as e:
            logger.warning(f"add_prompt first attempt failed: {e}")
            try:
                await self._ensure_profile()
            except GatewayError as profile_error:
                logger.error(f"Profile self-healing failed: {profile_error}")
                self._notify("ユーザープロファイルの修復に失敗しました")
                return ""
            try:
                row = await self.gateway.insert("prompts", payload)
            except GatewayError as retry_error:
                logger.error(f"add_prompt retry failed: {retry_error}")
                self._notify("保存に失敗しました。もう一度お試しください")
                return ""

        try:
            profiles = await self._fetch_profiles([self.user_id])
        except GatewayError as e:
            logger.warning(f"Failed to load author profile: {e}")
            profiles = {}
        prompt = row_to_prompt(row, profiles.get(self.user_id))

        self._prompts.insert(0, prompt)
        self.selected_prompt_id = prompt.id
        self._prompts_changed()

        await self._write_history(prompt.id, prompt.title, prompt.content)

        self._track("prompt_create", {"prompt_id": prompt.id, "visibility": data.visibility, "phase": data.phase})
        self._mark("create")
        if data.visibility == VISIBILITY_PUBLIC:
            self._track("prompt_publish", {"prompt_id": prompt.id})
            self._mark("publish")
        return prompt.id

    def begin_update_prompt(self, prompt_id: str, updates: Dict[str, Any]) -> Optional[Mutation]:
        previous = self.get_prompt(prompt_id)
        if previous is None:
            return None
        unknown = set(updates) - set(UPDATE_COLUMNS)
        if unknown:
            raise ValueError(f"Cannot update fields: {sorted(unknown)}")

        changes = dict(updates)
        if "tags" in changes:
            changes["tags"] = tuple(changes["tags"])
        applied = self._replace_prompt(prompt_id, updated_at=datetime.now(), **changes)

        db_updates = {UPDATE_COLUMNS[k]: v for k, v in updates.items()}
        if "tags" in db_updates:
            db_updates["tags"] = list(db_updates["tags"])
        if "notes" in db_updates:
            db_updates["notes"] = db_updates["notes"] or None

        async def commit():
            rows = await self.gateway.update("prompts", db_updates, eq={"id": prompt_id, "user_id": self.user_id})
            if not rows:
                raise GatewayError(f"Prompt {prompt_id} not found or not owned", "update prompts")
            return rows[0]

        return Mutation(applied, commit, lambda: self._restore_prompt(previous), "update_prompt")

    async def update_prompt(self, prompt_id: str, updates: Dict[str, Any]) -> bool:
        if not self.is_authenticated:
            return False
        previous = self.get_prompt(prompt_id)
        if previous is None or previous.author_id != self.user_id:
            return False
        unknown = set(updates) - set(UPDATE_COLUMNS)
        if unknown:
            logger.warning(f"update_prompt ignored unknown fields: {sorted(unknown)}")
            return False
        if updates.get("is_pinned") and not previous.is_pinned and self.pinned_count() >= self.pin_limit:
            self._notify(f"ピン留めは最大{self.pin_limit}件までです")
            return False

        mutation = self.begin_update_prompt(prompt_id, updates)
        self._prompts_changed()
        result = await mutation.commit()
        if not result.ok:
            mutation.rollback()
            self._prompts_changed()
            self._notify("更新の保存に失敗しました")
            return False

        if "title" in updates or "content" in updates:
            await self._write_history(
                prompt_id,
                updates.get("title", previous.title),
                updates.get("content", previous.content),
            )
        self._track("prompt_edit", {"prompt_id": prompt_id})
        if updates.get("visibility") == VISIBILITY_PUBLIC and previous.visibility != VISIBILITY_PUBLIC:
            self._track("prompt_publish", {"prompt_id": prompt_id})
            self._mark("publish")
        return True

    def begin_delete_prompt(self, prompt_id: str) -> Optional[Mutation]:
        prompt = self.get_prompt(prompt_id)
        if prompt is None:
            return None
        index = self._prompts.index(prompt)
        was_favorite = prompt_id in self._favorites
        was_liked = prompt_id in self._likes

        self._prompts = [p for p in self._prompts if p.id != prompt_id]
        self._favorites = [f for f in self._favorites if f != prompt_id]
        self._likes = [l for l in self._likes if l != prompt_id]
        if self.selected_prompt_id == prompt_id:
            self.selected_prompt_id = None

        def rollback():
            if self.get_prompt(prompt_id) is None:
                self._prompts.insert(min(index, len(self._prompts)), prompt)
            if was_favorite and prompt_id not in self._favorites:
                self._favorites.append(prompt_id)
            if was_liked and prompt_id not in self._likes:
                self._likes.append(prompt_id)

        async def commit():
            rows = await self.gateway.delete("prompts", eq={"id": prompt_id, "user_id": self.user_id})
            if not rows:
                raise GatewayError(f"Prompt {prompt_id} not found or not owned", "delete prompts")
            return rows

        return Mutation(prompt, commit, rollback, "delete_prompt")

    async def delete_prompt(self, prompt_id: str) -> bool:
        if not self.is_authenticated:
            return False
        prompt = self.get_prompt(prompt_id)
        if prompt is None or prompt.author_id != self.user_id:
            return False

        mutation = self.begin_delete_prompt(prompt_id)
        self._prompts_changed()
        result = await mutation.commit()
        if not result.ok:
            mutation.rollback()
            self._prompts_changed()
            self._notify("削除に失敗しました。プロンプトを復元しました")
            return False

        self._notify("削除しました")
        self._track("prompt_delete", {"prompt_id": prompt_id})
        return True

    async def fork_prompt(self, prompt_id: str) -> str:
        """別のプロンプトを元にアレンジを作る (Private、lineage.parent に元の id)"""
        source = self.get_prompt(prompt_id)
        if source is None or not self.is_authenticated:
            return ""
        return await self.add_prompt(PromptInput(
            title=f"{source.title} (アレンジ)",
            content=source.content,
            tags=source.tags,
            phase=source.phase,
            visibility=VISIBILITY_PRIVATE,
            notes=source.notes,
            lineage=Lineage(is_original=False, parent=source.id),
        ))

    async def get_history(self, prompt_id: str) -> List[HistoryEntry]:
        if not self.is_authenticated:
            return []
        try:
            rows = await self.gateway.select("prompt_history", eq={"prompt_id": prompt_id}, order_by="created_at")
        except GatewayError as e:
            logger.warning(f"Failed to fetch history for {prompt_id}: {e}")
            return []
        return [row_to_history(r) for r in rows]

    async def restore_version(self, prompt_id: str, entry: HistoryEntry) -> bool:
        return await self.update_prompt(prompt_id, {"title": entry.title, "content": entry.content})

    # --- Engagement ---

    def begin_toggle_favorite(self, prompt_id: str) -> Mutation:
        was_favorite = prompt_id in self._favorites
        if was_favorite:
            self._favorites = [f for f in self._favorites if f != prompt_id]
        else:
            self._favorites = self._favorites + [prompt_id]

        def rollback():
            if was_favorite:
                if prompt_id not in self._favorites:
                    self._favorites.append(prompt_id)
            else:
                self._favorites = [f for f in self._favorites if f != prompt_id]

        async def commit():
            if was_favorite:
                return await self.gateway.delete("favorites", eq={"user_id": self.user_id, "prompt_id": prompt_id})
            return await self.gateway.insert("favorites", {"user_id": self.user_id, "prompt_id": prompt_id})

        return Mutation(not was_favorite, commit, rollback, "toggle_favorite")

    async def toggle_favorite(self, prompt_id: str) -> bool:
        if not self.is_authenticated:
            logger.debug("toggle_favorite ignored for guest")
            return False
        mutation = self.begin_toggle_favorite(prompt_id)
        result = await mutation.commit()
        if not result.ok:
            mutation.rollback()
            self._notify("お気に入りの追加に失敗しました" if mutation.applied else "お気に入りの解除に失敗しました")
            return False
        if mutation.applied:
            self._track("prompt_favorite", {"prompt_id": prompt_id})
            self._mark("favorite")
        return True

    def begin_toggle_like(self, prompt_id: str) -> Mutation:
        was_liked = prompt_id in self._likes
        delta = -1 if was_liked else 1
        if was_liked:
            self._likes = [l for l in self._likes if l != prompt_id]
        else:
            self._likes = self._likes + [prompt_id]
        prompt = self.get_prompt(prompt_id)
        if prompt:
            self._replace_prompt(prompt_id, like_count=max(prompt.like_count + delta, 0))

        def rollback():
            if was_liked:
                if prompt_id not in self._likes:
                    self._likes.append(prompt_id)
            else:
                self._likes = [l for l in self._likes if l != prompt_id]
            current = self.get_prompt(prompt_id)
            if current and prompt:
                self._replace_prompt(prompt_id, like_count=prompt.like_count)

        async def commit():
            if was_liked:
                return await self.gateway.delete("likes", eq={"user_id": self.user_id, "prompt_id": prompt_id})
            return await self.gateway.insert("likes", {"user_id": self.user_id, "prompt_id": prompt_id})

        return Mutation(not was_liked, commit, rollback, "toggle_like")

    async def toggle_like(self, prompt_id: str) -> bool:
        if not self.is_authenticated:
            return False
        mutation = self.begin_toggle_like(prompt_id)
        self._prompts_changed()
        result = await mutation.commit()
        if not result.ok:
            mutation.rollback()
            self._prompts_changed()
            self._notify("いいねに失敗しました" if mutation.applied else "いいねの解除に失敗しました")
            return False
        if mutation.applied:
            self._track("prompt_like", {"prompt_id": prompt_id})
            self._mark("like")
        return True

    async def toggle_pin(self, prompt_id: str) -> bool:
        """
        自分のプロンプトのピン留めを切り替える。上限を超える場合はトーストだけ出して何もしない。
        """
        if not self.is_authenticated:
            return False
        prompt = self.get_prompt(prompt_id)
        if prompt is None or prompt.author_id != self.user_id:
            return False
        pinned = not prompt.is_pinned
        if pinned and self.pinned_count() >= self.pin_limit:
            self._notify(f"ピン留めは最大{self.pin_limit}件までです")
            return False

        self._replace_prompt(prompt_id, is_pinned=pinned)
        self._prompts_changed()

        async def commit():
            rows = await self.gateway.update(
                "prompts", {"is_pinned": pinned}, eq={"id": prompt_id, "user_id": self.user_id}
            )
            if not rows:
                raise GatewayError(f"Prompt {prompt_id} not found or not owned", "update prompts")
            return rows

        mutation = Mutation(pinned, commit, lambda: self._replace_prompt(prompt_id, is_pinned=not pinned), "toggle_pin")
        result = await mutation.commit()
        if not result.ok:
            mutation.rollback()
            self._prompts_changed()
            self._notify("ピン留めの更新に失敗しました")
            return False
        return True

    def increment_use_count(self, prompt_id: str):
        """
        コピー時に呼ぶ。ローカルの use_count / last_used_at を更新し、
        リモートへの反映は結果を待たない (失敗してもロールバックしない)。
        """
        prompt = self.get_prompt(prompt_id)
        if prompt:
            self._replace_prompt(prompt_id, use_count=prompt.use_count + 1, last_used_at=datetime.now())
            self._prompts_changed()
        if self.is_authenticated:
            self.tasks.spawn(self.gateway.rpc("increment_use_count", prompt_id=prompt_id), "increment_use_count")
        self._track("prompt_copy", {"prompt_id": prompt_id})
        self._mark("copy")

    # --- Folders ---

    async def add_folder(self, name: str, color: str = "#6366f1") -> str:
        """一時 id で先に追加し、保存できたらサーバーの id に差し替える"""
        if not self.is_authenticated:
            return ""
        temp_id = f"temp-{uuid.uuid4()}"
        folder = FolderEntry(id=temp_id, name=name, color=color, sort_order=len(self._folders))
        self._folders.append(folder)

        async def commit():
            return await self.gateway.insert("folders", {
                "user_id": self.user_id,
                "name": name,
                "color": color,
                "sort_order": folder.sort_order,
            })

        mutation = Mutation(folder, commit, lambda: self._drop_folder(temp_id), "add_folder")
        result = await mutation.commit()
        if not result.ok:
            mutation.rollback()
            self._notify("フォルダの作成に失敗しました")
            return ""

        saved = row_to_folder(result.data)
        self._folders = [saved if f.id == temp_id else f for f in self._folders]
        if self.selected_folder_id == temp_id:
            self.set_selected_folder_id(saved.id)
        for p in self._prompts:
            if p.folder_id == temp_id:
                self._replace_prompt(p.id, folder_id=saved.id)
        return saved.id

    def _drop_folder(self, folder_id: str):
        self._folders = [f for f in self._folders if f.id != folder_id]

    async def delete_folder(self, folder_id: str) -> bool:
        if not self.is_authenticated:
            return False
        folder = next((f for f in self._folders if f.id == folder_id), None)
        if folder is None:
            return False
        index = self._folders.index(folder)
        members = [p.id for p in self._prompts if p.folder_id == folder_id]
        was_selected = self.selected_folder_id == folder_id

        self._drop_folder(folder_id)
        for prompt_id in members:
            self._replace_prompt(prompt_id, folder_id=None)
        if was_selected:
            self.set_selected_folder_id(None)
        self._prompts_changed()

        def rollback():
            self._folders.insert(min(index, len(self._folders)), folder)
            for prompt_id in members:
                self._replace_prompt(prompt_id, folder_id=folder_id)
            if was_selected:
                self.set_selected_folder_id(folder_id)

        async def commit():
            rows = await self.gateway.delete("folders", eq={"id": folder_id, "user_id": self.user_id})
            if not rows:
                raise GatewayError(f"Folder {folder_id} not found or not owned", "delete folders")
            return rows

        mutation = Mutation(folder, commit, rollback, "delete_folder")
        result = await mutation.commit()
        if not result.ok:
            mutation.rollback()
            self._prompts_changed()
            self._notify("フォルダの削除に失敗しました")
            return False
        return True

    async def move_to_folder(self, prompt_id: str, folder_id: Optional[str]) -> bool:
        """フォルダの付け替え。失敗しても元に戻さず、ログとトーストだけ出す"""
        if not self.is_authenticated:
            return False
        if self._replace_prompt(prompt_id, folder_id=folder_id) is None:
            return False
        self._prompts_changed()

        async def commit():
            rows = await self.gateway.update(
                "prompts", {"folder_id": folder_id}, eq={"id": prompt_id, "user_id": self.user_id}
            )
            if not rows:
                raise GatewayError(f"Prompt {prompt_id} not found or not owned", "update prompts")
            return rows

        result = await Mutation(folder_id, commit, label="move_to_folder").commit()
        if not result.ok:
            self._notify("フォルダ移動に失敗しました")
            return False
        return True

    # --- Notifications ---

    async def mark_all_notifications_read(self) -> bool:
        if not self.is_authenticated or not self._notifications:
            return False
        previous = list(self._notifications)
        self._notifications = [n.model_copy(update={"read": True}) for n in self._notifications]

        def rollback():
            self._notifications = previous

        async def commit():
            return await self.gateway.update(
                "notifications", {"read": True}, eq={"user_id": self.user_id, "read": False}
            )

        mutation = Mutation(True, commit, rollback, "mark_all_notifications_read")
        result = await mutation.commit()
        if not result.ok:
            mutation.rollback()
            return False
        return True

    # --- Editor ---

    def open_editor(self, prompt: Optional[PromptEntry] = None):
        if prompt is not None:
            self.editing_prompt = prompt
            return
        phase = "Implementation" if self.current_phase == PHASE_ALL else self.current_phase
        self.editing_prompt = PromptEntry(
            id="",
            title="",
            content="",
            phase=phase,
            visibility=VISIBILITY_PUBLIC,
            author_id=self.user_id,
        )

    def close_editor(self):
        self.editing_prompt = None

    async def save_editor(self, draft: PromptEntry) -> str:
        """id が空なら新規作成、あればそのプロンプトを更新する。成功時は id を返す"""
        if not draft.id:
            prompt_id = await self.add_prompt(PromptInput(
                title=draft.title,
                content=draft.content,
                tags=draft.tags,
                phase=draft.phase,
                visibility=draft.visibility,
                notes=draft.notes,
                lineage=draft.lineage,
            ))
        else:
            ok = await self.update_prompt(draft.id, {
                "title": draft.title,
                "content": draft.content,
                "tags": draft.tags,
                "phase": draft.phase,
                "visibility": draft.visibility,
                "notes": draft.notes,
            })
            prompt_id = draft.id if ok else ""
        if prompt_id:
            self.close_editor()
        return prompt_id

    # --- Lifecycle ---

    async def drain(self):
        """結果を待たずに投げた処理 (use_count, analytics) が終わるまで待つ"""
        await self.tasks.drain()
        if self.tracker:
            await self.tracker.drain()

    async def close(self):
        self._closed = True
        self._generation += 1
        await self.tasks.cancel_all()
        if self.tracker:
            await self.tracker.tasks.cancel_all()
