from typing import Any, Dict, List, Optional
from datetime import date, datetime
from sqlmodel import Session

from config import settings
from domain.constants import VISIBILITY_PUBLIC
from infra.repositories.relation_repository import RelationRepository, to_row
from infra.repositories.prompt_repository import PromptRepository
from infra.repositories.profile_repository import ProfileRepository
from app.services.prompt_app_service import (
    PromptAppService, MissingProfileError, PinLimitError, BOOKKEEPING_COLUMNS,
)
from app.services.notification_app_service import NotificationAppService
from app.services.feedback_app_service import FeedbackAppService
from app.services.analytics_app_service import AnalyticsAppService

# user_id 列で所有者を持つテーブル
OWNED_RELATIONS = ("prompts", "favorites", "likes", "folders", "notifications")
# 本人の行しか読めないテーブル
PRIVATE_RELATIONS = ("favorites", "likes", "folders", "notifications")
# 管理者しか書き込めないテーブル (feedback / contacts は作成のみ誰でも可)
ADMIN_RELATIONS = ("changelog", "feature_flags", "daily_kpi")
ADMIN_MANAGED_RELATIONS = ("feedback", "contacts", "feedback_likes")
# 管理者しか読めないテーブル
ADMIN_READ_RELATIONS = ("contacts", "analytics_events", "daily_kpi")

class RelationAppService:
    """
    テーブル名ベースの CRUD と RPC を提供する。
    行レベルのアクセス制御と、いいね数の再集計・通知作成などの書き込み後処理もここで行う。
    """

    def __init__(self, session: Session, viewer_id: Optional[str] = None):
        self.session = session
        self.viewer_id = viewer_id
        self.repository = RelationRepository(session)
        self.prompt_repository = PromptRepository(session)
        self.profile_repository = ProfileRepository(session)
        self.prompt_service = PromptAppService(session)
        self.notification_service = NotificationAppService(session)

    # --- Policies ---

    def _require_owner(self, relation: str, values: Dict[str, Any]):
        if relation == "notifications":
            raise PermissionError("Notifications are created by the server")
        if relation not in OWNED_RELATIONS:
            return
        if not self.viewer_id or values.get("user_id") != self.viewer_id:
            raise PermissionError(f"Cannot write {relation} rows for another user")

    def _is_admin(self) -> bool:
        return self.viewer_id is not None and self.viewer_id in settings.ADMIN_USER_IDS

    def _require_admin(self, relation: str, creating: bool = False):
        if relation in ADMIN_RELATIONS or (relation in ADMIN_MANAGED_RELATIONS and not creating):
            if not self._is_admin():
                raise PermissionError(f"Admin privileges required for {relation}")

    def _scope_eq(self, relation: str, eq: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        eq = dict(eq or {})
        if relation in OWNED_RELATIONS:
            if not self.viewer_id:
                raise PermissionError(f"Authentication required for {relation}")
            eq["user_id"] = self.viewer_id
        elif relation == "profiles":
            if not self.viewer_id:
                raise PermissionError("Authentication required for profiles")
            eq["id"] = self.viewer_id
        elif relation == "prompt_history":
            raise PermissionError("History rows are immutable")
        return eq

    def _require_read(self, relation: str, eq: Optional[Dict[str, Any]]):
        if self._is_admin():
            return
        if relation in ADMIN_READ_RELATIONS:
            raise PermissionError(f"Admin privileges required to read {relation}")
        # feedback_likes は自分のセッションの行だけ
        if relation == "feedback_likes" and not (eq or {}).get("session_id"):
            raise PermissionError("feedback_likes must be filtered by session_id")

    def _history_filter(self):
        """prompt_history の行を、親プロンプトが見えるかどうかで絞る"""
        cache: Dict[str, bool] = {}

        def visible(row: Dict[str, Any]) -> bool:
            prompt_id = row["prompt_id"]
            if prompt_id not in cache:
                cache[prompt_id] = self.prompt_service.get_visible_prompt(prompt_id, self.viewer_id) is not None
            return cache[prompt_id]

        return visible

    def _visible(self, relation: str, row: Dict[str, Any]) -> bool:
        if relation == "prompts":
            return row["visibility"] == VISIBILITY_PUBLIC or (
                self.viewer_id is not None and row["user_id"] == self.viewer_id
            )
        if relation in PRIVATE_RELATIONS:
            return self.viewer_id is not None and row["user_id"] == self.viewer_id
        return True

    # --- CRUD ---

    def select(self, relation: str, eq=None, neq=None, in_=None, any_of=None,
               order_by: Optional[str] = None, descending: bool = False,
               limit: Optional[int] = None) -> List[Dict[str, Any]]:
        self._require_read(relation, eq)
        rows = self.repository.select(relation, eq, neq, in_, any_of, order_by, descending, None)
        visible = [r for r in (to_row(o) for o in rows) if self._visible(relation, r)]
        if relation == "prompt_history":
            history_visible = self._history_filter()
            visible = [r for r in visible if history_visible(r)]
        return visible[:limit] if limit is not None else visible

    def insert(self, relation: str, values: Dict[str, Any]) -> Dict[str, Any]:
        self._require_owner(relation, values)
        self._require_admin(relation, creating=True)
        if relation == "prompts":
            # DB に FK が無いので、作成者のプロフィールが無ければここで弾く
            if not self.profile_repository.get_by_id(values["user_id"]):
                raise MissingProfileError(values["user_id"])
            if values.get("is_pinned"):
                self._check_pin_limit(values["user_id"])
        elif relation in ("favorites", "likes"):
            if not self.prompt_service.get_visible_prompt(values.get("prompt_id"), self.viewer_id):
                raise PermissionError(f"Prompt not found: {values.get('prompt_id')}")
        elif relation == "prompt_history":
            if not self.prompt_repository.get_owned(values.get("prompt_id"), self.viewer_id or ""):
                raise PermissionError(f"Cannot write history for prompt {values.get('prompt_id')}")

        row = to_row(self.repository.insert(relation, values))
        self._after_insert(relation, row)
        return row

    def update(self, relation: str, values: Dict[str, Any], eq: Dict[str, Any]) -> List[Dict[str, Any]]:
        self._require_admin(relation)
        eq = self._scope_eq(relation, eq)
        if relation == "prompts":
            values = dict(values)
            if values.get("is_pinned"):
                self._check_pin_limit(self.viewer_id, exclude=eq.get("id"))
            if set(values) - BOOKKEEPING_COLUMNS and "updated_at" not in values:
                values["updated_at"] = datetime.now()
        return [to_row(o) for o in self.repository.update(relation, values, eq)]

    def delete(self, relation: str, eq: Dict[str, Any]) -> List[Dict[str, Any]]:
        self._require_admin(relation)
        eq = self._scope_eq(relation, eq)
        if relation == "prompts":
            for row in self.repository.select(relation, eq=eq):
                self.prompt_service.delete_dependents(row.id)
        elif relation == "folders":
            for row in self.repository.select(relation, eq=eq):
                self.prompt_repository.detach_folder(row.id)

        deleted = self.repository.delete(relation, eq)
        if relation == "likes":
            for row in deleted:
                self.prompt_repository.recount_likes(row["prompt_id"])
        return deleted

    def upsert(self, relation: str, values: Dict[str, Any]) -> Dict[str, Any]:
        if relation == "profiles" and values.get("id") != self.viewer_id:
            raise PermissionError("Cannot write another user's profile")
        self._require_admin(relation)
        self._require_owner(relation, values)
        return to_row(self.repository.upsert(relation, values))

    # --- Triggers ---

    def _check_pin_limit(self, user_id: str, exclude: Optional[str] = None):
        count = self.prompt_repository.count_pinned(user_id)
        if exclude:
            current = self.prompt_repository.get_by_id(exclude)
            if current and current.is_pinned:
                return
        if count >= settings.PIN_LIMIT:
            raise PinLimitError(f"Pinned prompts are limited to {settings.PIN_LIMIT}")

    def _after_insert(self, relation: str, row: Dict[str, Any]):
        if relation == "likes":
            prompt = self.prompt_repository.recount_likes(row["prompt_id"])
            self.notification_service.notify("like", prompt, row["user_id"])
        elif relation == "favorites":
            prompt = self.prompt_repository.get_by_id(row["prompt_id"])
            self.notification_service.notify("favorite", prompt, row["user_id"])
        elif relation == "prompts" and row.get("parent_id"):
            parent = self.prompt_repository.get_by_id(row["parent_id"])
            self.notification_service.notify("fork", parent, row["user_id"])

    # --- RPC ---

    def rpc(self, name: str, params: Dict[str, Any]) -> Any:
        if name == "increment_use_count":
            if not self.prompt_service.get_visible_prompt(params["prompt_id"], self.viewer_id):
                raise PermissionError(f"Prompt not found: {params['prompt_id']}")
            return self.prompt_service.increment_use_count(params["prompt_id"])
        if name == "increment_feedback_like":
            return FeedbackAppService(self.session).increment_feedback_like(
                params["feedback_id"], params["session_id"]
            )
        if name == "aggregate_daily_kpi":
            target = params["target_date"]
            if isinstance(target, str):
                target = date.fromisoformat(target)
            return to_row(AnalyticsAppService(self.session).aggregate_daily_kpi(target))
        raise ValueError(f"Unknown rpc: {name}")
