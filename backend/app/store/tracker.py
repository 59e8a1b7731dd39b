import uuid
from typing import Any, Dict, Optional

from domain.constants import ANALYTICS_EVENTS
from infra.local_state import LocalState
from app.gateway import RemoteGateway
from app.store.background import BackgroundTasks
from utils.logger import get_logger

logger = get_logger(__name__)

SESSION_ID_KEY = "mp_session_id"

class AnalyticsTracker:
    """
    analytics_events への書き込み。呼び出し側は結果を待たず、失敗しても UX を止めない。
    session_id はセッションストレージ相当の LocalState に1つだけ発行する。
    """

    def __init__(self, gateway: RemoteGateway, session_state: Optional[LocalState] = None):
        self.gateway = gateway
        self.session_state = session_state or LocalState()
        self.tasks = BackgroundTasks()

    @property
    def session_id(self) -> str:
        sid = self.session_state.get(SESSION_ID_KEY)
        if not sid:
            sid = str(uuid.uuid4())
            self.session_state.set(SESSION_ID_KEY, sid)
        return sid

    def track(self, event_name: str, metadata: Optional[Dict[str, Any]] = None):
        if event_name not in ANALYTICS_EVENTS:
            logger.warning(f"Ignoring unknown analytics event: {event_name}")
            return
        payload = {
            "event_name": event_name,
            "session_id": self.session_id,
            "user_id": self.gateway.user_id,
            "metadata": metadata or {},
        }
        self.tasks.spawn(self.gateway.insert("analytics_events", payload), f"track {event_name}")

    async def drain(self):
        await self.tasks.drain()
