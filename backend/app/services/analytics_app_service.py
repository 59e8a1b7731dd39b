from collections import Counter
from datetime import date
from typing import Any, Dict, List, Optional
from sqlmodel import Session
from domain.constants import ANALYTICS_EVENTS
from domain.models.analytics import AnalyticsEvent, DailyKpi
from infra.repositories.analytics_repository import AnalyticsRepository
from utils.logger import get_logger

logger = get_logger(__name__)

# daily_kpi のカラム -> 集計対象のイベント名
KPI_EVENT_COLUMNS = {
    "new_signups": "sign_up",
    "prompts_created": "prompt_create",
    "copies_executed": "prompt_copy",
    "prompts_published": "prompt_publish",
    "likes_given": "prompt_like",
    "favorites_given": "prompt_favorite",
    "searches": "search_execute",
    "feedback_submitted": "feedback_submit",
}

class AnalyticsAppService:
    def __init__(self, session: Session):
        self.session = session
        self.repository = AnalyticsRepository(session)

    def record_event(self, event_name: str, session_id: str = "", user_id: Optional[str] = None,
                     metadata: Optional[Dict[str, Any]] = None) -> AnalyticsEvent:
        if event_name not in ANALYTICS_EVENTS:
            raise ValueError(f"Unknown analytics event: {event_name}")
        event = AnalyticsEvent(
            event_name=event_name,
            session_id=session_id,
            user_id=user_id,
            event_metadata=metadata or {},
        )
        return self.repository.add_event(event)

    def aggregate_daily_kpi(self, target_date: date) -> DailyKpi:
        """指定日のイベントを集計して daily_kpi を作成/更新する"""
        events = self.repository.find_events_on(target_date)
        counts = Counter(e.event_name for e in events)
        active = {e.user_id or e.session_id for e in events if e.user_id or e.session_id}

        kpi = self.repository.get_kpi(target_date) or DailyKpi(date=target_date)
        kpi.dau = len(active)
        for column, event_name in KPI_EVENT_COLUMNS.items():
            setattr(kpi, column, counts.get(event_name, 0))

        logger.info(f"Aggregated KPI for {target_date}: {len(events)} events, dau={kpi.dau}")
        return self.repository.save_kpi(kpi)

    def fetch_recent_kpi(self, days: int = 7) -> List[DailyKpi]:
        return self.repository.find_recent_kpi(days)
