from typing import List, Optional
from datetime import date, datetime, time, timedelta
from sqlmodel import Session, select, desc
from domain.models.analytics import AnalyticsEvent, DailyKpi

class AnalyticsRepository:
    def __init__(self, session: Session):
        self.session = session

    def add_event(self, event: AnalyticsEvent) -> AnalyticsEvent:
        self.session.add(event)
        self.session.commit()
        self.session.refresh(event)
        return event

    def find_events_on(self, target_date: date) -> List[AnalyticsEvent]:
        start = datetime.combine(target_date, time.min)
        end = start + timedelta(days=1)
        query = select(AnalyticsEvent).where(
            AnalyticsEvent.created_at >= start, AnalyticsEvent.created_at < end
        )
        return self.session.exec(query).all()

    def get_kpi(self, target_date: date) -> Optional[DailyKpi]:
        return self.session.get(DailyKpi, target_date)

    def save_kpi(self, kpi: DailyKpi) -> DailyKpi:
        self.session.add(kpi)
        self.session.commit()
        self.session.refresh(kpi)
        return kpi

    def find_recent_kpi(self, days: int = 7) -> List[DailyKpi]:
        return self.session.exec(select(DailyKpi).order_by(desc(DailyKpi.date)).limit(days)).all()
