from typing import Any, Dict, List, Optional, Sequence, Tuple, Type
from sqlalchemy import inspect as sa_inspect
from sqlmodel import Session, SQLModel, select, desc, or_

from models import (
    Prompt, PromptHistory, Favorite, Like, Folder, Profile, Notification,
    Feedback, FeedbackLike, Contact, ChangelogEntry, FeatureFlag, AnalyticsEvent, DailyKpi,
)

RELATIONS: Dict[str, Type[SQLModel]] = {
    "prompts": Prompt,
    "prompt_history": PromptHistory,
    "favorites": Favorite,
    "likes": Like,
    "folders": Folder,
    "profiles": Profile,
    "notifications": Notification,
    "feedback": Feedback,
    "feedback_likes": FeedbackLike,
    "contacts": Contact,
    "changelog": ChangelogEntry,
    "feature_flags": FeatureFlag,
    "analytics_events": AnalyticsEvent,
    "daily_kpi": DailyKpi,
}

class UnknownRelationError(ValueError):
    pass

def get_model(relation: str) -> Type[SQLModel]:
    model = RELATIONS.get(relation)
    if model is None:
        raise UnknownRelationError(f"Unknown relation: {relation}")
    return model

def column_map(model: Type[SQLModel]) -> Dict[str, str]:
    """カラム名 -> 属性名 (analytics_events.metadata のように両者が異なる場合がある)"""
    mapper = sa_inspect(model)
    return {prop.columns[0].name: prop.key for prop in mapper.column_attrs}

def to_row(obj: SQLModel) -> Dict[str, Any]:
    return {col: getattr(obj, attr) for col, attr in column_map(type(obj)).items()}

class RelationRepository:
    """
    テーブル名で行を操作する汎用リポジトリ。
    フィルタはカラム名ベースの等値/非等値/IN/OR のみをサポートする。
    """

    def __init__(self, session: Session):
        self.session = session

    def _column(self, model: Type[SQLModel], name: str):
        try:
            return model.__table__.c[name]
        except KeyError:
            raise UnknownRelationError(f"Unknown column: {model.__tablename__}.{name}")

    def _apply_filters(
        self,
        query,
        model: Type[SQLModel],
        eq: Optional[Dict[str, Any]] = None,
        neq: Optional[Dict[str, Any]] = None,
        in_: Optional[Dict[str, Sequence[Any]]] = None,
        any_of: Optional[List[Tuple[str, Any]]] = None,
    ):
        for name, value in (eq or {}).items():
            col = self._column(model, name)
            query = query.where(col.is_(None) if value is None else col == value)
        for name, value in (neq or {}).items():
            col = self._column(model, name)
            query = query.where(col.is_not(None) if value is None else col != value)
        for name, values in (in_ or {}).items():
            query = query.where(self._column(model, name).in_(list(values)))
        if any_of:
            query = query.where(or_(*[self._column(model, name) == value for name, value in any_of]))
        return query

    def select(
        self,
        relation: str,
        eq: Optional[Dict[str, Any]] = None,
        neq: Optional[Dict[str, Any]] = None,
        in_: Optional[Dict[str, Sequence[Any]]] = None,
        any_of: Optional[List[Tuple[str, Any]]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[SQLModel]:
        model = get_model(relation)
        query = self._apply_filters(select(model), model, eq, neq, in_, any_of)
        if order_by:
            col = self._column(model, order_by)
            query = query.order_by(desc(col) if descending else col)
        if limit is not None:
            query = query.limit(limit)
        return self.session.exec(query).all()

    def build(self, relation: str, values: Dict[str, Any]) -> SQLModel:
        model = get_model(relation)
        cols = column_map(model)
        unknown = set(values) - set(cols)
        if unknown:
            raise UnknownRelationError(f"Unknown column(s) for {relation}: {sorted(unknown)}")
        return model(**{cols[k]: v for k, v in values.items()})

    def insert(self, relation: str, values: Dict[str, Any]) -> SQLModel:
        obj = self.build(relation, values)
        self.session.add(obj)
        self.session.commit()
        self.session.refresh(obj)
        return obj

    def update(self, relation: str, values: Dict[str, Any], eq: Dict[str, Any]) -> List[SQLModel]:
        model = get_model(relation)
        cols = column_map(model)
        rows = self.select(relation, eq=eq)
        for row in rows:
            for k, v in values.items():
                if k not in cols:
                    raise UnknownRelationError(f"Unknown column: {relation}.{k}")
                setattr(row, cols[k], v)
            self.session.add(row)
        self.session.commit()
        for row in rows:
            self.session.refresh(row)
        return rows

    def delete(self, relation: str, eq: Dict[str, Any]) -> List[Dict[str, Any]]:
        """削除した行の (削除前の) 値を返す"""
        rows = self.select(relation, eq=eq)
        deleted = [to_row(row) for row in rows]
        for row in rows:
            self.session.delete(row)
        self.session.commit()
        return deleted

    def upsert(self, relation: str, values: Dict[str, Any]) -> SQLModel:
        model = get_model(relation)
        cols = column_map(model)
        pk_cols = [c.name for c in model.__table__.primary_key.columns]
        if all(values.get(pk) is not None for pk in pk_cols):
            key = tuple(values[pk] for pk in pk_cols)
            existing = self.session.get(model, key[0] if len(key) == 1 else key)
            if existing:
                for k, v in values.items():
                    setattr(existing, cols[k], v)
                self.session.add(existing)
                self.session.commit()
                self.session.refresh(existing)
                return existing
        return self.insert(relation, values)
