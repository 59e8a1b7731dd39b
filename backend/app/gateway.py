import asyncio
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple
from sqlmodel import Session

from infra.database import connection
from infra.storage.object_storage import LocalObjectStorage, object_storage, validate_upload
from app.services.relation_app_service import RelationAppService
from utils.logger import get_logger

logger = get_logger(__name__)

class GatewayError(Exception):
    """リモート操作の失敗。operation には失敗した呼び出し名が入る"""

    def __init__(self, message: str, operation: str = ""):
        super().__init__(message)
        self.operation = operation

class RemoteGateway(ABC):
    """
    ストアから見たリモートデータの窓口。
    テーブル名ベースの CRUD、RPC、オブジェクトストレージへのアップロードを提供する。
    失敗はすべて GatewayError として返す。
    """

    user_id: Optional[str] = None

    def set_identity(self, user_id: Optional[str]):
        self.user_id = user_id

    @abstractmethod
    async def select(self, relation: str, *, eq: Optional[Dict[str, Any]] = None,
                     neq: Optional[Dict[str, Any]] = None,
                     in_: Optional[Dict[str, Sequence[Any]]] = None,
                     any_of: Optional[List[Tuple[str, Any]]] = None,
                     order_by: Optional[str] = None, descending: bool = False,
                     limit: Optional[int] = None) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    async def insert(self, relation: str, values: Dict[str, Any]) -> Dict[str, Any]:
        ...

    @abstractmethod
    async def update(self, relation: str, values: Dict[str, Any], *, eq: Dict[str, Any]) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    async def delete(self, relation: str, *, eq: Dict[str, Any]) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    async def upsert(self, relation: str, values: Dict[str, Any]) -> Dict[str, Any]:
        ...

    @abstractmethod
    async def rpc(self, name: str, **params) -> Any:
        ...

    @abstractmethod
    async def upload(self, bucket: str, path: str, data: bytes, content_type: str,
                     upsert: bool = False) -> str:
        ...

    @abstractmethod
    def get_public_url(self, bucket: str, path: str) -> str:
        ...

class SqlGateway(RemoteGateway):
    """
    同じプロセス内の DuckDB に対して RelationAppService を呼ぶゲートウェイ。
    DuckDB への書き込みは1本ずつにしたいので asyncio.Lock で直列化し、
    同期処理は executor 上で実行してイベントループを塞がない。
    """

    def __init__(self, engine=None, storage: Optional[LocalObjectStorage] = None):
        self._engine = engine
        self.storage = storage or object_storage
        self.user_id = None
        self._lock = asyncio.Lock()

    @property
    def engine(self):
        # テストで connection.engine が差し替えられても追従する
        return self._engine if self._engine is not None else connection.engine

    def _run_sync(self, fn: Callable[[RelationAppService], Any]) -> Any:
        with Session(self.engine) as session:
            return fn(RelationAppService(session, self.user_id))

    async def _call(self, operation: str, fn: Callable[[RelationAppService], Any]) -> Any:
        async with self._lock:
            loop = asyncio.get_running_loop()
            try:
                return await loop.run_in_executor(None, self._run_sync, fn)
            except Exception as e:
                logger.warning(f"Gateway {operation} failed: {e}")
                raise GatewayError(str(e), operation) from e

    async def select(self, relation, *, eq=None, neq=None, in_=None, any_of=None,
                     order_by=None, descending=False, limit=None):
        return await self._call(
            f"select {relation}",
            lambda svc: svc.select(relation, eq, neq, in_, any_of, order_by, descending, limit),
        )

    async def insert(self, relation, values):
        return await self._call(f"insert {relation}", lambda svc: svc.insert(relation, dict(values)))

    async def update(self, relation, values, *, eq):
        return await self._call(f"update {relation}", lambda svc: svc.update(relation, dict(values), eq))

    async def delete(self, relation, *, eq):
        return await self._call(f"delete {relation}", lambda svc: svc.delete(relation, eq))

    async def upsert(self, relation, values):
        return await self._call(f"upsert {relation}", lambda svc: svc.upsert(relation, dict(values)))

    async def rpc(self, name, **params):
        return await self._call(f"rpc {name}", lambda svc: svc.rpc(name, params))

    async def upload(self, bucket, path, data, content_type, upsert=False):
        # サイズと MIME はアップロード前に弾く
        try:
            validate_upload(data, content_type)
        except ValueError as e:
            raise GatewayError(str(e), f"upload {bucket}") from e

        async with self._lock:
            loop = asyncio.get_running_loop()
            try:
                return await loop.run_in_executor(
                    None, self.storage.upload, bucket, path, data, content_type, upsert
                )
            except Exception as e:
                logger.warning(f"Gateway upload {bucket}/{path} failed: {e}")
                raise GatewayError(str(e), f"upload {bucket}") from e

    def get_public_url(self, bucket, path):
        return self.storage.get_public_url(bucket, path)
