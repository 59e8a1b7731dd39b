from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar
from pydantic import BaseModel

from app.gateway import GatewayError
from utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

class CommitResult(BaseModel):
    ok: bool
    error: Optional[str] = None
    data: Any = None

class Mutation(Generic[T]):
    """
    楽観的更新 1 回分。
    applied はローカルに反映済みの値、commit() でリモートに保存し、
    失敗時は rollback() で反映前の状態に戻す (rollback が無い操作もある)。
    """

    def __init__(self, applied: T, commit: Callable[[], Awaitable[Any]],
                 rollback: Optional[Callable[[], None]] = None, label: str = ""):
        self.applied = applied
        self._commit = commit
        self._rollback = rollback
        self.label = label
        self.rolled_back = False

    @property
    def has_rollback(self) -> bool:
        return self._rollback is not None

    async def commit(self) -> CommitResult:
        try:
            data = await self._commit()
        except GatewayError as e:
            logger.warning(f"{self.label or 'mutation'} failed: {e}")
            return CommitResult(ok=False, error=str(e))
        except Exception as e:
            logger.exception(f"Unexpected error in {self.label or 'mutation'}: {e}")
            return CommitResult(ok=False, error=str(e))
        return CommitResult(ok=True, data=data)

    def rollback(self):
        if self._rollback is None or self.rolled_back:
            return
        self._rollback()
        self.rolled_back = True
