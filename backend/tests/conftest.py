import os
import pytest
import sys
import tempfile
import uuid
from typing import Generator, List
from sqlmodel import Session

# 1. パス解決: backendディレクトリをsys.pathに追加
CURRENT_DIR = os.path.dirname(os.path.abspath(__file__))
BACKEND_DIR = os.path.dirname(CURRENT_DIR)
if BACKEND_DIR not in sys.path:
    sys.path.insert(0, BACKEND_DIR)

import infra.database.connection as db_connection
from infra.database.schema import init_raw_db
from infra.local_state import LocalState
from infra.storage.object_storage import LocalObjectStorage, object_storage
from utils.seeding import seed_initial_data
from models import Profile

@pytest.fixture(name="session", scope="function")
def session_fixture(mocker) -> Generator[Session, None, None]:
    """
    テストごとに完全に独立したDB環境（物理ファイル）を構築する。
    アプリ全体が参照する connection.engine をテスト用DBに差し替える。
    """

    # ユニークなDBファイルパスを生成
    unique_id = str(uuid.uuid4())
    test_db_path = os.path.join(tempfile.gettempdir(), f"myprompt_test_{unique_id}.duckdb")

    os.environ["DB_PATH"] = test_db_path
    engine = db_connection.configure(test_db_path)

    # 1. Raw SQLでテーブルとシーケンスを直接作成
    init_raw_db(engine)

    # 2. 新規DBとして Alembic の版をスタンプ
    db_connection.run_alembic(engine, stamp_only=True)

    # 3. アプリ起動/終了時のDB処理がテスト中に走らないようモック化
    mocker.patch("infra.database.connection.init_db")
    mocker.patch("infra.database.connection.close_db")

    # 4. 初期データ (フィーチャーフラグ, チェンジログ)
    with Session(engine) as s:
        seed_initial_data(s)

    with Session(engine) as session:
        yield session

    engine.dispose()
    if os.path.exists(test_db_path):
        try:
            os.remove(test_db_path)
        except OSError:
            pass

@pytest.fixture(name="client")
def client_fixture(session: Session) -> Generator:
    """FastAPIのTestClientを提供し、DBセッションをDIで差し替える"""
    from fastapi.testclient import TestClient
    from main import app
    from infra.database.connection import get_session

    def get_session_override():
        return session

    app.dependency_overrides[get_session] = get_session_override
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()

@pytest.fixture(name="storage_dir", autouse=True)
def storage_dir_fixture(tmp_path, mocker) -> str:
    """アップロード先をテスト用の一時ディレクトリに向ける"""
    root = str(tmp_path / "storage")
    mocker.patch.object(object_storage, "root_dir", root)
    mocker.patch.object(object_storage, "public_base_url", "http://testserver")
    return root

@pytest.fixture(name="storage")
def storage_fixture(storage_dir) -> LocalObjectStorage:
    return LocalObjectStorage(root_dir=storage_dir, public_base_url="http://testserver")

@pytest.fixture(name="gateway")
def gateway_fixture(session: Session, storage: LocalObjectStorage):
    from app.gateway import SqlGateway
    return SqlGateway(storage=storage)

@pytest.fixture(name="toasts")
def toasts_fixture() -> List[str]:
    return []

@pytest.fixture(name="make_store")
def make_store_fixture(gateway, toasts):
    """認証状態を指定して独立したストアを作る"""
    from app.store.prompt_store import PromptStore
    from app.store.onboarding import MilestoneTracker
    from app.store.types import AuthState

    def _make(user_id=None, status=None, **kwargs):
        if status is None:
            status = "authenticated" if user_id else "guest"
        auth = AuthState(status=status, user_id=user_id, display_name=user_id)
        kwargs.setdefault("session_state", LocalState())
        kwargs.setdefault("milestones", MilestoneTracker(LocalState()))
        return PromptStore(gateway, auth, toast=toasts.append, **kwargs)

    return _make

@pytest.fixture(name="add_profile")
def add_profile_fixture(session: Session):
    def _add(user_id: str, display_name: str = None) -> Profile:
        profile = Profile(id=user_id, display_name=display_name or user_id)
        session.add(profile)
        session.commit()
        session.refresh(profile)
        return profile
    return _add

def auth_headers(user_id: str, name: str = None) -> dict:
    headers = {"X-User-Id": user_id}
    if name:
        headers["X-User-Name"] = name
    return headers
