from sqlmodel import create_engine, Session
import os
import threading
from config import settings
from infra.database.schema import init_raw_db
from utils.logger import get_logger

logger = get_logger(__name__)

# DuckDB はプロセス内で同じファイルに対して1つのエンジンを共有する
CONNECT_ARGS = {'config': {'worker_threads': 4, 'access_mode': 'READ_WRITE'}}

db_lock = threading.RLock()

def build_engine(db_path: str):
    os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
    return create_engine(
        f"duckdb:///{db_path}",
        pool_size=5,
        max_overflow=10,
        connect_args=CONNECT_ARGS
    )

def configure(db_path: str):
    """
    モジュールレベルのエンジンを指定パスのDBに差し替える。
    SqlGateway やリポジトリは connection.engine を参照するので全体が追従する。
    """
    global engine, DB_PATH, DATABASE_URL
    DB_PATH = db_path
    DATABASE_URL = f"duckdb:///{db_path}"
    engine = build_engine(db_path)
    return engine

DB_PATH = settings.DB_PATH
DATABASE_URL = f"duckdb:///{DB_PATH}"
engine = build_engine(DB_PATH)

def get_alembic_config():
    from alembic.config import Config

    base_dir = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
    alembic_cfg = Config(os.path.join(base_dir, "alembic.ini"))
    alembic_cfg.set_main_option("script_location", os.path.join(base_dir, "alembic"))
    return alembic_cfg

def run_alembic(target_engine, stamp_only: bool):
    """新規DBは head をスタンプ、既存DBは head までアップグレードする"""
    from alembic import command

    alembic_cfg = get_alembic_config()
    # Alembic 側で別エンジンを作るとファイルロックで衝突するため接続を渡す
    with target_engine.begin() as conn:
        alembic_cfg.attributes["connection"] = conn
        if stamp_only:
            command.stamp(alembic_cfg, "head")
        else:
            command.upgrade(alembic_cfg, "head")

def init_db():
    """
    起動時のDB初期化。
    Raw SQL でシーケンスとテーブルを作成し、Alembic で版を合わせてから初期データを入れる。
    """
    from utils.seeding import seed_initial_data

    is_new_db = not os.path.exists(DB_PATH) or os.path.getsize(DB_PATH) == 0

    with db_lock:
        try:
            init_raw_db(engine)
            logger.info(f"Database ready at {DB_PATH} (new={is_new_db})")
            run_alembic(engine, stamp_only=is_new_db)
            with Session(engine) as session:
                seed_initial_data(session)
        except Exception as e:
            logger.error(f"Error during database initialization: {e}")
            raise

def close_db():
    engine.dispose()

def get_session():
    with Session(engine) as session:
        yield session
