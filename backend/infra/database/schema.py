from sqlalchemy import text
from sqlalchemy.engine import Engine
from utils.logger import get_logger

logger = get_logger(__name__)

# 現在のスキーマバージョン
CURRENT_SCHEMA_VERSION = 1

def get_db_schema_sql() -> str:
    """
    DuckDBの制約回避：
    DuckDBでは外部キー(FK)が設定されているテーブルの更新(UPDATE)が失敗しやすいため、
    物理的な FOREIGN KEY 句を削除し、インデックスと主キーのみで構成します。
    参照整合性 (プロフィール必須, いいね数の再集計など) はアプリケーション層で担保します。
    """
    return """
    CREATE SEQUENCE IF NOT EXISTS seq_prompt_history_id START 1;
    CREATE SEQUENCE IF NOT EXISTS seq_notifications_id START 1;
    CREATE SEQUENCE IF NOT EXISTS seq_analytics_events_id START 1;

    CREATE TABLE IF NOT EXISTS profiles (
        id VARCHAR PRIMARY KEY,
        display_name VARCHAR,
        avatar_url VARCHAR,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    );

    CREATE TABLE IF NOT EXISTS prompts (
        id VARCHAR PRIMARY KEY,
        user_id VARCHAR NOT NULL,
        title VARCHAR NOT NULL,
        content VARCHAR NOT NULL,
        notes VARCHAR,
        tags JSON,
        phase VARCHAR DEFAULT 'Implementation',
        visibility VARCHAR DEFAULT 'Private',
        like_count INTEGER DEFAULT 0,
        use_count INTEGER DEFAULT 0,
        is_pinned BOOLEAN DEFAULT FALSE,
        rating VARCHAR,
        parent_id VARCHAR,
        folder_id VARCHAR,
        last_used_at TIMESTAMP,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    );

    CREATE INDEX IF NOT EXISTS idx_prompts_user_id ON prompts (user_id);

    CREATE TABLE IF NOT EXISTS prompt_history (
        id INTEGER PRIMARY KEY DEFAULT nextval('seq_prompt_history_id'),
        prompt_id VARCHAR NOT NULL,
        title VARCHAR NOT NULL,
        content VARCHAR NOT NULL,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    );

    CREATE INDEX IF NOT EXISTS idx_prompt_history_prompt_id ON prompt_history (prompt_id);

    CREATE TABLE IF NOT EXISTS favorites (
        user_id VARCHAR NOT NULL,
        prompt_id VARCHAR NOT NULL,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        PRIMARY KEY (user_id, prompt_id)
    );

    CREATE TABLE IF NOT EXISTS likes (
        user_id VARCHAR NOT NULL,
        prompt_id VARCHAR NOT NULL,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        PRIMARY KEY (user_id, prompt_id)
    );

    CREATE TABLE IF NOT EXISTS folders (
        id VARCHAR PRIMARY KEY,
        user_id VARCHAR NOT NULL,
        name VARCHAR NOT NULL,
        color VARCHAR DEFAULT '#6366f1',
        sort_order INTEGER DEFAULT 0,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    );

    CREATE TABLE IF NOT EXISTS notifications (
        id INTEGER PRIMARY KEY DEFAULT nextval('seq_notifications_id'),
        user_id VARCHAR NOT NULL,
        type VARCHAR NOT NULL,
        prompt_id VARCHAR NOT NULL,
        prompt_title VARCHAR DEFAULT '',
        actor_id VARCHAR,
        actor_name VARCHAR DEFAULT '',
        read BOOLEAN DEFAULT FALSE,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    );

    CREATE TABLE IF NOT EXISTS feedback (
        id VARCHAR PRIMARY KEY,
        type VARCHAR DEFAULT 'other',
        title VARCHAR DEFAULT '',
        description VARCHAR DEFAULT '',
        screenshot_url VARCHAR,
        status VARCHAR DEFAULT 'open',
        like_count INTEGER DEFAULT 0,
        author_id VARCHAR,
        author_name VARCHAR DEFAULT '',
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    );

    CREATE TABLE IF NOT EXISTS feedback_likes (
        feedback_id VARCHAR NOT NULL,
        session_id VARCHAR NOT NULL,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        PRIMARY KEY (feedback_id, session_id)
    );

    CREATE TABLE IF NOT EXISTS contacts (
        id VARCHAR PRIMARY KEY,
        name VARCHAR NOT NULL,
        email VARCHAR NOT NULL,
        category VARCHAR,
        message VARCHAR NOT NULL,
        status VARCHAR DEFAULT 'new',
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    );

    CREATE TABLE IF NOT EXISTS changelog (
        id VARCHAR PRIMARY KEY,
        version VARCHAR DEFAULT '',
        title VARCHAR DEFAULT '',
        description VARCHAR DEFAULT '',
        type VARCHAR DEFAULT 'feature',
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    );

    CREATE TABLE IF NOT EXISTS feature_flags (
        id VARCHAR PRIMARY KEY,
        label VARCHAR DEFAULT '',
        description VARCHAR DEFAULT '',
        enabled BOOLEAN DEFAULT TRUE,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    );

    CREATE TABLE IF NOT EXISTS analytics_events (
        id INTEGER PRIMARY KEY DEFAULT nextval('seq_analytics_events_id'),
        event_name VARCHAR NOT NULL,
        session_id VARCHAR DEFAULT '',
        user_id VARCHAR,
        metadata JSON,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    );

    CREATE INDEX IF NOT EXISTS idx_analytics_events_created_at ON analytics_events (created_at);

    CREATE TABLE IF NOT EXISTS daily_kpi (
        date DATE PRIMARY KEY,
        dau INTEGER DEFAULT 0,
        new_signups INTEGER DEFAULT 0,
        prompts_created INTEGER DEFAULT 0,
        copies_executed INTEGER DEFAULT 0,
        prompts_published INTEGER DEFAULT 0,
        likes_given INTEGER DEFAULT 0,
        favorites_given INTEGER DEFAULT 0,
        searches INTEGER DEFAULT 0,
        feedback_submitted INTEGER DEFAULT 0
    );

    CREATE TABLE IF NOT EXISTS schema_info (
        key VARCHAR PRIMARY KEY,
        value VARCHAR NOT NULL
    );
    """

def get_current_schema_version(conn) -> int:
    try:
        result = conn.execute(text("SELECT value FROM schema_info WHERE key = 'version'"))
        row = result.fetchone()
        return int(row[0]) if row else 0
    except Exception:
        return 0

def set_schema_version(conn, version: int):
    conn.execute(text("""
        INSERT INTO schema_info (key, value) VALUES ('version', :version)
        ON CONFLICT (key) DO UPDATE SET value = :version
    """), {"version": str(version)})

def init_raw_db(conn_engine: Engine):
    logger.info("Initializing DuckDB schema...")
    try:
        with conn_engine.begin() as conn:
            statements = [s.strip() for s in get_db_schema_sql().split(';') if s.strip()]
            for stmt in statements:
                conn.execute(text(stmt))

            current_version = get_current_schema_version(conn)
            if current_version < CURRENT_SCHEMA_VERSION:
                set_schema_version(conn, CURRENT_SCHEMA_VERSION)
    except Exception as e:
        logger.error(f"Failed to initialize database schema: {e}")
        raise e
