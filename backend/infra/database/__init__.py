# Database module
# engine は configure() で差し替わるため connection 経由で参照する
from .connection import configure, get_session, init_db, close_db, run_alembic, db_lock
