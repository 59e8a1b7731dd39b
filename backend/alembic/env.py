from logging.config import fileConfig
import sys
import os
from sqlalchemy import engine_from_config
from sqlalchemy import pool
from sqlmodel import SQLModel
from alembic import context
from alembic.ddl.impl import DefaultImpl
from sqlalchemy.ext.compiler import compiles
from sqlalchemy import Integer

class DuckDBImpl(DefaultImpl):
    __dialect__ = 'duckdb'

@compiles(Integer, "duckdb")
def compile_integer(element, compiler, **kw):
    return "INTEGER"

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from models import * # noqa
from infra.database import connection as db_connection

config = context.config
# configure() でテスト用DBに差し替えられている場合もそちらを向く
config.set_main_option("sqlalchemy.url", db_connection.DATABASE_URL)

if config.config_file_name is not None and not config.attributes.get("connection"):
    fileConfig(config.config_file_name, disable_existing_loggers=False)

target_metadata = SQLModel.metadata

def include_object(obj, name, type_, reflected, compare_to):
    # Raw SQL だけで管理しているテーブル (モデル未定義) は比較対象にしない
    if type_ == "table" and reflected and compare_to is None:
        return False
    return True

def _run(connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        include_object=include_object,
        compare_type=True,
    )
    with context.begin_transaction():
        context.run_migrations()

def run_migrations_offline() -> None:
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()

def run_migrations_online() -> None:
    """
    init_db / テストからは run_alembic() 経由で接続が渡される。
    CLI 実行時のみ設定ファイルからエンジンを作る。
    """
    passed = config.attributes.get("connection", None)
    if passed is not None:
        _run(passed)
        return

    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        _run(connection)

if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
