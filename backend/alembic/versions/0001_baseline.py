"""baseline schema

Revision ID: 0001_baseline
Revises:
Create Date: 2026-10-19 00:00:00

テーブル自体は infra/database/schema.py の Raw SQL で作成するため、
このリビジョンは既存DBをスタンプするための基点としてのみ使用する。
"""
from typing import Sequence, Union

revision: str = "0001_baseline"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    pass


def downgrade() -> None:
    pass
