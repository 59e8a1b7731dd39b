import logging
from sqlmodel import Session, select
from models import FeatureFlag, ChangelogEntry

logger = logging.getLogger(__name__)

def seed_initial_data(session: Session):
    """初期データ投入 (フィーチャーフラグと最初のチェンジログ)"""

    # 1. フィーチャーフラグ
    default_flags = [
        {
            "id": "quick_capture",
            "label": "クイックメモ",
            "description": "1行入力からプロンプトを作成するバー",
        },
        {
            "id": "prompt_chains",
            "label": "プロンプトチェイン",
            "description": "複数のプロンプトを順番に保存して連続コピーする",
        },
        {
            "id": "copy_buffer",
            "label": "コピーバッファ",
            "description": "直近コピーしたプロンプトを一時的に保持する",
        },
        {
            "id": "onboarding_progress",
            "label": "オンボーディング進捗",
            "description": "初回利用時のマイルストーン表示",
        },
    ]

    for f_data in default_flags:
        existing = session.get(FeatureFlag, f_data["id"])
        if not existing:
            session.add(FeatureFlag(enabled=True, **f_data))
    session.commit()

    # 2. チェンジログ
    first_entry = session.exec(select(ChangelogEntry).where(ChangelogEntry.version == "1.0.0")).first()
    if not first_entry:
        session.add(ChangelogEntry(
            version="1.0.0",
            title="MyPrompt 公開",
            description="プロンプトのメモ・整理・共有ができるようになりました。",
            type="feature",
        ))
        session.commit()
        logger.info("Seeded initial changelog entry")
