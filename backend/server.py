import os
import uvicorn

from utils.logger import get_logger

logger = get_logger(__name__)

def prepare_dirs(settings):
    """DB, ローカル状態, アップロード先の親ディレクトリを作る"""
    for path in (settings.USER_DATA_DIR, settings.STORAGE_DIR, os.path.dirname(settings.LOCAL_STATE_PATH)):
        os.makedirs(path, exist_ok=True)

if __name__ == "__main__":
    # ロガーやDBのパスが決まる前に環境変数を反映する
    from config import settings
    settings.setup_environment()
    prepare_dirs(settings)

    from main import app

    # MYPROMPT_PORT は pydantic-settings が環境変数から読む
    logger.info(f"Starting MyPrompt Backend Server on port {settings.MYPROMPT_PORT} ({settings.ENV})")
    logger.info(f"Database: {settings.DB_PATH}")
    logger.info(f"Storage: {settings.STORAGE_DIR}")
    uvicorn.run(app, host="127.0.0.1", port=settings.MYPROMPT_PORT, reload=False, workers=1)
