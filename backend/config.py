import os
from typing import List
from pydantic_settings import BaseSettings
from pydantic import Field
import platformdirs

APP_NAME = "MyPrompt"
APP_AUTHOR = "MyPromptDev"

class Settings(BaseSettings):
    # App Info
    APP_NAME: str = APP_NAME
    APP_AUTHOR: str = APP_AUTHOR
    ENV: str = "prod"

    # Paths
    # デフォルトは platformdirs を使用するが、環境変数 DB_PATH があればそれを優先する
    USER_DATA_DIR: str = Field(default_factory=lambda: platformdirs.user_data_dir(APP_NAME, APP_AUTHOR))
    DB_PATH: str | None = None
    LOCAL_STATE_PATH: str | None = None
    STORAGE_DIR: str | None = None

    # Network
    MYPROMPT_PORT: int = 8001
    FRONTEND_PORT: int = 3000
    PUBLIC_BASE_URL: str = "http://localhost:8001"

    # Admin
    ADMIN_USER_IDS: List[str] = []

    # Limits
    PIN_LIMIT: int = 5
    TEMPLATE_CACHE_LIMIT: int = 50
    COPY_BUFFER_MAX: int = 3
    COPY_BUFFER_TTL_SEC: int = 300
    UPLOAD_MAX_BYTES: int = 2 * 1024 * 1024
    UPLOAD_ALLOWED_TYPES: List[str] = ["image/jpeg", "image/png", "image/webp", "image/gif"]

    # Logging
    MYPROMPT_LOG_DIR: str | None = None
    MYPROMPT_LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"

    def model_post_init(self, __context):
        # DB_PATHが未設定ならデフォルト値を設定
        if not self.DB_PATH:
            self.DB_PATH = os.path.join(self.USER_DATA_DIR, "myprompt.duckdb")

        # クライアント側の永続状態 (テンプレート値, マイルストーン等)
        if not self.LOCAL_STATE_PATH:
            self.LOCAL_STATE_PATH = os.path.join(self.USER_DATA_DIR, "local_state.json")

        # アバター・スクリーンショットの保存先
        if not self.STORAGE_DIR:
            self.STORAGE_DIR = os.path.join(self.USER_DATA_DIR, "storage")

        # ログディレクトリ
        if not self.MYPROMPT_LOG_DIR:
            self.MYPROMPT_LOG_DIR = os.path.join(self.USER_DATA_DIR, "logs")

    def setup_environment(self):
        """ロガー等が参照する環境変数を設定する"""
        if self.MYPROMPT_LOG_DIR:
            os.environ["MYPROMPT_LOG_DIR"] = self.MYPROMPT_LOG_DIR
        os.environ["MYPROMPT_LOG_LEVEL"] = self.MYPROMPT_LOG_LEVEL

settings = Settings()
