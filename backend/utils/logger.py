import logging
import os
from logging.handlers import RotatingFileHandler
import sys
from typing import List, Optional

# MYPROMPT_LOG_DIR / MYPROMPT_LOG_LEVEL は config.setup_environment() が設定する
# 未設定 (開発時, テスト時) は backend/logs と INFO
if "MYPROMPT_LOG_DIR" in os.environ:
    LOG_DIR = os.environ["MYPROMPT_LOG_DIR"]
else:
    BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    LOG_DIR = os.path.join(BASE_DIR, "logs")

LOG_FILE = "myprompt.log"
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_MAX_BYTES = 10*1024*1024
LOG_BACKUP_COUNT = 5

_handlers: Optional[List[logging.Handler]] = None

def _level() -> int:
    level = logging.getLevelName(os.environ.get("MYPROMPT_LOG_LEVEL", "INFO").upper())
    return level if isinstance(level, int) else logging.INFO

def _shared_handlers() -> List[logging.Handler]:
    """
    全ロガーで共有するハンドラ。
    myprompt.log に張る RotatingFileHandler はプロセス内で1つだけ。
    """
    global _handlers
    if _handlers is not None:
        return _handlers

    formatter = logging.Formatter(LOG_FORMAT)
    handlers: List[logging.Handler] = []

    try:
        os.makedirs(LOG_DIR, exist_ok=True)
        # 10MBごとにローテーション, 最大5世代
        file_handler = RotatingFileHandler(
            os.path.join(LOG_DIR, LOG_FILE),
            maxBytes=LOG_MAX_BYTES,
            backupCount=LOG_BACKUP_COUNT,
            encoding='utf-8'
        )
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)
    except OSError as e:
        print(f"Failed to set up file logging: {e}", file=sys.stderr)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    handlers.append(console_handler)

    _handlers = handlers
    return handlers

def get_logger(name: str) -> logging.Logger:
    """ファイルとコンソールに出力するロガーを取得する"""
    logger = logging.getLogger(name)

    if not logger.handlers:
        logger.setLevel(_level())
        for handler in _shared_handlers():
            logger.addHandler(handler)
        # uvicorn 等のルートロガー設定と二重出力しない
        logger.propagate = False

    return logger
