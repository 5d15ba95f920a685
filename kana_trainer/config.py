"""Environment driven settings.

All values are read once at import time; command line options override them.
"""
import os

DB_PATH: str = os.environ.get("KANA_TRAINER_DB", "kana_history.db")
LOG_PATH: str = os.environ.get("KANA_TRAINER_LOG", "kana_trainer.log")
DEBUG: bool = os.getenv("DEBUG", "0") == "1"

DEFAULT_KANA_TYPE: str = os.environ.get("KANA_TRAINER_KANA_TYPE", "hiragana")
DEFAULT_MODE: str = os.environ.get("KANA_TRAINER_MODE", "main")

# Number of rows shown in each ranking column
RANKING_LIMIT: int = 15
