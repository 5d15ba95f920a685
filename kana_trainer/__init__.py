"""
Kana Trainer

Romaji recall drills for hiragana and katakana with adaptive scheduling.
"""

from . import kana
from . import stats
from . import scheduler
from . import session
from . import analytics
from . import db

__version__ = "0.1.0"
__all__ = ["kana", "stats", "scheduler", "session", "analytics", "db"]
