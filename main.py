#!/usr/bin/env python3
"""
Kana Trainer - Terminal Interface
Starts a practice session; arguments are passed to ``kana-trainer practice``.

    python main.py --kana-type katakana --mode all
"""

import sys

from kana_trainer.cli import cli

if __name__ == "__main__":
    cli(["practice", *sys.argv[1:]])
