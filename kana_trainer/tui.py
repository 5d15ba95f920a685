"""
Kana Trainer - Terminal Interface
A curses-based drill screen: shows a kana, reads the romaji, and keeps the
per-kana statistics columns up to date while you practice.
"""
from __future__ import annotations

import curses
from typing import Any, List, Tuple

from . import analytics
from .kana import KanaType
from .session import PracticeSession, SessionMode

# Color pair ids
HEADER, KANA, SUCCESS, ERROR, WARNING, INFO = 1, 2, 3, 4, 5, 6


class KanaApp:
    def __init__(self, stdscr: Any, session: PracticeSession, kana_type: KanaType) -> None:
        self.stdscr = stdscr
        self.session = session
        self.kana_type = kana_type
        self.height, self.width = stdscr.getmaxyx()

        curses.start_color()
        curses.use_default_colors()
        curses.init_pair(HEADER, curses.COLOR_WHITE, curses.COLOR_BLUE)
        curses.init_pair(KANA, curses.COLOR_CYAN, -1)
        curses.init_pair(SUCCESS, curses.COLOR_GREEN, -1)
        curses.init_pair(ERROR, curses.COLOR_RED, -1)
        curses.init_pair(WARNING, curses.COLOR_YELLOW, -1)
        curses.init_pair(INFO, curses.COLOR_CYAN, -1)

        curses.curs_set(0)
        self.stdscr.keypad(True)

        self.input_buffer: List[str] = []
        self.message = ""
        self.message_color = 0

    # ── Drawing ───────────────────────────────────────────────────────

    def _addstr(self, y: int, x: int, text: str, attr: int = 0) -> None:
        if y < 0 or y >= self.height or x >= self.width:
            return
        try:
            self.stdscr.addstr(y, x, text[: max(0, self.width - x - 1)], attr)
        except curses.error:
            pass  # Terminal too small for this line

    def draw(self) -> None:
        self.height, self.width = self.stdscr.getmaxyx()
        self.stdscr.erase()
        self.draw_header()
        self.draw_kana()
        self.draw_input()
        self.draw_message()
        self.draw_stats_columns()
        self.draw_trend()
        self.draw_footer()
        self.stdscr.refresh()

    def draw_header(self) -> None:
        header_text = f" Kana Trainer [{self.kana_type.value} · {len(self.session.catalog)} kana] "
        self._addstr(0, max(0, (self.width - len(header_text)) // 2), header_text,
                     curses.color_pair(HEADER) | curses.A_BOLD)
        self._addstr(1, 0, "─" * self.width)

    def draw_kana(self) -> None:
        if self.session.mode == SessionMode.INITIAL:
            text = "Press Enter to start"
        elif self.session.mode == SessionMode.PAUSED:
            text = "Press Enter to continue"
        else:
            text = self.session.current.kana if self.session.current else "Loading..."
        self._addstr(3, max(0, (self.width - len(text) * 2) // 2), text,
                     curses.color_pair(KANA) | curses.A_BOLD)

    def draw_input(self) -> None:
        typed = "".join(self.input_buffer)
        self._addstr(5, 2, f"Input: {typed}")

    def show_message(self, message: str, color: int = 0) -> None:
        self.message = message
        self.message_color = color

    def draw_message(self) -> None:
        if self.message:
            attr = curses.color_pair(self.message_color) if self.message_color else 0
            self._addstr(7, 2, self.message, attr)

    def draw_stats_columns(self) -> None:
        top = 9
        rows_available = max(0, self.height - top - 5)
        col_width = max(10, self.width // 3)
        history = self.session.history

        by_accuracy = analytics.accuracy_ranking(history, limit=rows_available)
        by_speed = analytics.speed_ranking(history, limit=rows_available)
        mistakes = analytics.recent_mistakes(history, self.kana_type, limit=rows_available)

        titles = ("By Accuracy (EMA)", "By Speed (EMA)", "Recent Mistakes")
        for col, title in enumerate(titles):
            self._addstr(top, col * col_width + 2, title, curses.A_BOLD)

        for i, row in enumerate(by_accuracy):
            acc = row["ema_accuracy"]
            color = ERROR if acc < 0.8 else WARNING if acc < 0.9 else SUCCESS
            self._addstr(top + 2 + i, 2, f"{row['kana']}: ")
            self._addstr(top + 2 + i, 6, f"{acc * 100:.1f}%", curses.color_pair(color))
            self._addstr(top + 2 + i, 14, f"({row['tests']})")

        for i, row in enumerate(by_speed):
            ms = row["ema_response"]
            color = ERROR if ms > 2000 else WARNING if ms > 1000 else SUCCESS
            x = col_width + 2
            self._addstr(top + 2 + i, x, f"{row['kana']}: ")
            self._addstr(top + 2 + i, x + 4, f"{ms:.0f}ms", curses.color_pair(color))
            self._addstr(top + 2 + i, x + 12, f"({row['tests']})")

        for i, row in enumerate(mistakes):
            self._addstr(top + 2 + i, 2 * col_width + 2, f"{row['kana']} → {', '.join(row['confused_with'])}")

    def draw_trend(self) -> None:
        points = analytics.response_time_trend(self.session.history)
        if not points:
            return
        recent: List[Tuple[int, float]] = points[-10:]
        trend = " ".join(f"{ema:.0f}" for _, ema in recent)
        self._addstr(self.height - 3, 2, f"Response EMA (last {len(recent)}): {trend} ms",
                     curses.color_pair(INFO))

    def draw_footer(self) -> None:
        footer_text = "ESC: Quit | Enter: Submit | Empty Enter: Pause | Type romaji for the shown kana"
        self._addstr(self.height - 1, max(0, (self.width - len(footer_text)) // 2), footer_text,
                     curses.color_pair(INFO))

    # ── Input ─────────────────────────────────────────────────────────

    def handle_enter(self) -> None:
        if self.session.mode in (SessionMode.INITIAL, SessionMode.PAUSED):
            self.session.start()
            self.show_message("")
            return

        typed = "".join(self.input_buffer)
        self.input_buffer = []
        result = self.session.submit(typed)
        if result is None:
            self.show_message("Paused", WARNING)
        elif result.success:
            self.show_message(f"Correct! {result.item.kana} = {result.item.romaji} ({result.response_time_ms:.0f} ms)",
                              SUCCESS)
        else:
            self.show_message(f"Incorrect: '{result.input}', try again", ERROR)

    def run(self) -> None:
        """Main input loop; returns when the user presses Esc."""
        while True:
            self.draw()
            try:
                ch = self.stdscr.get_wch()  # Unicode-aware input
            except curses.error:
                continue

            if ch == "\x1b":
                break
            elif ch in ("\n", "\r") or ch == curses.KEY_ENTER:
                self.handle_enter()
            elif ch in ("\b", "\x7f") or ch == curses.KEY_BACKSPACE:
                if self.input_buffer:
                    self.input_buffer.pop()
            elif ch == curses.KEY_RESIZE:
                continue
            elif isinstance(ch, str) and ch.isprintable():
                if self.session.mode == SessionMode.READY:
                    self.input_buffer.append(ch)


def main(stdscr: Any, session: PracticeSession, kana_type: KanaType) -> None:
    """Entry point for ``curses.wrapper``."""
    app = KanaApp(stdscr, session, kana_type)
    app.run()
