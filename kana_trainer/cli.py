from __future__ import annotations

import curses
import logging
from typing import Optional

import click
import numpy as np

from . import analytics, config, db
from .errors import KanaTrainerError
from .kana import PracticeMode, KanaType, get_catalog, parse_kana_type
from .logging_config import configure_logging, log_event
from .scheduler import AdaptiveSelector
from .session import PracticeSession

logger = logging.getLogger(__name__)

KANA_TYPES = click.Choice([t.value for t in KanaType])
MODES = click.Choice([m.value for m in PracticeMode])


@click.group()
@click.option("--db", "db_path", default=None, help="SQLite file holding your statistics")
@click.option("--debug", is_flag=True, default=config.DEBUG, help="Log every weight and selection decision")
@click.option("--log-file", default=config.LOG_PATH, show_default=True, help="Where log records are written")
def cli(db_path: Optional[str], debug: bool, log_file: str) -> None:
    """Kana recall drills with adaptive practice scheduling."""
    configure_logging(debug=debug, log_path=log_file)
    if db_path:
        db.use_database(db_path)


@cli.command("init-db")
def init_db() -> None:
    """Initialize the statistics database."""
    db.init_db()
    click.echo("Database initialized.")


@cli.command("practice")
@click.option("--kana-type", type=KANA_TYPES, default=config.DEFAULT_KANA_TYPE, show_default=True)
@click.option("--mode", type=MODES, default=config.DEFAULT_MODE, show_default=True,
              help="Which kana subset to practice")
@click.option("--seed", type=int, default=None, help="Seed for reproducible selection")
def practice(kana_type: str, mode: str, seed: Optional[int]) -> None:
    """Start an interactive practice session in the terminal."""
    try:
        catalog = get_catalog(kana_type, mode)
        history = db.load_history()
        selector = AdaptiveSelector(rng=np.random.default_rng(seed), listener=log_event)
        session = PracticeSession(catalog, history, selector=selector, listener=log_event)
    except KanaTrainerError as e:
        raise click.ClickException(str(e)) from e

    from . import tui
    logger.info("Practice started: %s/%s, %d kana", kana_type, mode, len(catalog))
    try:
        curses.wrapper(tui.main, session, parse_kana_type(kana_type))
    except KeyboardInterrupt:
        pass
    finally:
        session.finish()
        db.save_history(history)

    click.echo(f"Session complete: {session.attempts} attempts, {session.correct} correct "
               f"({session.accuracy * 100:.1f}%).")


@cli.command("stats")
@click.option("--kana-type", type=KANA_TYPES, default=config.DEFAULT_KANA_TYPE, show_default=True)
@click.option("--limit", type=int, default=config.RANKING_LIMIT, show_default=True)
def show_stats(kana_type: str, limit: int) -> None:
    """Show overall progress and the weakest kana."""
    history = db.load_history()
    overview = analytics.summary(history)
    if overview["total_attempts"] == 0:
        click.echo("No practice recorded yet. Run 'kana-trainer practice' to start!")
        return

    click.echo("Progress:")
    click.echo(f"  Total attempts: {overview['total_attempts']}")
    click.echo(f"  Correct answers: {overview['total_successes']}")
    click.echo(f"  Accuracy: {overview['success_rate'] * 100:.1f}%")
    click.echo(f"  Average response: {overview['avg_response_ms']:.0f} ms")
    click.echo(f"  Kana seen: {overview['items_seen']}")
    click.echo(f"  Practice time: {analytics.format_duration(overview['total_practice_time'])}")
    click.echo(f"  Last session: {overview['last_session']:%Y-%m-%d %H:%M}")

    click.echo("\nWeakest by accuracy (EMA):")
    for row in analytics.accuracy_ranking(history, limit):
        click.echo(f"  {row['kana']}: {row['ema_accuracy'] * 100:.1f}% ({row['tests']} tests)")

    click.echo("\nSlowest by response (EMA):")
    for row in analytics.speed_ranking(history, limit):
        click.echo(f"  {row['kana']}: {row['ema_response']:.0f}ms ({row['tests']} tests)")

    mistakes = analytics.recent_mistakes(history, kana_type, limit)
    if mistakes:
        click.echo("\nRecent mistakes:")
        for row in mistakes:
            click.echo(f"  {row['kana']} → {', '.join(row['confused_with'])}")


@cli.command("check")
@click.option("--repair", is_flag=True, help="Replace stored averages with values replayed from history")
def check(repair: bool) -> None:
    """Compare stored moving averages against the attempt history."""
    history = db.load_history(check=False)
    mismatches = db.check_consistency(history, repair=repair)
    if not mismatches:
        click.echo("All stored averages match the attempt history.")
        return

    for m in mismatches:
        click.echo(f"{m.item_id}: response {m.stored_response:.1f} -> {m.recomputed_response:.1f} ms, "
                   f"accuracy {m.stored_accuracy:.3f} -> {m.recomputed_accuracy:.3f}")
    if repair:
        db.save_history(history)
        click.echo(f"Repaired {len(mismatches)} kana.")
    else:
        click.echo(f"{len(mismatches)} kana differ. Run with --repair to recompute them.")


@cli.command("export")
@click.argument("path", type=click.Path(dir_okay=False, writable=True))
def export_snapshot(path: str) -> None:
    """Write all statistics to a JSON file."""
    history = db.load_history()
    db.export_json(history, path)
    click.echo(f"Exported {len(history.character_stats)} kana to {path}.")


@cli.command("import")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
def import_snapshot(path: str) -> None:
    """Replace stored statistics with a JSON snapshot."""
    try:
        history = db.import_json(path)
    except KanaTrainerError as e:
        raise click.ClickException(str(e)) from e
    db.init_db()
    db.check_consistency(history)
    db.save_history(history)
    click.echo(f"Imported {len(history.character_stats)} kana from {path}.")


if __name__ == "__main__":
    cli()
