"""Command-line game review.

Reviews the first game of a PGN file with Stockfish and prints the
summary as Rich tables. Optionally writes JSON and/or markdown exports.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from dataclasses import replace
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.progress import BarColumn, Progress, TextColumn
from rich.table import Table

from chess_review.config import ReviewConfig
from chess_review.errors import InvalidMoveList
from chess_review.export import side_label, write_review
from chess_review.games import moves_from_pgn
from chess_review.models import CLASSIFICATIONS, GameReview
from chess_review.review import review_game

_CLASSIFICATION_STYLES = {
    "Brilliant": "bold cyan",
    "Great": "bold blue",
    "Best": "green",
    "Good": "white",
    "Inaccuracy": "yellow",
    "Mistake": "dark_orange",
    "Blunder": "bold red",
}


def _summary_table(review: GameReview) -> Table:
    summary = review.summary
    table = Table(title="Game Review")
    table.add_column("", style="bold")
    table.add_column("White", justify="right")
    table.add_column("Black", justify="right")
    table.add_row("Accuracy", f"{summary.white_accuracy}%", f"{summary.black_accuracy}%")
    for label in CLASSIFICATIONS:
        style = _CLASSIFICATION_STYLES.get(label, "")
        table.add_row(
            f"[{style}]{label}[/]",
            str(summary.white_counts.get(label, 0)),
            str(summary.black_counts.get(label, 0)),
        )
    return table


def _key_moments_table(review: GameReview) -> Table:
    table = Table(title="Key Moments")
    table.add_column("Ply", justify="right")
    table.add_column("Side")
    table.add_column("Move")
    table.add_column("Loss", justify="right")
    table.add_column("Comment")
    for moment in review.summary.key_moments:
        move = review.moves[moment.move_index]
        style = _CLASSIFICATION_STYLES.get(moment.classification, "")
        table.add_row(
            str(moment.move_index + 1),
            side_label(moment.color),
            f"[{style}]{moment.move}[/]",
            f"{moment.eval_loss:.2f}",
            move.comment,
        )
    return table


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for chess-review."""
    parser = argparse.ArgumentParser(
        description="Review a chess game move by move with Stockfish"
    )
    parser.add_argument("pgn", type=Path, help="PGN file (first game is reviewed)")
    parser.add_argument("--depth", type=int, help="Search depth per position")
    parser.add_argument("--timeout", type=float, help="Seconds to wait per position")
    parser.add_argument("--stockfish", help="Path to the Stockfish binary")
    parser.add_argument("--json", type=Path, dest="json_out", help="Write JSON export here")
    parser.add_argument("--markdown", type=Path, help="Write markdown report here")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    _configure_logging(args.verbose)
    console = Console()

    try:
        config = ReviewConfig.from_env()
    except ValueError as exc:
        console.print(f"[red]Bad configuration:[/] {exc}")
        return 2
    overrides = {}
    if args.depth is not None:
        overrides["depth"] = args.depth
    if args.timeout is not None:
        overrides["request_timeout"] = args.timeout
    if args.stockfish:
        overrides["stockfish_path"] = args.stockfish
    config = replace(config, **overrides)

    try:
        moves = moves_from_pgn(args.pgn.read_text(encoding="utf-8"))
    except (OSError, InvalidMoveList) as exc:
        console.print(f"[red]Cannot load game:[/] {exc}")
        return 1

    with Progress(
        TextColumn("Analyzing"), BarColumn(), TextColumn("{task.percentage:>3.0f}%"),
        console=console, transient=True,
    ) as progress:
        task = progress.add_task("review", total=100)
        review = asyncio.run(
            review_game(moves, config, lambda pct: progress.update(task, completed=pct))
        )

    console.print(_summary_table(review))
    if review.summary.key_moments:
        console.print(_key_moments_table(review))

    for target, fmt in ((args.json_out, "json"), (args.markdown, "markdown")):
        if target is not None:
            written = write_review(review, target, fmt)
            console.print(f"Wrote {written}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
