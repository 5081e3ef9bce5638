"""Export game reviews as JSON documents or markdown reports."""

from __future__ import annotations

import json
import os
from pathlib import Path

from chess_review.models import BLACK, CLASSIFICATIONS, WHITE, GameReview, MoveReview


def _move_number(move: MoveReview) -> str:
    number = move.ply // 2 + 1
    return f"{number}." if move.color == WHITE else f"{number}..."


def review_to_dict(review: GameReview) -> dict:
    """Serialisable view of a review for external consumers.

    Returns:
        Dict with ``moves`` (move, evalBefore, evalAfter, bestMove,
        classification, comment) and ``summary`` (whiteAccuracy,
        blackAccuracy, blunders, mistakes, inaccuracies, keyMoments).
    """
    summary = review.summary
    return {
        "moves": [
            {
                "move": move.san,
                "evalBefore": round(move.eval_before, 2),
                "evalAfter": round(move.eval_after, 2),
                "bestMove": move.best_move,
                "classification": move.classification,
                "comment": move.comment,
            }
            for move in review.moves
        ],
        "summary": {
            "whiteAccuracy": summary.white_accuracy,
            "blackAccuracy": summary.black_accuracy,
            "blunders": summary.blunders,
            "mistakes": summary.mistakes,
            "inaccuracies": summary.inaccuracies,
            "keyMoments": [
                {
                    "moveIndex": moment.move_index,
                    "move": moment.move,
                    "evalLoss": round(moment.eval_loss, 2),
                    "classification": moment.classification,
                }
                for moment in summary.key_moments
            ],
        },
    }


def export_review_json(review: GameReview) -> str:
    return json.dumps(review_to_dict(review), indent=2)


def export_review_markdown(review: GameReview, title: str = "Game Review") -> str:
    """Render a review as a markdown report."""
    summary = review.summary
    lines = [f"# {title}", ""]

    lines.append("## Accuracy")
    lines.append(f"- White: {summary.white_accuracy}%")
    lines.append(f"- Black: {summary.black_accuracy}%")
    lines.append("")

    lines.append("## Move Quality")
    lines.append("| Classification | White | Black |")
    lines.append("|---|---|---|")
    for label in CLASSIFICATIONS:
        white = summary.white_counts.get(label, 0)
        black = summary.black_counts.get(label, 0)
        lines.append(f"| {label} | {white} | {black} |")
    lines.append("")

    if summary.key_moments:
        lines.append("## Key Moments")
        for moment in summary.key_moments:
            move = review.moves[moment.move_index]
            lines.append(
                f"- {_move_number(move)} {moment.move} ({moment.classification}, "
                f"-{moment.eval_loss:.2f}): {move.comment}"
            )
        lines.append("")

    lines.append("## Moves")
    lines.append("| # | Move | Eval | Best | Classification |")
    lines.append("|---|---|---|---|---|")
    for move in review.moves:
        best = move.best_move or ""
        lines.append(
            f"| {_move_number(move)} | {move.san} | {move.eval_after:+.2f} "
            f"| {best} | {move.classification} |"
        )
    lines.append("")

    return "\n".join(lines)


def write_review(review: GameReview, path: str | Path, fmt: str | None = None) -> Path:
    """Write a review to ``path`` with an atomic temp-file replace.

    Args:
        review: Review to write.
        path: Destination file.
        fmt: "json" or "markdown"; inferred from the suffix when None
            (.md/.markdown is markdown, anything else JSON).
    """
    path = Path(path)
    if fmt is None:
        fmt = "markdown" if path.suffix.lower() in (".md", ".markdown") else "json"
    if fmt == "markdown":
        text = export_review_markdown(review)
    else:
        text = export_review_json(review)

    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(text, encoding="utf-8")
    os.replace(tmp_path, path)
    return path


def side_label(color: str) -> str:
    return "White" if color == WHITE else "Black" if color == BLACK else color
