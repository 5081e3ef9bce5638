"""Game-level summary: per-side accuracy, classification counts, key moments."""

from __future__ import annotations

import math
from collections.abc import Sequence

from chess_review.models import (
    BLACK,
    BLUNDER,
    CLASSIFICATIONS,
    INACCURACY,
    MISTAKE,
    WHITE,
    GameSummary,
    KeyMoment,
    MoveReview,
)

# Per-move loss is capped here before averaging (mate losses included)
LOSS_CAP = 5.0
# Accuracy points lost per pawn of average loss
ACCURACY_SLOPE = 25
KEY_MOMENT_THRESHOLD = 1.5
KEY_MOMENT_LIMIT = 5


def round_half_up(value: float) -> int:
    """Round halves upward (87.5 -> 88, 86.5 -> 87)."""
    return math.floor(value + 0.5)


def calculate_accuracy(moves: Sequence[MoveReview], color: str) -> int:
    """Accuracy 0-100 for one side.

    ``round(100 - average_capped_loss * 25)`` clamped to 0..100. A side
    with no moves scores 100.
    """
    losses = [min(m.eval_loss, LOSS_CAP) for m in moves if m.color == color]
    if not losses:
        return 100
    average = sum(losses) / len(losses)
    return max(0, min(100, round_half_up(100 - average * ACCURACY_SLOPE)))


def count_classifications(moves: Sequence[MoveReview], color: str) -> dict[str, int]:
    counts = {label: 0 for label in CLASSIFICATIONS}
    for move in moves:
        if move.color == color and move.classification in counts:
            counts[move.classification] += 1
    return counts


def find_key_moments(moves: Sequence[MoveReview]) -> list[KeyMoment]:
    """Largest evaluation swings above the threshold, worst first, at most five."""
    moments = [
        KeyMoment(
            move_index=index,
            move=move.san,
            color=move.color,
            eval_loss=move.eval_loss,
            classification=move.classification,
        )
        for index, move in enumerate(moves)
        if move.eval_loss > KEY_MOMENT_THRESHOLD
    ]
    # Stable sort keeps game order between equal losses
    moments.sort(key=lambda m: m.eval_loss, reverse=True)
    return moments[:KEY_MOMENT_LIMIT]


def generate_game_summary(moves: Sequence[MoveReview]) -> GameSummary:
    """Reduce reviewed moves into a fresh GameSummary."""
    white_counts = count_classifications(moves, WHITE)
    black_counts = count_classifications(moves, BLACK)
    return GameSummary(
        white_accuracy=calculate_accuracy(moves, WHITE),
        black_accuracy=calculate_accuracy(moves, BLACK),
        white_counts=white_counts,
        black_counts=black_counts,
        key_moments=find_key_moments(moves),
        blunders=white_counts[BLUNDER] + black_counts[BLUNDER],
        mistakes=white_counts[MISTAKE] + black_counts[MISTAKE],
        inaccuracies=white_counts[INACCURACY] + black_counts[INACCURACY],
    )
