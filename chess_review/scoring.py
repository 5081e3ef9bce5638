"""Move scoring: evaluation loss, classification and explanations.

All inputs are White-relative EvaluationResults. Losses are measured
from the mover's side and never go negative: improvements count as zero.
Thresholds live in one versioned table so every caller classifies
against the same numbers.
"""

from __future__ import annotations

from dataclasses import dataclass

from chess_review.models import (
    BEST,
    BLUNDER,
    BRILLIANT,
    GOOD,
    GREAT,
    INACCURACY,
    MISTAKE,
    WHITE,
    EvaluationResult,
)

# Mate scores are drawn as this many pawns
MATE_DISPLAY_PAWNS = 10.0


@dataclass(frozen=True)
class ScoringThresholds:
    """Canonical classification table. Bump ``version`` when a value changes."""

    version: str = "2"
    best: float = 0.15
    good: float = 0.5
    inaccuracy: float = 1.2
    mistake: float = 2.5
    mate_best: float = 0.15
    brilliant_max_loss: float = 0.5
    decisive_pawns: float = 5.0
    decisive_discount: float = 0.3
    lost_mate_penalty: float = 5.0
    mate_distance_penalty: float = 2.0


DEFAULT_THRESHOLDS = ScoringThresholds()


@dataclass(frozen=True)
class EvalLoss:
    """Outcome of comparing the evaluations around one move."""

    eval_loss: float
    is_mate: bool
    lost_mate: bool


def _for_mover(value: int, color: str) -> int:
    return value if color == WHITE else -value


def calculate_eval_loss(
    before: EvaluationResult,
    after: EvaluationResult,
    color: str,
    thresholds: ScoringThresholds = DEFAULT_THRESHOLDS,
) -> EvalLoss:
    """Side-aware evaluation loss of a move.

    A forced mate that disappears costs ``lost_mate_penalty`` and counts
    as a lost mate; a mate that appears costs nothing. When both sides of
    the move are mates they are compared from the mover's side: a flip to
    the opponent costs ``lost_mate_penalty``, a winning mate that got
    longer costs ``mate_distance_penalty``. Finite scores lose
    ``max(0, before - after)`` pawns, discounted when the position was
    already decisive.

    Args:
        before: Evaluation of the position before the move.
        after: Evaluation of the position after the move.
        color: Mover, 'white' or 'black'.
        thresholds: Scoring table.

    Returns:
        EvalLoss with the loss in pawns and the mate flags.
    """
    t = thresholds
    if before.is_mate or after.is_mate:
        mate_before = _for_mover(before.value, color) if before.is_mate else None
        mate_after = _for_mover(after.value, color) if after.is_mate else None

        if mate_after is None:
            # Mate existed before the move and is gone now
            return EvalLoss(t.lost_mate_penalty, True, True)

        if mate_before is None:
            return EvalLoss(0.0, True, False)

        if mate_before > 0 and mate_after < 0:
            return EvalLoss(t.lost_mate_penalty, True, True)
        if mate_before > 0 and mate_after > 0 and mate_after > mate_before:
            return EvalLoss(t.mate_distance_penalty, True, False)
        return EvalLoss(0.0, True, False)

    before_cp = _for_mover(before.value, color)
    after_cp = _for_mover(after.value, color)
    loss = max(0, before_cp - after_cp) / 100
    if abs(before_cp) / 100 > t.decisive_pawns:
        loss *= t.decisive_discount
    return EvalLoss(loss, False, False)


def classify_move(
    eval_loss: float,
    is_mate: bool = False,
    lost_mate: bool = False,
    material_loss: int = 0,
    thresholds: ScoringThresholds = DEFAULT_THRESHOLDS,
) -> str:
    """Classify a move, first matching rule wins.

    Args:
        eval_loss: Side-aware loss in pawns.
        is_mate: Whether either evaluation was a forced mate.
        lost_mate: Whether the mover threw away a forced mate.
        material_loss: Mover's material before minus after, in pawns.
        thresholds: Scoring table.

    Returns:
        One of the classification labels in chess_review.models.
    """
    t = thresholds
    if lost_mate:
        return BLUNDER
    if is_mate:
        if eval_loss <= t.mate_best:
            if eval_loss == 0 and material_loss <= 0:
                return GREAT
            return BEST
        return BLUNDER
    if material_loss > 0 and eval_loss < t.brilliant_max_loss:
        return BRILLIANT
    if eval_loss == 0 and material_loss <= 0:
        return GREAT
    if eval_loss <= t.best:
        return BEST
    if eval_loss <= t.good:
        return GOOD
    if eval_loss <= t.inaccuracy:
        return INACCURACY
    if eval_loss <= t.mistake:
        return MISTAKE
    return BLUNDER


# ---------------------------------------------------------------------------
# Explanations
# ---------------------------------------------------------------------------

_MATERIAL_TEMPLATES = {
    GOOD: "A playable move, though it gives up {material}",
    INACCURACY: "This move concedes {material} without enough in return",
    MISTAKE: "This move loses {material}",
    BLUNDER: "This move throws away {material}",
}

_POSITIONAL_TEMPLATES = {
    GOOD: "A solid move, but there was something slightly more precise",
    INACCURACY: "This move misses a better continuation",
    MISTAKE: "This move misses a tactical opportunity",
    BLUNDER: "This move seriously compromises the position",
}


def _material_text(points: int) -> str:
    return "1 point of material" if points == 1 else f"{points} points of material"


def generate_move_explanation(
    classification: str,
    best_move: str | None,
    material_loss: int = 0,
    is_mate: bool = False,
    lost_mate: bool = False,
) -> str:
    """Pick the comment shown next to a reviewed move.

    Material loss is described before anything positional. Whenever the
    comment is not about material and the move was not Best, Great or
    Brilliant, the engine's move is named.
    """
    if classification == BRILLIANT:
        return (
            f"Brilliant! Gives up {_material_text(material_loss)} "
            "and the position holds."
        )
    if classification == GREAT:
        return "Great move. Nothing was conceded."
    if classification == BEST:
        return "This is the best move according to the engine."

    if material_loss > 0 and classification in _MATERIAL_TEMPLATES:
        return _MATERIAL_TEMPLATES[classification].format(
            material=_material_text(material_loss)
        ) + "."

    if lost_mate:
        text = "This move lets a forced mate slip away"
    elif is_mate and classification == BLUNDER:
        text = "This move lets a faster mate get away"
    else:
        text = _POSITIONAL_TEMPLATES.get(classification, "This move is not optimal")

    if best_move:
        return f"{text}. Best move: {best_move}"
    return f"{text}."


def display_pawns(evaluation: EvaluationResult, mover: str) -> float:
    """White-relative value in pawns, mates drawn at the display cap.

    ``mover`` is only consulted for a mate-in-0 score, which after a move
    means the mover has just delivered checkmate.
    """
    if evaluation.is_mate:
        if evaluation.value > 0:
            return MATE_DISPLAY_PAWNS
        if evaluation.value < 0:
            return -MATE_DISPLAY_PAWNS
        return MATE_DISPLAY_PAWNS if mover == WHITE else -MATE_DISPLAY_PAWNS
    return evaluation.value / 100
