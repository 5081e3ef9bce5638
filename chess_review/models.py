"""Shared data models for game review.

EvaluationResult is the single shape engine output takes once it leaves
the UCI layer. MoveRecord, MoveReview and GameSummary are the contract
between the reviewer, the exporter, the CLI and the MCP server.
"""

from __future__ import annotations

from dataclasses import dataclass, field

# Evaluation kinds
CENTIPAWN = "cp"
MATE = "mate"

# Colours, as the mover of a ply
WHITE = "white"
BLACK = "black"

# Move classifications, best to worst
BRILLIANT = "Brilliant"
GREAT = "Great"
BEST = "Best"
GOOD = "Good"
INACCURACY = "Inaccuracy"
MISTAKE = "Mistake"
BLUNDER = "Blunder"

CLASSIFICATIONS = (BRILLIANT, GREAT, BEST, GOOD, INACCURACY, MISTAKE, BLUNDER)


@dataclass(frozen=True)
class EvaluationResult:
    """Engine verdict on one position, always from White's point of view.

    ``value`` is centipawns for ``kind == "cp"`` and signed moves-to-mate
    for ``kind == "mate"`` (positive = White mates). A mate value of 0
    means the side to move is already checkmated.
    """

    kind: str
    value: int
    best_move: str | None = None
    principal_variation: tuple[str, ...] = ()

    @property
    def is_mate(self) -> bool:
        return self.kind == MATE

    @classmethod
    def centipawns(
        cls,
        value: int,
        best_move: str | None = None,
        principal_variation: tuple[str, ...] = (),
    ) -> EvaluationResult:
        return cls(CENTIPAWN, value, best_move, tuple(principal_variation))

    @classmethod
    def mate_in(
        cls,
        value: int,
        best_move: str | None = None,
        principal_variation: tuple[str, ...] = (),
    ) -> EvaluationResult:
        return cls(MATE, value, best_move, tuple(principal_variation))


# Returned whenever the engine cannot give a real answer
NEUTRAL_EVALUATION = EvaluationResult(CENTIPAWN, 0)


@dataclass(frozen=True)
class MoveRecord:
    """One ply of a loaded game, as produced by the rules adapter."""

    ply: int
    san: str
    uci: str
    from_square: str
    to_square: str
    color: str
    fen_before: str
    fen_after: str


@dataclass(frozen=True)
class MoveReview:
    """Scored and classified ply.

    Evaluations are in pawns, White-relative. ``eval_loss`` is the
    non-negative drop from the mover's own point of view and
    ``material_loss`` is positive when the mover lost material.
    """

    record: MoveRecord
    eval_before: float
    eval_after: float
    eval_loss: float
    is_mate: bool
    lost_mate: bool
    material_loss: int
    best_move: str | None
    classification: str
    comment: str
    principal_variation: tuple[str, ...] = ()

    @property
    def ply(self) -> int:
        return self.record.ply

    @property
    def san(self) -> str:
        return self.record.san

    @property
    def color(self) -> str:
        return self.record.color


@dataclass(frozen=True)
class KeyMoment:
    """A ply whose evaluation loss crossed the turning-point threshold."""

    move_index: int
    move: str
    color: str
    eval_loss: float
    classification: str


@dataclass
class GameSummary:
    """Per-side accuracy, classification counts and key moments."""

    white_accuracy: int
    black_accuracy: int
    white_counts: dict[str, int] = field(default_factory=dict)
    black_counts: dict[str, int] = field(default_factory=dict)
    key_moments: list[KeyMoment] = field(default_factory=list)
    blunders: int = 0
    mistakes: int = 0
    inaccuracies: int = 0


@dataclass
class GameReview:
    """Complete result of one review run."""

    moves: list[MoveReview]
    summary: GameSummary
