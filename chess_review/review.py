"""Game review orchestration.

GameReviewer walks a move list in order, evaluates the position before
and after every ply through the session's cache, scores and classifies
each move, and summarises the game. A review either completes with every
ply or produces nothing.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from collections.abc import Callable, Sequence

import chess

from chess_review.accuracy import generate_game_summary, round_half_up
from chess_review.config import ReviewConfig
from chess_review.engine import EngineSession
from chess_review.errors import EngineUnavailable, ReviewInProgress
from chess_review.games import material_loss, validate_move_list
from chess_review.models import EvaluationResult, GameReview, MoveRecord, MoveReview
from chess_review.scoring import (
    DEFAULT_THRESHOLDS,
    ScoringThresholds,
    calculate_eval_loss,
    classify_move,
    display_pawns,
    generate_move_explanation,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]

# Advantage values are clipped to this many pawns either way
ADVANTAGE_CAP = 10.0


class ReviewState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETE = "complete"
    FAILED = "failed"


def _uci_to_san(fen: str, uci: str | None) -> str | None:
    """Render an engine move in SAN, keeping UCI if it does not apply."""
    if not uci:
        return None
    board = chess.Board(fen)
    try:
        move = chess.Move.from_uci(uci)
    except ValueError:
        return uci
    if move not in board.legal_moves:
        return uci
    return board.san(move)


def _line_to_san(fen: str, line: Sequence[str]) -> tuple[str, ...]:
    """Convert a UCI principal variation to SAN, stopping at the first bad move."""
    board = chess.Board(fen)
    san_moves: list[str] = []
    for uci in line:
        try:
            move = chess.Move.from_uci(uci)
        except ValueError:
            break
        if move not in board.legal_moves:
            break
        san_moves.append(board.san(move))
        board.push(move)
    return tuple(san_moves)


class GameReviewer:
    """Drives one engine session over a game: Idle -> Running -> Complete | Failed."""

    def __init__(
        self,
        session: EngineSession,
        *,
        depth: int | None = None,
        thresholds: ScoringThresholds = DEFAULT_THRESHOLDS,
    ) -> None:
        self.session = session
        self.depth = depth
        self.thresholds = thresholds
        self.state = ReviewState.IDLE
        self.progress = 0
        self.result: GameReview | None = None

    async def generate_review(
        self,
        moves: Sequence[MoveRecord],
        on_progress: ProgressCallback | None = None,
        depth: int | None = None,
    ) -> GameReview:
        """Review every ply of ``moves``.

        Args:
            moves: Complete, consistent move list of one game.
            on_progress: Called with 0-100 after each ply.
            depth: Search depth for this review only; defaults to
                ``self.depth``.

        Returns:
            GameReview with one MoveReview per ply and the summary.

        Raises:
            ReviewInProgress: If this reviewer is already running.
            InvalidMoveList: If ``moves`` is empty or inconsistent; raised
                before the engine is asked anything.
        """
        if self.state is ReviewState.RUNNING:
            raise ReviewInProgress()

        self.result = None
        self.progress = 0
        try:
            validate_move_list(moves)
        except Exception:
            self.state = ReviewState.FAILED
            raise

        self.state = ReviewState.RUNNING
        if depth is None:
            depth = self.depth
        total = len(moves)
        logger.info("reviewing %d plies", total)
        try:
            reviews: list[MoveReview] = []
            for index, record in enumerate(moves):
                before, after = await asyncio.gather(
                    self.session.evaluate(record.fen_before, depth),
                    self.session.evaluate(record.fen_after, depth),
                )
                reviews.append(self.review_move(record, before, after))

                self.progress = round_half_up(100 * (index + 1) / total)
                if on_progress is not None:
                    on_progress(self.progress)

            summary = generate_game_summary(reviews)
        except BaseException:
            self.state = ReviewState.FAILED
            raise

        self.result = GameReview(moves=reviews, summary=summary)
        self.state = ReviewState.COMPLETE
        logger.info(
            "review complete: white %d%%, black %d%%",
            summary.white_accuracy,
            summary.black_accuracy,
        )
        return self.result

    def review_move(
        self,
        record: MoveRecord,
        before: EvaluationResult,
        after: EvaluationResult,
    ) -> MoveReview:
        """Score one ply from the evaluations around it."""
        loss = calculate_eval_loss(before, after, record.color, self.thresholds)
        lost_material = material_loss(record.fen_before, record.fen_after, record.color)
        classification = classify_move(
            loss.eval_loss, loss.is_mate, loss.lost_mate, lost_material, self.thresholds
        )
        best_move = _uci_to_san(record.fen_before, before.best_move)
        comment = generate_move_explanation(
            classification, best_move, lost_material, loss.is_mate, loss.lost_mate
        )
        return MoveReview(
            record=record,
            eval_before=display_pawns(before, record.color),
            eval_after=display_pawns(after, record.color),
            eval_loss=loss.eval_loss,
            is_mate=loss.is_mate,
            lost_mate=loss.lost_mate,
            material_loss=lost_material,
            best_move=best_move,
            classification=classification,
            comment=comment,
            principal_variation=_line_to_san(record.fen_before, before.principal_variation),
        )

    def clear_review(self) -> None:
        """Drop the last result and every cached evaluation.

        Raises:
            ReviewInProgress: If a review is running.
        """
        if self.state is ReviewState.RUNNING:
            raise ReviewInProgress("cannot clear while a review is running")
        self.result = None
        self.progress = 0
        self.state = ReviewState.IDLE
        self.session.reset()


def advantage_series(review: GameReview) -> list[float]:
    """White-relative advantage after each ply, starting at 0.0, capped at ±10."""
    series = [0.0]
    for move in review.moves:
        series.append(max(-ADVANTAGE_CAP, min(ADVANTAGE_CAP, move.eval_after)))
    return series


async def review_game(
    moves: Sequence[MoveRecord],
    config: ReviewConfig | None = None,
    on_progress: ProgressCallback | None = None,
) -> GameReview:
    """Open an engine, review ``moves`` and close the engine again.

    An engine that cannot be started does not stop the review; every
    position is then scored as neutral.
    """
    config = config or ReviewConfig()
    session = EngineSession(config)
    try:
        try:
            await session.open()
        except EngineUnavailable as exc:
            logger.warning("%s; reviewing with neutral evaluations", exc)
        reviewer = GameReviewer(session, depth=config.depth)
        return await reviewer.generate_review(moves, on_progress)
    finally:
        await session.close()
