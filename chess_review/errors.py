"""Error taxonomy for game review.

Engine-level faults are absorbed by the engine session and turned into
neutral evaluations; move-list and reviewer-state faults surface to the
caller. Every exception carries a stable ErrorCode so tool responses can
report it without string matching.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ErrorCode:
    code: str
    message: str


ENGINE_UNAVAILABLE = ErrorCode("engine_unavailable", "Stockfish engine is not available.")
ENGINE_TIMEOUT = ErrorCode("engine_timeout", "Engine did not finish its search in time.")
MALFORMED_LINE = ErrorCode("malformed_line", "Engine sent a line that could not be parsed.")
INVALID_MOVE_LIST = ErrorCode("invalid_move_list", "Move list is empty or inconsistent.")
REVIEW_IN_PROGRESS = ErrorCode("review_in_progress", "A review is already running.")
GAME_NOT_FOUND = ErrorCode("game_not_found", "No game is loaded under that id.")
NO_REVIEW = ErrorCode("no_review", "The game has not been reviewed yet.")


class ReviewError(Exception):
    """Base class for all game review errors."""

    error_code: ErrorCode = ErrorCode("review_error", "Game review failed.")

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail
        super().__init__(detail or self.error_code.message)


class EngineUnavailable(ReviewError):
    """Engine process could not be started or never became ready."""

    error_code = ENGINE_UNAVAILABLE


class EngineTimeout(ReviewError):
    """No terminal response arrived within the request timeout."""

    error_code = ENGINE_TIMEOUT


class MalformedProtocolLine(ReviewError):
    """A score-bearing engine line did not parse."""

    error_code = MALFORMED_LINE


class InvalidMoveList(ReviewError):
    """Move list is empty, unparseable or internally inconsistent."""

    error_code = INVALID_MOVE_LIST


class ReviewInProgress(ReviewError):
    """generate_review was called while another review was running."""

    error_code = REVIEW_IN_PROGRESS


def format_error(code: ErrorCode, *, detail: str | None = None) -> dict:
    return {"code": code.code, "message": code.message, "detail": detail}
