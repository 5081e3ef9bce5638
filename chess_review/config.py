"""Runtime configuration for engine sessions and reviews.

Values come from keyword arguments or CHESS_REVIEW_* environment
variables. Engine options are handed to Stockfish verbatim.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_DEPTH = 15
DEFAULT_REQUEST_TIMEOUT = 10.0
DEFAULT_HANDSHAKE_TIMEOUT = 10.0


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


@dataclass(frozen=True)
class ReviewConfig:
    """Settings shared by the engine session and the reviewer."""

    stockfish_path: str | None = None
    depth: int = DEFAULT_DEPTH
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    handshake_timeout: float = DEFAULT_HANDSHAKE_TIMEOUT
    threads: int = 1
    hash_mb: int = 16
    skill_level: int = 20
    multipv: int = 1

    @classmethod
    def from_env(cls) -> ReviewConfig:
        """Build a config from CHESS_REVIEW_* environment variables.

        Raises:
            ValueError: If a numeric variable does not parse.
        """
        return cls(
            stockfish_path=os.environ.get("CHESS_REVIEW_STOCKFISH") or None,
            depth=_env_int("CHESS_REVIEW_DEPTH", DEFAULT_DEPTH),
            request_timeout=_env_float("CHESS_REVIEW_TIMEOUT", DEFAULT_REQUEST_TIMEOUT),
            threads=_env_int("CHESS_REVIEW_THREADS", 1),
            hash_mb=_env_int("CHESS_REVIEW_HASH", 16),
            skill_level=_env_int("CHESS_REVIEW_SKILL", 20),
        )

    def engine_options(self) -> dict[str, int]:
        """UCI options sent after the handshake, in send order."""
        return {
            "Threads": self.threads,
            "Hash": self.hash_mb,
            "MultiPV": self.multipv,
            "Skill Level": self.skill_level,
        }
