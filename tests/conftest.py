"""Shared test fixtures with dual-mode support (scripted vs real Stockfish).

Usage:
    uv run pytest tests/                  # Fast, scripted engine (no Stockfish)
    uv run pytest tests/ --e2e            # Also run tests against real Stockfish

Fixtures:
    scripted_engine   - Factory for ScriptedEngine, a UCI double that records
                        every command and answers searches from a script.
    make_session      - Builds an EngineSession wired to a ScriptedEngine.
    enable_validation - Sets CHESS_REVIEW_VALIDATE=1 for schema validation.
"""

from __future__ import annotations

import asyncio
import os

import pytest

from chess_review.config import ReviewConfig
from chess_review.engine import EngineSession
from chess_review.uci import position_key

# Answer for positions the script does not mention
DEFAULT_SCRIPT = ["info depth 10 score cp 0", "bestmove (none)"]


# ---------------------------------------------------------------------------
# CLI option and marker registration
# ---------------------------------------------------------------------------


def pytest_addoption(parser):
    """Register --e2e CLI flag for real Stockfish tests."""
    parser.addoption(
        "--e2e",
        action="store_true",
        default=False,
        help="Run with real Stockfish engine (no scripted double).",
    )


def pytest_configure(config):
    """Register the e2e marker."""
    config.addinivalue_line(
        "markers", "e2e: mark test as end-to-end (requires real Stockfish)"
    )


def pytest_collection_modifyitems(config, items):
    """Skip e2e tests unless --e2e is given."""
    if config.getoption("--e2e"):
        return
    skip_e2e = pytest.mark.skip(reason="Need --e2e option to run")
    for item in items:
        if "e2e" in item.keywords:
            item.add_marker(skip_e2e)


# ---------------------------------------------------------------------------
# Scripted UCI engine
# ---------------------------------------------------------------------------


class ScriptedEngine:
    """EngineProcess double that speaks just enough UCI.

    ``script`` maps a FEN (any FEN of the same position works) to the
    lines sent in reply to ``go``. A value of None holds the search: no
    output until ``stop`` arrives, which is answered with
    ``on_stop`` lines (a bestmove by default), as a real engine does.
    """

    def __init__(
        self,
        script: dict[str, list[str] | None] | None = None,
        *,
        handshake: bool = True,
        on_stop: list[str] | None = None,
    ) -> None:
        self.script = {position_key(fen): lines for fen, lines in (script or {}).items()}
        self.handshake = handshake
        self.on_stop = on_stop if on_stop is not None else ["bestmove a2a3"]
        self.commands: list[str] = []
        self.spawned = 0
        self.closed = False
        self._queue: asyncio.Queue | None = None
        self._position: str | None = None
        self._held = False

    @property
    def queue(self) -> asyncio.Queue:
        if self._queue is None:
            self._queue = asyncio.Queue()
        return self._queue

    async def factory(self) -> ScriptedEngine:
        self.spawned += 1
        return self

    @property
    def searches(self) -> list[str]:
        """FENs submitted with ``position``, in order."""
        return [c[len("position fen "):] for c in self.commands if c.startswith("position fen ")]

    def push(self, line: str | None) -> None:
        """Inject an engine line (None = end of output)."""
        self.queue.put_nowait(line)

    # -- EngineProcess ------------------------------------------------------

    def write_line(self, line: str) -> None:
        self.commands.append(line)
        if line == "uci" and self.handshake:
            self.push("id name Scripted Fish")
            self.push("id author tests")
            self.push("uciok")
        elif line == "isready" and self.handshake:
            self.push("readyok")
        elif line.startswith("position fen "):
            self._position = line[len("position fen "):]
        elif line.startswith("go"):
            lines = self.script.get(position_key(self._position), DEFAULT_SCRIPT)
            if lines is None:
                self._held = True
                return
            for out in lines:
                self.push(out)
        elif line == "stop":
            if self._held:
                self._held = False
                for out in self.on_stop:
                    self.push(out)
        elif line == "quit":
            self.push(None)

    async def read_line(self) -> str | None:
        return await self.queue.get()

    async def close(self) -> None:
        self.closed = True
        self.push(None)


@pytest.fixture()
def scripted_engine():
    """Return the ScriptedEngine class for building doubles."""
    return ScriptedEngine


@pytest.fixture()
def make_session():
    """Build an EngineSession on a ScriptedEngine with short timeouts."""

    def _make(engine: ScriptedEngine, **config) -> EngineSession:
        config.setdefault("request_timeout", 1.0)
        config.setdefault("handshake_timeout", 1.0)
        return EngineSession(ReviewConfig(**config), process_factory=engine.factory)

    return _make


# ---------------------------------------------------------------------------
# Schema validation fixture
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def enable_validation():
    """Set CHESS_REVIEW_VALIDATE=1 for the test session.

    Restores the original env var value after the test.
    """
    original = os.environ.get("CHESS_REVIEW_VALIDATE")
    os.environ["CHESS_REVIEW_VALIDATE"] = "1"
    yield
    if original is None:
        os.environ.pop("CHESS_REVIEW_VALIDATE", None)
    else:
        os.environ["CHESS_REVIEW_VALIDATE"] = original
