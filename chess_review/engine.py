"""Asynchronous UCI session for game review.

Owns the single connection to a Stockfish process. Provides:
- UCI handshake (uci/uciok, options, isready/readyok)
- One in-flight search at a time; a new request stops and supersedes
  the previous one
- Timeout fallback to a neutral evaluation
- Degraded mode when the engine cannot be started or exits
- A per-session AnalysisCache in front of the raw request path
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from chess_review.cache import AnalysisCache
from chess_review.config import ReviewConfig
from chess_review.errors import EngineTimeout, EngineUnavailable, MalformedProtocolLine
from chess_review.models import NEUTRAL_EVALUATION, EvaluationResult
from chess_review.uci import (
    InfoLine,
    cmd_go,
    cmd_position,
    cmd_setoption,
    normalize,
    parse_bestmove,
    parse_info_line,
    position_key,
)

logger = logging.getLogger(__name__)

# Stockfish search paths in priority order
_STOCKFISH_PATHS = [
    "/opt/homebrew/bin/stockfish",
    "/usr/local/bin/stockfish",
    "/usr/games/stockfish",
    "/usr/bin/stockfish",
]


def _find_stockfish() -> str:
    """Auto-detect Stockfish binary path.

    Checks known install paths, then falls back to PATH lookup.

    Returns:
        Path to Stockfish binary.

    Raises:
        FileNotFoundError: If Stockfish is not found anywhere.
    """
    for path_str in _STOCKFISH_PATHS:
        if Path(path_str).is_file():
            return path_str

    which_result = shutil.which("stockfish")
    if which_result is not None:
        return which_result

    raise FileNotFoundError(
        "Stockfish not found. Install it or set CHESS_REVIEW_STOCKFISH."
    )


# ---------------------------------------------------------------------------
# Process transport
# ---------------------------------------------------------------------------


class EngineProcess(Protocol):
    """Line-oriented pipe to a UCI engine."""

    def write_line(self, line: str) -> None: ...

    async def read_line(self) -> str | None: ...

    async def close(self) -> None: ...


class UciProcess:
    """EngineProcess over an asyncio subprocess."""

    def __init__(self, proc: asyncio.subprocess.Process) -> None:
        self._proc = proc

    @classmethod
    async def spawn(cls, path: str) -> UciProcess:
        proc = await asyncio.create_subprocess_exec(
            path,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.DEVNULL,
        )
        return cls(proc)

    def write_line(self, line: str) -> None:
        if self._proc.stdin is None or self._proc.stdin.is_closing():
            raise BrokenPipeError("engine stdin is closed")
        self._proc.stdin.write((line + "\n").encode())

    async def read_line(self) -> str | None:
        if self._proc.stdout is None:
            return None
        raw = await self._proc.stdout.readline()
        if not raw:
            return None
        return raw.decode(errors="replace").rstrip("\r\n")

    async def close(self) -> None:
        if self._proc.returncode is not None:
            return
        if self._proc.stdin is not None and not self._proc.stdin.is_closing():
            self._proc.stdin.close()
        try:
            await asyncio.wait_for(self._proc.wait(), timeout=2.0)
        except asyncio.TimeoutError:
            self._proc.kill()
            await self._proc.wait()


ProcessFactory = Callable[[], Awaitable[EngineProcess]]


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


@dataclass
class _PendingRequest:
    token: int
    key: str
    fen: str
    depth: int
    future: asyncio.Future
    latest: InfoLine | None = None


class EngineSession:
    """Single-slot request/response client for one UCI engine.

    Every ``go`` gets a generation token. The engine answers searches in
    the order they were started, so each ``bestmove`` retires the oldest
    outstanding token and ``info`` lines belong to that same token. Only
    the token of the live request can resolve it; output of stopped or
    timed-out searches is dropped.
    """

    def __init__(
        self,
        config: ReviewConfig | None = None,
        *,
        process_factory: ProcessFactory | None = None,
    ) -> None:
        """Create a session. Nothing is started until open().

        Args:
            config: Engine settings. Defaults to ReviewConfig().
            process_factory: Coroutine function returning a connected
                EngineProcess. Defaults to spawning Stockfish.
        """
        self.config = config or ReviewConfig()
        self._process_factory = process_factory or self._spawn_stockfish
        self._process: EngineProcess | None = None
        self._reader: asyncio.Task | None = None
        self._uciok: asyncio.Event | None = None
        self._readyok: asyncio.Event | None = None
        self._ready = False
        self._unavailable = False
        self._closing = False
        self._pending: _PendingRequest | None = None
        self._searches: deque[int] = deque()
        self._next_token = 0
        self.engine_name: str | None = None
        self.requests_sent = 0
        self.cache = AnalysisCache(self.request)

    async def _spawn_stockfish(self) -> EngineProcess:
        path = self.config.stockfish_path or _find_stockfish()
        logger.info("starting engine: %s", path)
        return await UciProcess.spawn(path)

    @property
    def ready(self) -> bool:
        return self._ready

    @property
    def available(self) -> bool:
        return not self._unavailable

    async def __aenter__(self) -> EngineSession:
        await self.open()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # -- lifecycle ----------------------------------------------------------

    async def open(self) -> None:
        """Start the engine and complete the UCI handshake.

        Raises:
            EngineUnavailable: If the engine cannot be started or does not
                acknowledge within the handshake timeout. The session then
                stays in degraded mode: every request returns the neutral
                evaluation immediately.
        """
        if self._ready:
            return
        if self._unavailable:
            raise EngineUnavailable("engine failed to start earlier in this session")

        try:
            self._process = await self._process_factory()
        except (OSError, EngineUnavailable) as exc:
            self._mark_unavailable()
            logger.error("engine failed to start: %s", exc)
            raise EngineUnavailable(str(exc)) from exc

        self._closing = False
        self._uciok = asyncio.Event()
        self._readyok = asyncio.Event()
        self._reader = asyncio.create_task(self._read_loop())

        try:
            await asyncio.wait_for(self._handshake(), timeout=self.config.handshake_timeout)
        except asyncio.TimeoutError:
            logger.error(
                "engine did not become ready within %.1fs", self.config.handshake_timeout
            )
            await self._shutdown()
            self._mark_unavailable()
            raise EngineUnavailable("handshake timed out") from None

        if self._unavailable:
            await self._shutdown()
            raise EngineUnavailable("engine exited during handshake")

        self._ready = True
        logger.info("engine ready: %s", self.engine_name or "unknown engine")

    async def _handshake(self) -> None:
        self._send("uci")
        await self._uciok.wait()
        if self._unavailable:
            return
        for name, value in self.config.engine_options().items():
            self._send(cmd_setoption(name, value))
        self._send("isready")
        await self._readyok.wait()

    async def close(self) -> None:
        """Send quit and release the process."""
        if self._process is None:
            return
        self._closing = True
        if not self._unavailable:
            self._send("quit")
        await self._shutdown()
        self._ready = False
        logger.info("engine closed")

    async def _shutdown(self) -> None:
        process, self._process = self._process, None
        reader, self._reader = self._reader, None
        if process is not None:
            await process.close()
        if reader is not None and not reader.done():
            reader.cancel()
            try:
                await reader
            except asyncio.CancelledError:
                pass
        self._abandon_pending()

    def reset(self) -> None:
        """Forget every cached evaluation (a new game was loaded)."""
        self.cache.clear()

    # -- requests -----------------------------------------------------------

    async def evaluate(self, fen: str, depth: int | None = None) -> EvaluationResult:
        """Cached evaluation of ``fen``; the engine sees each position once."""
        return await self.cache.get_or_compute(fen, depth)

    async def request(self, fen: str, depth: int | None = None) -> EvaluationResult:
        """Search ``fen`` and return its White-relative evaluation.

        A request issued while another is outstanding stops the engine and
        supersedes it. The superseded caller is never handed the new
        position's data; it receives the neutral evaluation when its own
        timeout expires.

        Args:
            fen: Full FEN of the position to search.
            depth: Search depth; defaults to config.depth.

        Returns:
            EvaluationResult, or the neutral evaluation on timeout or when
            the engine is unavailable.
        """
        if depth is None:
            depth = self.config.depth

        if not self._ready:
            if self._unavailable:
                return NEUTRAL_EVALUATION
            try:
                await self.open()
            except EngineUnavailable:
                logger.warning("engine unavailable, using neutral evaluation")
                return NEUTRAL_EVALUATION

        previous = self._pending
        if previous is not None:
            logger.warning(
                "superseding search %d (%s) with %s", previous.token, previous.key, position_key(fen)
            )
            self._send("stop")
            self._pending = None

        self._next_token += 1
        request = _PendingRequest(
            token=self._next_token,
            key=position_key(fen),
            fen=fen,
            depth=depth,
            future=asyncio.get_running_loop().create_future(),
        )
        self._pending = request
        self._send(cmd_position(fen))
        self._send(cmd_go(depth))
        if self._unavailable:
            self._pending = None
            return NEUTRAL_EVALUATION
        self._searches.append(request.token)
        self.requests_sent += 1
        logger.debug("search %d: %s depth %d", request.token, request.key, depth)

        try:
            return await asyncio.wait_for(request.future, timeout=self.config.request_timeout)
        except asyncio.TimeoutError:
            err = EngineTimeout(f"{request.key} after {self.config.request_timeout:.1f}s")
            logger.warning("search %d timed out: %s", request.token, err)
            if self._pending is request:
                self._send("stop")
                self._pending = None
            return NEUTRAL_EVALUATION

    # -- inbound ------------------------------------------------------------

    async def _read_loop(self) -> None:
        while True:
            line = await self._process.read_line()
            if line is None:
                self._on_engine_exit()
                return
            self._handle_line(line)

    def _handle_line(self, line: str) -> None:
        line = line.strip()
        if not line:
            return
        head = line.split(maxsplit=1)[0]
        if head == "info":
            self._on_info(line)
        elif head == "bestmove":
            self._on_bestmove(line)
        elif head == "uciok":
            self._uciok.set()
        elif head == "readyok":
            self._readyok.set()
        elif line.startswith("id name "):
            self.engine_name = line[len("id name "):]
        else:
            logger.debug("ignoring engine line: %s", line)

    def _on_info(self, line: str) -> None:
        try:
            info = parse_info_line(line)
        except MalformedProtocolLine:
            logger.debug("malformed info line ignored: %s", line)
            return
        if info is None or info.multipv != 1 or info.bound:
            return
        request = self._pending
        if request is None or not self._searches or self._searches[0] != request.token:
            return
        request.latest = info

    def _on_bestmove(self, line: str) -> None:
        if not self._searches:
            logger.debug("unsolicited bestmove ignored: %s", line)
            return
        token = self._searches.popleft()
        request = self._pending
        if request is None or request.token != token:
            logger.debug("dropping result of abandoned search %d", token)
            return

        self._pending = None
        best_move = parse_bestmove(line)
        if request.latest is None:
            result = EvaluationResult.centipawns(0, best_move)
        else:
            result = normalize(request.latest, request.fen, best_move)
        if not request.future.done():
            request.future.set_result(result)

    def _on_engine_exit(self) -> None:
        if self._closing:
            logger.debug("engine output closed")
        else:
            logger.error("engine exited unexpectedly; continuing with neutral evaluations")
        self._mark_unavailable()
        self._abandon_pending()
        # Wake a handshake that is still waiting
        if self._uciok is not None:
            self._uciok.set()
        if self._readyok is not None:
            self._readyok.set()

    # -- helpers ------------------------------------------------------------

    def _send(self, line: str) -> None:
        if self._process is None:
            return
        try:
            self._process.write_line(line)
        except (BrokenPipeError, ConnectionResetError) as exc:
            logger.error("engine write failed (%s): %s", line, exc)
            self._mark_unavailable()
            self._abandon_pending()

    def _mark_unavailable(self) -> None:
        self._unavailable = True
        self._ready = False

    def _abandon_pending(self) -> None:
        request, self._pending = self._pending, None
        self._searches.clear()
        if request is not None and not request.future.done():
            request.future.set_result(NEUTRAL_EVALUATION)
