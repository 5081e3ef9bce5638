"""Per-session memo of engine evaluations keyed by position.

Adjacent plies share positions (the position after ply i is the position
before ply i+1), and repetitions revisit positions, so each distinct
position key reaches the engine at most once per review session.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from chess_review.models import EvaluationResult
from chess_review.uci import position_key

logger = logging.getLogger(__name__)

ComputeFn = Callable[[str, "int | None"], Awaitable[EvaluationResult]]


class AnalysisCache:
    """Append-only map from position key to EvaluationResult.

    Lookups for a key that is already being computed join the running
    computation. Computations for different keys run one at a time so a
    single-slot engine session is never asked to supersede work issued
    through the cache.
    """

    def __init__(self, compute: ComputeFn) -> None:
        self._compute = compute
        self._entries: dict[str, EvaluationResult] = {}
        self._inflight: dict[str, asyncio.Task] = {}
        self._lock = asyncio.Lock()
        self._generation = 0
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, fen: str) -> bool:
        return position_key(fen) in self._entries

    def get(self, fen: str) -> EvaluationResult | None:
        return self._entries.get(position_key(fen))

    async def get_or_compute(self, fen: str, depth: int | None = None) -> EvaluationResult:
        """Return the cached evaluation for ``fen``, computing it once if absent.

        Args:
            fen: Full FEN of the position. Only its position key is used
                for lookup; the full string goes to the engine.
            depth: Search depth for a fresh computation.

        Returns:
            White-relative EvaluationResult.
        """
        key = position_key(fen)
        cached = self._entries.get(key)
        if cached is not None:
            self.hits += 1
            logger.debug("cache hit: %s", key)
            return cached

        task = self._inflight.get(key)
        if task is None:
            self.misses += 1
            task = asyncio.ensure_future(self._compute_and_store(key, fen, depth))
            self._inflight[key] = task
            task.add_done_callback(lambda t, k=key: self._forget(k, t))
        else:
            self.hits += 1
            logger.debug("joining in-flight analysis: %s", key)

        return await asyncio.shield(task)

    async def _compute_and_store(
        self, key: str, fen: str, depth: int | None
    ) -> EvaluationResult:
        generation = self._generation
        async with self._lock:
            # Another generation may have stored it while we waited
            cached = self._entries.get(key)
            if cached is not None and generation == self._generation:
                return cached
            result = await self._compute(fen, depth)

        if generation != self._generation:
            # Cleared mid-flight: hand the result back but do not keep it
            return result
        # First completed analysis wins
        return self._entries.setdefault(key, result)

    def _forget(self, key: str, task: asyncio.Task) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]

    def clear(self) -> None:
        """Drop every entry. In-flight computations finish but are not stored."""
        if self._entries:
            logger.debug("clearing %d cached evaluations", len(self._entries))
        self._entries.clear()
        self._inflight.clear()
        self._generation += 1
        self.hits = 0
        self.misses = 0
