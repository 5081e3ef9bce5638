"""MCP server for chess game review.

Exposes Stockfish game review tools via FastMCP. Games are stored in
memory keyed by UUID. One engine session serves every tool call; its
evaluation cache holds the positions of the most recently reviewed game.
"""

from __future__ import annotations

import logging
import sys
import uuid
from pathlib import Path

# Add project root and mcp-server dir to path for imports
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_MCP_SERVER_DIR = Path(__file__).resolve().parent
sys.path.insert(0, str(_PROJECT_ROOT))
sys.path.insert(0, str(_MCP_SERVER_DIR))

from mcp.server.fastmcp import FastMCP

from chess_review.config import ReviewConfig
from chess_review.engine import EngineSession
from chess_review.errors import (
    GAME_NOT_FOUND,
    NO_REVIEW,
    ErrorCode,
    ReviewError,
    format_error,
)
from chess_review.export import export_review_json, export_review_markdown, review_to_dict
from chess_review.games import moves_from_pgn
from chess_review.review import GameReviewer, advantage_series

from response_schemas import minify_game, minify_review  # noqa: E402

logger = logging.getLogger(__name__)

mcp = FastMCP("chess-review")

# In-memory game store: game_id -> {moves, review}
_games: dict[str, dict] = {}

# Shared reviewer (and its engine session), created on first review
_reviewer: GameReviewer | None = None
# Game (and search depth) whose positions are currently in the session cache
_cached_game_id: str | None = None
_cached_depth: int | None = None


def _error(code: ErrorCode, detail: str | None = None) -> dict:
    err = format_error(code, detail=detail)
    return {"error": err["detail"] or err["message"], "code": err["code"]}


def _get_game(game_id: str) -> dict | None:
    """Look up a game by ID.

    Args:
        game_id: UUID string.

    Returns:
        Game record dict or None if not found.
    """
    return _games.get(game_id)


def _get_reviewer() -> GameReviewer:
    """Return the shared reviewer, creating its engine session lazily."""
    global _reviewer
    if _reviewer is None:
        config = ReviewConfig.from_env()
        _reviewer = GameReviewer(EngineSession(config), depth=config.depth)
    return _reviewer


# ---------------------------------------------------------------------------
# Game tools
# ---------------------------------------------------------------------------


@mcp.tool()
def load_game(pgn: str) -> dict:
    """Load a game from PGN text for review.

    Args:
        pgn: PGN text. Only the first game's main line is used.

    Returns:
        Dict with game_id, ply_count, move_list (PGN string), reviewed.
    """
    try:
        moves = moves_from_pgn(pgn)
    except ReviewError as exc:
        return _error(exc.error_code, str(exc))

    game_id = str(uuid.uuid4())
    _games[game_id] = {"moves": moves, "review": None}
    return minify_game(game_id, [m.san for m in moves], reviewed=False)


@mcp.tool()
def list_games() -> dict:
    """List loaded games.

    Returns:
        Dict with a games list of {game_id, ply_count, move_list, reviewed}.
    """
    return {
        "games": [
            minify_game(game_id, [m.san for m in game["moves"]], game["review"] is not None)
            for game_id, game in _games.items()
        ]
    }


# ---------------------------------------------------------------------------
# Review tools
# ---------------------------------------------------------------------------


@mcp.tool()
async def review_game(game_id: str, depth: int | None = None) -> dict:
    """Review every move of a loaded game with Stockfish.

    Args:
        game_id: UUID of the game.
        depth: Search depth per position (default from configuration).

    Returns:
        Summary with accuracies, error counts, key moments and notable moves.
    """
    global _cached_game_id, _cached_depth

    game = _get_game(game_id)
    if game is None:
        return _error(GAME_NOT_FOUND, f"Game not found: {game_id}")

    try:
        reviewer = _get_reviewer()
    except ValueError as exc:
        return {"error": f"Bad configuration: {exc}", "code": "bad_config"}

    try:
        if depth is None:
            depth = reviewer.depth
        # Cached evaluations are only reused for the same game and depth
        if _cached_game_id != game_id or _cached_depth != depth:
            reviewer.clear_review()
            _cached_game_id = game_id
            _cached_depth = depth
        review = await reviewer.generate_review(game["moves"], depth=depth)
    except ReviewError as exc:
        logger.warning("review of %s failed: %s", game_id, exc)
        return _error(exc.error_code, str(exc))

    game["review"] = review
    return minify_review(game_id, review_to_dict(review))


@mcp.tool()
def get_review(game_id: str) -> dict:
    """Return the stored review summary of a game.

    Args:
        game_id: UUID of the game.

    Returns:
        Minified review dict plus the advantage series after each ply.
    """
    game = _get_game(game_id)
    if game is None:
        return _error(GAME_NOT_FOUND, f"Game not found: {game_id}")
    review = game["review"]
    if review is None:
        return _error(NO_REVIEW)

    result = minify_review(game_id, review_to_dict(review))
    result["advantage"] = [round(v, 2) for v in advantage_series(review)]
    return result


@mcp.tool()
def clear_review(game_id: str) -> dict:
    """Discard a game's review and the cached engine evaluations.

    Args:
        game_id: UUID of the game.

    Returns:
        Dict with game_id and a message.
    """
    global _cached_game_id, _cached_depth

    game = _get_game(game_id)
    if game is None:
        return _error(GAME_NOT_FOUND, f"Game not found: {game_id}")

    if _cached_game_id == game_id:
        try:
            _get_reviewer().clear_review()
        except ReviewError as exc:
            return _error(exc.error_code, str(exc))
        _cached_game_id = None
        _cached_depth = None
    game["review"] = None
    return {"game_id": game_id, "message": "Review cleared"}


@mcp.tool()
def export_review(game_id: str, fmt: str = "json") -> dict:
    """Export a full review as JSON or markdown text.

    Args:
        game_id: UUID of the game.
        fmt: 'json' or 'markdown'.

    Returns:
        Dict with game_id, format and content.
    """
    game = _get_game(game_id)
    if game is None:
        return _error(GAME_NOT_FOUND, f"Game not found: {game_id}")
    review = game["review"]
    if review is None:
        return _error(NO_REVIEW)

    if fmt == "json":
        content = export_review_json(review)
    elif fmt == "markdown":
        content = export_review_markdown(review)
    else:
        return {"error": f"Unknown format: {fmt}. Use 'json' or 'markdown'.", "code": "bad_request"}
    return {"game_id": game_id, "format": fmt, "content": content}


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    mcp.run()
