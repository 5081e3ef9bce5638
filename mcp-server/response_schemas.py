"""Response schemas and minification for MCP tool responses.

Full reviews are large; tool responses carry the summary plus only the
moves worth talking about. The complete document is available through
export_review.

PGN string format for move lists uses standard chess notation
(1.e4 e5 2.Nf3 ...) which is natural for the LLM agent to read.
"""

from __future__ import annotations

import os

# Classifications that show up in the minified move list
_NOTABLE = ("Inaccuracy", "Mistake", "Blunder", "Brilliant")


# ---------------------------------------------------------------------------
# Minification functions
# ---------------------------------------------------------------------------


def minify_game(game_id: str, sans: list[str], reviewed: bool) -> dict:
    """Compact description of a loaded game.

    Args:
        game_id: UUID of the game.
        sans: SAN moves of the main line.
        reviewed: Whether a review result is stored for the game.

    Returns:
        Dict with game_id, ply_count, move_list (PGN string), reviewed.
    """
    return {
        "game_id": game_id,
        "ply_count": len(sans),
        "move_list": _moves_to_pgn_string(sans),
        "reviewed": reviewed,
    }


def minify_review(game_id: str, review: dict) -> dict:
    """Minify an exported review dict for MCP response.

    Flattens the summary, keeps key moments, and lists only notable moves
    (inaccuracies, mistakes, blunders, brilliancies) with the engine's
    alternative.

    Args:
        game_id: UUID of the game.
        review: Review dict as produced by chess_review.export.review_to_dict.

    Returns:
        Minified dict.
    """
    summary = review.get("summary", {})
    result = {"game_id": game_id}

    for key in ("whiteAccuracy", "blackAccuracy", "blunders", "mistakes", "inaccuracies"):
        result[key] = summary.get(key)

    result["keyMoments"] = [
        {
            "moveIndex": m.get("moveIndex"),
            "move": m.get("move"),
            "classification": m.get("classification"),
        }
        for m in summary.get("keyMoments", [])
    ]

    notable = []
    for index, move in enumerate(review.get("moves", [])):
        if move.get("classification") in _NOTABLE:
            entry = {
                "moveIndex": index,
                "move": move.get("move"),
                "classification": move.get("classification"),
            }
            # Only include bestMove when the engine gave one
            if move.get("bestMove") is not None:
                entry["bestMove"] = move["bestMove"]
            notable.append(entry)
    result["notableMoves"] = notable

    # Removed: per-move evals and comments (see export_review)
    return result


# ---------------------------------------------------------------------------
# Helper: move list to PGN string
# ---------------------------------------------------------------------------


def _moves_to_pgn_string(moves: list[str], first_ply: int = 0) -> str:
    """Convert a list of SAN moves to a PGN move string.

    E.g., ['e4', 'e5', 'Nf3', 'Nc6'] -> '1.e4 e5 2.Nf3 Nc6'. A game that
    starts with Black to move (``first_ply`` odd) opens with '1...'.

    Args:
        moves: List of SAN move strings.
        first_ply: Ply index of the first move.

    Returns:
        PGN-formatted move string.
    """
    if not moves:
        return ""

    parts = []
    for i, move in enumerate(moves, start=first_ply):
        move_num = i // 2 + 1
        if i % 2 == 0:
            parts.append(f"{move_num}.{move}")
        elif i == first_ply:
            parts.append(f"{move_num}...{move}")
        else:
            parts.append(move)

    return " ".join(parts)


# ---------------------------------------------------------------------------
# Validation schemas (dict-based)
# ---------------------------------------------------------------------------

GAME_SCHEMA = {
    "game_id": str,
    "ply_count": int,
    "move_list": str,
    "reviewed": bool,
}

REVIEW_SCHEMA = {
    "game_id": str,
    "whiteAccuracy": int,
    "blackAccuracy": int,
    "blunders": int,
    "mistakes": int,
    "inaccuracies": int,
    "keyMoments": list,
    "notableMoves": list,
}

EXPORT_SCHEMA = {
    "game_id": str,
    "format": str,
    "content": str,
}

ERROR_SCHEMA = {
    "error": str,
    "code": str,
}


def validate_response(response: dict, schema: dict) -> list[str]:
    """Validate a response dict against a schema.

    Only runs when CHESS_REVIEW_VALIDATE=1 env var is set.

    Args:
        response: Response dict to validate.
        schema: Dict mapping key names to expected types (or tuple of types).

    Returns:
        List of validation error strings (empty = valid).
    """
    if os.environ.get("CHESS_REVIEW_VALIDATE") != "1":
        return []

    errors = []

    if not isinstance(response, dict):
        errors.append(f"Response is not a dict: {type(response).__name__}")
        return errors

    for key, expected_types in schema.items():
        if key not in response:
            errors.append(f"Missing key: {key}")
            continue

        value = response[key]
        if isinstance(expected_types, tuple):
            if not isinstance(value, expected_types):
                type_names = ", ".join(t.__name__ for t in expected_types)
                errors.append(
                    f"Key '{key}': expected ({type_names}), "
                    f"got {type(value).__name__}"
                )
        else:
            if not isinstance(value, expected_types):
                errors.append(
                    f"Key '{key}': expected {expected_types.__name__}, "
                    f"got {type(value).__name__}"
                )

    return errors
