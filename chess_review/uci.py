"""UCI line parsing, position keys and score normalisation.

Every score that leaves this module is White-relative. The engine
reports scores for the side to move in the submitted position, so the
sign is flipped here, once, when Black is to move.
"""

from __future__ import annotations

from dataclasses import dataclass

from chess_review.errors import MalformedProtocolLine
from chess_review.models import CENTIPAWN, MATE, EvaluationResult

# Keys of "info" that take exactly one value token
_SINGLE_VALUE_KEYS = {
    "depth", "seldepth", "time", "nodes", "multipv", "currmove",
    "currmovenumber", "hashfull", "nps", "tbhits", "sbhits", "cpuload",
}


def position_key(fen: str) -> str:
    """Canonical identity of a position.

    Keeps piece placement, side to move, castling rights and en passant
    square; drops the move counters, which do not change the evaluation.
    """
    parts = fen.split()
    if len(parts) >= 4:
        return " ".join(parts[:4])
    return fen.strip()


def side_to_move(fen: str) -> str:
    """Return 'w' or 'b' for a FEN string."""
    parts = fen.split()
    if len(parts) >= 2 and parts[1] == "b":
        return "b"
    return "w"


@dataclass(frozen=True)
class InfoLine:
    """Score-bearing part of one ``info`` line, engine perspective."""

    kind: str
    value: int
    principal_variation: tuple[str, ...] = ()
    multipv: int = 1
    depth: int | None = None
    bound: bool = False


def parse_info_line(line: str) -> InfoLine | None:
    """Parse an ``info`` line.

    Returns:
        InfoLine when the line carries a score, None for any other info
        line (currmove updates, ``info string`` chatter, ...).

    Raises:
        MalformedProtocolLine: If a score token is present but unreadable.
    """
    tokens = line.split()
    if not tokens or tokens[0] != "info":
        return None

    kind: str | None = None
    value: int | None = None
    pv: tuple[str, ...] = ()
    multipv = 1
    depth: int | None = None
    bound = False

    i = 1
    while i < len(tokens):
        token = tokens[i]
        if token == "string":
            break
        if token == "score":
            if i + 2 >= len(tokens):
                raise MalformedProtocolLine(line)
            kind = tokens[i + 1]
            if kind not in (CENTIPAWN, MATE):
                raise MalformedProtocolLine(line)
            try:
                value = int(tokens[i + 2])
            except ValueError:
                raise MalformedProtocolLine(line) from None
            i += 3
            if i < len(tokens) and tokens[i] in ("lowerbound", "upperbound"):
                bound = True
                i += 1
            continue
        if token == "pv":
            pv = tuple(tokens[i + 1:])
            break
        if token in _SINGLE_VALUE_KEYS and i + 1 < len(tokens):
            if token == "multipv":
                multipv = _int_or(tokens[i + 1], 1)
            elif token == "depth":
                depth = _int_or(tokens[i + 1], None)
            i += 2
            continue
        i += 1

    if kind is None or value is None:
        return None
    return InfoLine(kind, value, pv, multipv, depth, bound)


def _int_or(token: str, default):
    try:
        return int(token)
    except ValueError:
        return default


def parse_bestmove(line: str) -> str | None:
    """Return the move of a ``bestmove`` line, None for ``(none)``."""
    tokens = line.split()
    if len(tokens) < 2 or tokens[1] in ("(none)", "0000"):
        return None
    return tokens[1]


def normalize(info: InfoLine, fen: str, best_move: str | None = None) -> EvaluationResult:
    """Turn an engine-perspective score into a White-relative result."""
    value = info.value
    if side_to_move(fen) == "b":
        value = -value
    if info.kind == MATE:
        return EvaluationResult.mate_in(value, best_move, info.principal_variation)
    return EvaluationResult.centipawns(value, best_move, info.principal_variation)


# ---------------------------------------------------------------------------
# Outbound commands
# ---------------------------------------------------------------------------


def cmd_setoption(name: str, value) -> str:
    return f"setoption name {name} value {value}"


def cmd_position(fen: str) -> str:
    return f"position fen {fen}"


def cmd_go(depth: int) -> str:
    return f"go depth {depth}"
