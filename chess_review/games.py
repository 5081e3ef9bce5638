"""Game loading on top of python-chess.

Turns PGN text or SAN lists into MoveRecords, checks caller-supplied move
lists for consistency, and measures material.
"""

from __future__ import annotations

import io
from collections.abc import Iterable, Sequence

import chess
import chess.pgn

from chess_review.errors import InvalidMoveList
from chess_review.models import BLACK, WHITE, MoveRecord
from chess_review.uci import position_key

# Material values in pawns
PIECE_VALUES = {
    chess.PAWN: 1,
    chess.KNIGHT: 3,
    chess.BISHOP: 3,
    chess.ROOK: 5,
    chess.QUEEN: 9,
    chess.KING: 0,
}


def color_name(turn: chess.Color) -> str:
    return WHITE if turn == chess.WHITE else BLACK


def material(board: chess.Board, color: chess.Color) -> int:
    """Total material of one side in pawns."""
    return sum(
        len(board.pieces(piece_type, color)) * value
        for piece_type, value in PIECE_VALUES.items()
    )


def material_loss(fen_before: str, fen_after: str, color: str) -> int:
    """Mover's material before the move minus after it.

    Positive means the mover has less material than before; a promotion
    shows up as a negative loss.
    """
    side = chess.WHITE if color == WHITE else chess.BLACK
    return material(chess.Board(fen_before), side) - material(chess.Board(fen_after), side)


def _records(board: chess.Board, moves: Iterable[chess.Move]) -> list[MoveRecord]:
    records: list[MoveRecord] = []
    for ply, move in enumerate(moves):
        fen_before = board.fen()
        color = color_name(board.turn)
        san = board.san(move)
        board.push(move)
        records.append(
            MoveRecord(
                ply=ply,
                san=san,
                uci=move.uci(),
                from_square=chess.square_name(move.from_square),
                to_square=chess.square_name(move.to_square),
                color=color,
                fen_before=fen_before,
                fen_after=board.fen(),
            )
        )
    return records


def moves_from_pgn(pgn_text: str) -> list[MoveRecord]:
    """Extract the main line of the first game in ``pgn_text``.

    Games with a FEN header start from that position.

    Raises:
        InvalidMoveList: If no game parses, the PGN has illegal moves, or
            the game has no moves.
    """
    game = chess.pgn.read_game(io.StringIO(pgn_text))
    if game is None:
        raise InvalidMoveList("no game found in PGN")
    if game.errors:
        raise InvalidMoveList(f"PGN could not be read: {game.errors[0]}")

    records = _records(game.board(), game.mainline_moves())
    if not records:
        raise InvalidMoveList("game has no moves")
    return records


def moves_from_san(sans: Sequence[str], starting_fen: str | None = None) -> list[MoveRecord]:
    """Build MoveRecords from SAN moves played from ``starting_fen``.

    Raises:
        InvalidMoveList: On an invalid FEN or an illegal/unreadable move.
    """
    try:
        board = chess.Board(starting_fen or chess.STARTING_FEN)
    except ValueError as exc:
        raise InvalidMoveList(f"invalid starting FEN: {exc}") from exc

    moves: list[chess.Move] = []
    replay = board.copy()
    for ply, san in enumerate(sans):
        try:
            move = replay.parse_san(san)
        except ValueError as exc:
            raise InvalidMoveList(f"ply {ply}: {san!r} is not legal ({exc})") from exc
        replay.push(move)
        moves.append(move)

    records = _records(board, moves)
    if not records:
        raise InvalidMoveList("move list is empty")
    return records


def validate_move_list(moves: Sequence[MoveRecord]) -> None:
    """Check a move list before any engine work is done.

    Every ply must follow from the previous one: indices count up from 0,
    positions chain, the colour matches the side to move, and the SAN
    move is legal and leads to ``fen_after``.

    Raises:
        InvalidMoveList: On the first inconsistency found.
    """
    if not moves:
        raise InvalidMoveList("move list is empty")

    previous_after: str | None = None
    for expected_ply, record in enumerate(moves):
        where = f"ply {expected_ply} ({record.san})"
        if record.ply != expected_ply:
            raise InvalidMoveList(f"{where}: ply index is {record.ply}")
        if previous_after is not None and position_key(record.fen_before) != position_key(previous_after):
            raise InvalidMoveList(f"{where}: does not start where the previous move ended")

        try:
            board = chess.Board(record.fen_before)
        except ValueError as exc:
            raise InvalidMoveList(f"{where}: invalid FEN ({exc})") from exc
        if record.color != color_name(board.turn):
            raise InvalidMoveList(f"{where}: {record.color} is not to move")
        try:
            board.push(board.parse_san(record.san))
        except ValueError as exc:
            raise InvalidMoveList(f"{where}: illegal move ({exc})") from exc
        if position_key(board.fen()) != position_key(record.fen_after):
            raise InvalidMoveList(f"{where}: fen_after does not match the move")

        previous_after = record.fen_after
