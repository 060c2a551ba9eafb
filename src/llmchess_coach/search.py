"""
Alpha-beta minimax over python-chess used by the local search worker.

Evaluation is material plus a light piece-square bias, always scored from white's
point of view. Captures and checks are searched first so cutoffs come early.
"""
from __future__ import annotations

import random
from typing import Dict, List, Optional

import chess

PIECE_VALUES: Dict[int, int] = {
    chess.PAWN: 100,
    chess.KNIGHT: 320,
    chess.BISHOP: 330,
    chess.ROOK: 500,
    chess.QUEEN: 900,
    chess.KING: 0,
}

MATE_SCORE = 100_000

# Indexed by square for white, mirrored for black.
PIECE_SQUARE_TABLES: Dict[int, List[int]] = {
    chess.PAWN: [
        0, 0, 0, 0, 0, 0, 0, 0,
        5, 10, 10, -20, -20, 10, 10, 5,
        5, -5, -10, 0, 0, -10, -5, 5,
        0, 0, 0, 20, 20, 0, 0, 0,
        5, 5, 10, 25, 25, 10, 5, 5,
        10, 10, 20, 30, 30, 20, 10, 10,
        50, 50, 50, 50, 50, 50, 50, 50,
        0, 0, 0, 0, 0, 0, 0, 0,
    ],
    chess.KNIGHT: [
        -50, -40, -30, -30, -30, -30, -40, -50,
        -40, -20, 0, 5, 5, 0, -20, -40,
        -30, 5, 10, 15, 15, 10, 5, -30,
        -30, 0, 15, 20, 20, 15, 0, -30,
        -30, 5, 15, 20, 20, 15, 5, -30,
        -30, 0, 10, 15, 15, 10, 0, -30,
        -40, -20, 0, 0, 0, 0, -20, -40,
        -50, -40, -30, -30, -30, -30, -40, -50,
    ],
    chess.BISHOP: [
        -20, -10, -10, -10, -10, -10, -10, -20,
        -10, 5, 0, 0, 0, 0, 5, -10,
        -10, 10, 10, 10, 10, 10, 10, -10,
        -10, 0, 10, 10, 10, 10, 0, -10,
        -10, 5, 5, 10, 10, 5, 5, -10,
        -10, 0, 5, 10, 10, 5, 0, -10,
        -10, 0, 0, 0, 0, 0, 0, -10,
        -20, -10, -10, -10, -10, -10, -10, -20,
    ],
    chess.KING: [
        20, 30, 10, 0, 0, 10, 30, 20,
        20, 20, 0, 0, 0, 0, 20, 20,
        -10, -20, -20, -20, -20, -20, -20, -10,
        -20, -30, -30, -40, -40, -30, -30, -20,
        -30, -40, -40, -50, -50, -40, -40, -30,
        -30, -40, -40, -50, -50, -40, -40, -30,
        -30, -40, -40, -50, -50, -40, -40, -30,
        -30, -40, -40, -50, -50, -40, -40, -30,
    ],
}


def evaluate(board: chess.Board) -> int:
    """Static score in centipawns, positive favours white."""
    if board.is_checkmate():
        return -MATE_SCORE if board.turn == chess.WHITE else MATE_SCORE
    if board.is_stalemate() or board.is_insufficient_material():
        return 0

    score = 0
    for square, piece in board.piece_map().items():
        value = PIECE_VALUES[piece.piece_type]
        table = PIECE_SQUARE_TABLES.get(piece.piece_type)
        if table:
            value += table[square if piece.color == chess.WHITE else chess.square_mirror(square)]
        score += value if piece.color == chess.WHITE else -value
    return score


def _ordered_moves(board: chess.Board) -> List[chess.Move]:
    def key(move: chess.Move) -> int:
        if board.is_capture(move):
            victim = board.piece_at(move.to_square)
            attacker = board.piece_at(move.from_square)
            v = PIECE_VALUES[victim.piece_type] if victim else PIECE_VALUES[chess.PAWN]
            a = PIECE_VALUES[attacker.piece_type] if attacker else 0
            return -(10_000 + 10 * v - a)
        if move.promotion:
            return -9_000
        if board.gives_check(move):
            return -5_000
        return 0

    return sorted(board.legal_moves, key=key)


def _alphabeta(board: chess.Board, depth: int, alpha: int, beta: int, ply: int) -> int:
    if depth == 0 or board.is_game_over():
        score = evaluate(board)
        # prefer quicker mates
        if abs(score) == MATE_SCORE:
            score -= ply if score > 0 else -ply
        return score

    if board.turn == chess.WHITE:
        best = -MATE_SCORE * 2
        for move in _ordered_moves(board):
            board.push(move)
            best = max(best, _alphabeta(board, depth - 1, alpha, beta, ply + 1))
            board.pop()
            alpha = max(alpha, best)
            if alpha >= beta:
                break
        return best

    best = MATE_SCORE * 2
    for move in _ordered_moves(board):
        board.push(move)
        best = min(best, _alphabeta(board, depth - 1, alpha, beta, ply + 1))
        board.pop()
        beta = min(beta, best)
        if alpha >= beta:
            break
    return best


def best_move(fen: str, depth: int = 3, rng: Optional[random.Random] = None) -> Optional[str]:
    """Return the best UCI move for the side to move in fen, or None when there is none."""
    board = chess.Board(fen)
    moves = list(board.legal_moves)
    if not moves:
        return None
    depth = max(1, depth)
    rng = rng or random.Random()
    rng.shuffle(moves)

    white = board.turn == chess.WHITE
    best: Optional[chess.Move] = None
    best_score = -MATE_SCORE * 3 if white else MATE_SCORE * 3
    alpha, beta = -MATE_SCORE * 3, MATE_SCORE * 3
    for move in moves:
        board.push(move)
        score = _alphabeta(board, depth - 1, alpha, beta, 1)
        board.pop()
        if white and score > best_score:
            best, best_score = move, score
            alpha = max(alpha, score)
        elif not white and score < best_score:
            best, best_score = move, score
            beta = min(beta, score)
    return (best or moves[0]).uci()
