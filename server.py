"""
Flask API for playing against the coach.

Endpoints:
- POST /api/games                     -> start a game (AI replies first when it has white)
- GET  /api/games/<id>                -> current state of a game
- POST /api/games/<id>/move           -> submit a player move; returns the insight and the AI reply
- POST /api/games/<id>/promotion      -> choose the piece for a pending promotion
- GET  /api/history                   -> finished games, newest first
- GET  /api/providers                 -> available model providers

Games live in memory; finished games are kept by the shared GameHistoryStore.
"""
from __future__ import annotations

import logging
import threading
import time
import uuid
from typing import Dict, Optional

from flask import Flask, jsonify, request

from llmchess_coach.config import SETTINGS, LLMConfig, LLMSettings
from llmchess_coach.errors import GameStateError, IllegalMove, MoveApplicationError, PromotionError
from llmchess_coach.events import AI_MOVE_APPLIED
from llmchess_coach.game import GameConfig, GameOrchestrator
from llmchess_coach.history_store import GameHistoryStore
from llmchess_coach.local_search import LocalSearchBackend
from llmchess_coach.providers import all_provider_infos

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")

app = Flask(__name__)
games_lock = threading.Lock()

GAMES: Dict[str, dict] = {}
GAME_TTL_S = 3600  # drop inactive games after an hour
HISTORY = GameHistoryStore(SETTINGS.history_path or None, SETTINGS.history_capacity)


def _new_local_backend() -> LocalSearchBackend:
    return LocalSearchBackend(SETTINGS.search_depth, use_process=SETTINGS.search_in_process)


def _llm_settings_from_payload(payload: Optional[dict], play_style: str) -> LLMSettings:
    base = LLMSettings.from_settings()
    if not isinstance(payload, dict):
        base.play_style = play_style
        return base
    provider = str(payload.get("provider") or base.config.provider).lower()
    return LLMSettings(
        enabled=bool(payload.get("enabled", base.enabled)),
        config=LLMConfig(
            provider=provider,
            api_key=payload.get("api_key") or SETTINGS.api_key_for(provider),
            model=payload.get("model") or base.config.model,
            proxy_url=payload.get("proxy_url") or base.config.proxy_url,
            max_tokens=base.config.max_tokens,
            temperature=base.config.temperature,
            timeout_s=base.config.timeout_s,
        ),
        play_style=play_style,
    )


def _cleanup_stale_games(max_age_s: int = GAME_TTL_S):
    now = time.time()
    with games_lock:
        expired = [gid for gid, sess in GAMES.items() if now - sess.get("updated_at", now) > max_age_s]
        dropped = [GAMES.pop(gid) for gid in expired]
    for sess in dropped:
        sess["game"].close()


def _get_session(game_id: str) -> Optional[dict]:
    with games_lock:
        return GAMES.get(game_id)


def _serialize(game_id: str, session: dict, ai_move: Optional[dict] = None) -> dict:
    data = session["game"].snapshot()
    data["game_id"] = game_id
    data["ai_move"] = ai_move
    return data


def _track_ai_moves(session: dict) -> None:
    """Remember the last AI move of a request so it can be returned to the client."""
    def on_ai_move(evt):
        session["last_ai_move"] = {"uci": evt.move.uci, "san": evt.move.san, "source": evt.source}

    session["game"].on(AI_MOVE_APPLIED, on_ai_move)


@app.route("/api/games", methods=["POST"])
def create_game():
    _cleanup_stale_games()
    data = request.get_json(silent=True) or {}
    color = data.get("player_color")
    if color is not None and color not in ("white", "black"):
        return jsonify({"error": "player_color must be 'white' or 'black'"}), 400
    play_style = data.get("play_style") or SETTINGS.play_style
    cfg = GameConfig(
        llm=_llm_settings_from_payload(data.get("llm"), play_style),
        player_color=color,
        starting_fen=data.get("starting_fen"),
    )
    game = GameOrchestrator(cfg, local_backend=_new_local_backend(), history_store=HISTORY)
    game_id = data.get("game_id") or f"game_{int(time.time())}_{uuid.uuid4().hex[:6]}"
    session = {"game": game, "lock": threading.Lock(), "updated_at": time.time(), "last_ai_move": None}
    _track_ai_moves(session)

    with session["lock"]:
        try:
            game.start_game()
        except ValueError as e:
            game.close()
            return jsonify({"error": f"invalid starting position: {e}"}), 400
        with games_lock:
            GAMES[game_id] = session
        return jsonify(_serialize(game_id, session, session["last_ai_move"])), 201


@app.route("/api/games/<game_id>", methods=["GET"])
def get_game(game_id: str):
    session = _get_session(game_id)
    if not session:
        return jsonify({"error": "not found"}), 404
    with session["lock"]:
        return jsonify(_serialize(game_id, session))


@app.route("/api/games/<game_id>/move", methods=["POST"])
def game_move(game_id: str):
    _cleanup_stale_games()
    session = _get_session(game_id)
    if not session:
        return jsonify({"error": "not found"}), 404
    data = request.get_json(silent=True) or {}
    raw_move = data.get("move")
    if not raw_move:
        return jsonify({"error": "move is required"}), 400

    with session["lock"]:
        session["last_ai_move"] = None
        session["updated_at"] = time.time()
        game = session["game"]
        try:
            game.submit_player_move(str(raw_move))
        except IllegalMove as e:
            return jsonify({"error": e.reason, "move": e.move}), 400
        except GameStateError as e:
            return jsonify({"error": "not_player_turn", "detail": str(e), "state": game.state.value}), 409
        except MoveApplicationError:
            logging.exception("Move %s could not be applied in game %s", raw_move, game_id)
            return jsonify({"error": "move_application_failed"}), 500
        return jsonify(_serialize(game_id, session, session["last_ai_move"]))


@app.route("/api/games/<game_id>/promotion", methods=["POST"])
def game_promotion(game_id: str):
    session = _get_session(game_id)
    if not session:
        return jsonify({"error": "not found"}), 404
    data = request.get_json(silent=True) or {}
    token, piece = data.get("token"), data.get("piece")
    if not token or not piece:
        return jsonify({"error": "token and piece are required"}), 400

    with session["lock"]:
        session["last_ai_move"] = None
        session["updated_at"] = time.time()
        game = session["game"]
        try:
            game.finalize_promotion(str(token), str(piece))
        except PromotionError as e:
            return jsonify({"error": "invalid_promotion", "detail": str(e)}), 400
        except GameStateError as e:
            return jsonify({"error": "no_pending_promotion", "detail": str(e)}), 409
        return jsonify(_serialize(game_id, session, session["last_ai_move"]))


@app.route("/api/history", methods=["GET"])
def history():
    return jsonify({
        "games": [r.to_dict() for r in HISTORY.history()],
        "last_game_summary": HISTORY.last_game_summary(),
    })


@app.route("/api/providers", methods=["GET"])
def providers():
    return jsonify([info.to_dict() for info in all_provider_infos()])


@app.after_request
def add_cors_headers(response):
    response.headers["Access-Control-Allow-Origin"] = request.headers.get("Origin", "*")
    response.headers["Access-Control-Allow-Headers"] = "Content-Type, Authorization"
    response.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
    response.headers["Cache-Control"] = "no-store, max-age=0"
    return response


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=8000, debug=True)
