import argparse
import json
import logging

import chess

from llmchess_coach.config import SETTINGS, LLMConfig, LLMSettings
from llmchess_coach.errors import IllegalMove, PromotionError
from llmchess_coach.events import AI_MOVE_APPLIED, GAME_ENDED, PLAYER_MOVE_APPLIED, THINKING
from llmchess_coach.game import GameConfig, GameOrchestrator, GameState
from llmchess_coach.history_store import GameHistoryStore
from llmchess_coach.local_search import LocalSearchBackend


def load_json_config(path: str) -> dict:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        logging.getLogger("play_one").error("Failed to read config %s: %s", path, e)
        return {}


def _print_insight(evt):
    ins = evt.insight
    if ins is None:
        return
    line = f"  [{ins.quality}] {ins.player_move}"
    if ins.better_move:
        line += f" (better: {ins.better_move})"
    print(line)
    if ins.explanation:
        print(f"  {ins.explanation}")
    if evt.milestone:
        print(f"  {evt.milestone}")


def _print_thinking(update):
    if update.text and not update.done:
        print(update.text, end="", flush=True)
    elif update.done:
        print()
        if update.chosen_move:
            print(f"  AI reasoning: {update.reasoning or '-'}")


if __name__ == "__main__":
    ap = argparse.ArgumentParser(description="Play a game against the coach in the terminal.")
    ap.add_argument("--config", default=None, help="Optional JSON config file to load defaults from.")
    ap.add_argument("--color", choices=["white", "black"], default=None, help="Side you play (random if omitted)")
    ap.add_argument("--provider", choices=["openai", "anthropic", "gemini", "groq"], default=None)
    ap.add_argument("--model", default=None, help="Model name for the remote decision engine")
    ap.add_argument("--llm", action="store_true", help="Use the remote decision engine (needs an API key)")
    ap.add_argument("--style", choices=["aggressive", "defensive", "balanced"], default=None)
    ap.add_argument("--depth", type=int, default=None, help="Local search depth")
    ap.add_argument("--fen", default=None, help="Starting position")
    ap.add_argument("--history", default=None, help="JSON file for finished games")
    ap.add_argument("--pgn-out", default=None, help="Optional path to write PGN at end")
    ap.add_argument("--log-level", default=None, help="Python logging level (e.g., INFO, DEBUG)")

    args = ap.parse_args()
    cfg_dict = load_json_config(args.config) if args.config else {}

    # CLI arg if provided -> config -> default
    def pick(*keys, default=None):
        for k in keys:
            v = getattr(args, k, None)
            if v is not None:
                return v
            if k in cfg_dict and cfg_dict[k] is not None:
                return cfg_dict[k]
        return default

    log_level = pick("log_level", default="WARNING").upper()
    logging.basicConfig(level=getattr(logging, log_level, logging.WARNING), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    log = logging.getLogger("play_one")

    provider = pick("provider", default=SETTINGS.llm_provider)
    llm = LLMSettings(
        enabled=args.llm or bool(cfg_dict.get("llm", SETTINGS.llm_enabled)),
        config=LLMConfig(
            provider=provider,
            api_key=SETTINGS.api_key_for(provider),
            model=pick("model", default=SETTINGS.llm_model),
            proxy_url=SETTINGS.llm_proxy_url or None,
            max_tokens=SETTINGS.max_tokens,
            temperature=SETTINGS.temperature,
            timeout_s=SETTINGS.responses_timeout_s,
        ),
        play_style=pick("style", default=SETTINGS.play_style),
    )
    if llm.enabled and not llm.usable:
        log.warning("No API key for %s; the local search will play", provider)

    depth = int(pick("depth", default=SETTINGS.search_depth))
    gcfg = GameConfig(llm=llm, player_color=pick("color"), starting_fen=pick("fen"), search_depth=depth)
    store = GameHistoryStore(pick("history", default=SETTINGS.history_path) or None, SETTINGS.history_capacity)
    game = GameOrchestrator(gcfg, local_backend=LocalSearchBackend(depth), history_store=store)

    game.on(PLAYER_MOVE_APPLIED, _print_insight)
    game.on(AI_MOVE_APPLIED, lambda evt: print(f"AI ({evt.source}) plays {evt.move.san}"))
    game.on(THINKING, _print_thinking)
    game.on(GAME_ENDED, lambda evt: print(f"Game over: {evt.result} ({evt.reason})"))

    try:
        game.start_game()
        print(f"You play {game.player_color}. Enter moves in SAN or UCI, 'quit' to stop.")
        while game.state != GameState.GAME_OVER:
            if game.state == GameState.PENDING_PROMOTION:
                kind = input("Promote to (q/r/b/n): ").strip()
                try:
                    game.finalize_promotion(game.pending_promotion.token, kind)
                except PromotionError as e:
                    print(f"  {e}")
                continue
            orientation = chess.WHITE if game.player_color == "white" else chess.BLACK
            print(game.oracle.board.unicode(borders=True, orientation=orientation))
            raw = input(f"{game.player_color} to move> ").strip()
            if raw.lower() in ("quit", "exit"):
                break
            try:
                game.submit_player_move(raw)
            except IllegalMove as e:
                print(f"  {e}")

        print("PGN:\n", game.oracle.pgn())
        if args.pgn_out:
            with open(args.pgn_out, "w", encoding="utf-8") as f:
                f.write(game.oracle.pgn())
            log.info("Wrote PGN to %s", args.pgn_out)
    finally:
        game.close()
