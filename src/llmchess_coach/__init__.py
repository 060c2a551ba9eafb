"""
LLM Chess Coach package.

Components:
- game: GameOrchestrator state machine for one human-vs-AI game
- rules_oracle/move_engine/pieces: legality, move application, piece registry
- llm_engine/providers/context: remote decision engine, chat transports, prompt budgeting
- local_search/search: minimax fallback running on a worker
- insight/gamification: move quality rating and per-game player stats
- memory/history_store: per-game move memory and finished-game records
"""
# Package exports are intentionally minimal; import modules directly as needed.
