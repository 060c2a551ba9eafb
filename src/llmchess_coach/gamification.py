"""Per-game tally of the player's move qualities: streaks, counts and an accuracy score."""
from __future__ import annotations

import logging
from typing import List, Optional

from .models import MoveQuality, PlayerGameStats

log = logging.getLogger("gamification")

ACCURACY_WEIGHTS = {
    "brilliant": 100,
    "good": 80,
    "inaccuracy": 50,
    "blunder": 10,
    "missed_win": 20,
}

STREAK_MILESTONES = {
    3: "3-move streak! Nice focus.",
    5: "5-move streak! On fire!",
    10: "10-move streak! Unstoppable!",
}


class PlayerStats:
    def __init__(self):
        self.reset()

    def reset(self) -> None:
        self.current_streak = 0
        self.best_streak = 0
        self.qualities: List[MoveQuality] = []

    def record(self, quality: MoveQuality) -> Optional[str]:
        """Add one classified move; returns a milestone message when one is reached."""
        self.qualities.append(quality)
        if quality in ("brilliant", "good"):
            self.current_streak += 1
            self.best_streak = max(self.best_streak, self.current_streak)
            message = STREAK_MILESTONES.get(self.current_streak)
            if message:
                log.info(message)
                return message
        else:
            self.current_streak = 0
        return None

    def accuracy(self) -> int:
        if not self.qualities:
            return 0
        total = sum(ACCURACY_WEIGHTS[q] for q in self.qualities)
        return round(total / len(self.qualities))

    def end_game_stats(self) -> PlayerGameStats:
        return PlayerGameStats(
            brilliant_moves=self.qualities.count("brilliant"),
            blunders=self.qualities.count("blunder"),
            missed_wins=self.qualities.count("missed_win"),
            longest_good_streak=self.best_streak,
            accuracy=self.accuracy(),
        )
