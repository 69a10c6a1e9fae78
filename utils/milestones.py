from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple

from models.session import RewardEvent, RewardEventType

FIBONACCI_MILESTONES: Tuple[Tuple[int, str], ...] = (
    (1, "Spark"),
    (2, "Initiate"),
    (3, "Adept"),
    (5, "Scholar"),
    (8, "Sage"),
    (13, "Maven"),
    (21, "Savant"),
    (34, "Prodigy"),
    (55, "Virtuoso"),
    (89, "Master"),
    (144, "Grandmaster"),
    (233, "Enlightened"),
    (377, "Ascendant"),
    (610, "Nexus"),
    (987, "Celestial"),
)


@dataclass(frozen=True)
class Tier:
    index: int  # -1 for the virtual start tier
    xp: int
    name: str


START_TIER = Tier(index=-1, xp=0, name="Start")


class MilestoneEvaluator:
    """XP ladder of named tiers.

    Unlocks are tracked by the highest tier index ever reached, so a later XP
    drop (quit penalties) never re-announces a tier.
    """

    def __init__(self, milestones: Sequence[Tuple[int, str]] = FIBONACCI_MILESTONES):
        ordered = sorted(milestones, key=lambda pair: pair[0])
        self.tiers: List[Tier] = [Tier(i, xp, name) for i, (xp, name) in enumerate(ordered)]

    def tier_index(self, xp: int) -> int:
        index = -1
        for tier in self.tiers:
            if tier.xp > xp:
                break
            index = tier.index
        return index

    def current_tier(self, xp: int) -> Tier:
        index = self.tier_index(xp)
        return self.tiers[index] if index >= 0 else START_TIER

    def next_tier(self, xp: int) -> Optional[Tier]:
        return next((tier for tier in self.tiers if tier.xp > xp), None)

    def progress_fraction(self, xp: int) -> float:
        upcoming = self.next_tier(xp)
        if upcoming is None:
            return 1.0
        current = self.current_tier(xp)
        span = upcoming.xp - current.xp
        if span <= 0:
            return 0.0
        return min(1.0, max(0.0, (xp - current.xp) / span))

    def detect_unlocks(
        self,
        xp: int,
        highest_unlocked_index: int,
        timestamp: Optional[str] = None,
    ) -> Tuple[int, List[RewardEvent]]:
        """Return the new highest index and one event per newly reached tier."""
        reached = self.tier_index(xp)
        if reached <= highest_unlocked_index:
            return highest_unlocked_index, []
        timestamp = timestamp or datetime.now(timezone.utc).isoformat()
        events = [
            RewardEvent(
                timestamp=timestamp,
                type=RewardEventType.MILESTONE_UNLOCKED,
                description=f"Milestone unlocked: {tier.name} ({tier.xp} XP)",
                xp_delta=0,
            )
            for tier in self.tiers[highest_unlocked_index + 1:reached + 1]
        ]
        return reached, events

    def summary(self, xp: int, highest_unlocked_index: int = -1) -> dict:
        current = self.current_tier(xp)
        upcoming = self.next_tier(xp)
        return {
            "xp": xp,
            "current_tier": {"name": current.name, "xp": current.xp, "index": current.index},
            "next_tier": (
                {"name": upcoming.name, "xp": upcoming.xp, "index": upcoming.index}
                if upcoming else None
            ),
            "progress_fraction": round(self.progress_fraction(xp), 4),
            "badges": [
                {"name": tier.name, "xp": tier.xp, "unlocked": tier.index <= highest_unlocked_index}
                for tier in self.tiers
            ],
        }
