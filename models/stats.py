from pydantic import BaseModel
from typing import Optional
from enum import Enum

class FlashcardStatus(str, Enum):
    NONE = "None"
    HARD = "Hard"
    GOOD = "Good"
    EASY = "Easy"

class StatCounters(BaseModel):
    """Raw inputs of the stats recompute; everything else in Stats is derived from these."""
    passed1: int = 0
    passed2: int = 0
    failed: int = 0
    in_queue_count: int = 0
    quit_flag: bool = False
    last_practiced_at: Optional[str] = None  # ISO datetime
    flashcard_status: FlashcardStatus = FlashcardStatus.NONE

class Stats(StatCounters):
    total_attempts: int = 0
    failure_rate: float = 0.0
    success_rate: float = 1.0
    rank_point: int = 0
    level: int = 1

    class Config:
        from_attributes = True

    def counters(self) -> StatCounters:
        return StatCounters(
            passed1=self.passed1,
            passed2=self.passed2,
            failed=self.failed,
            in_queue_count=self.in_queue_count,
            quit_flag=self.quit_flag,
            last_practiced_at=self.last_practiced_at,
            flashcard_status=self.flashcard_status,
        )
