from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from enum import Enum

from .item import VocabularyItem
from .relation import QuizMode

class StudyConfig(BaseModel):
    table_ids: List[int] = Field(default_factory=list)
    words: List[VocabularyItem] = Field(default_factory=list)
    relation_ids: List[int] = Field(default_factory=list)
    modes: List[QuizMode] = Field(default_factory=list)
    use_random_relation: bool = False

class GlobalStats(BaseModel):
    xp: int = 0
    completed_session_count: int = 0
    abandoned_session_count: int = 0
    highest_milestone_index: int = -1

    class Config:
        from_attributes = True

class RewardEventType(str, Enum):
    MILESTONE_UNLOCKED = "milestone_unlocked"
    SESSION_COMPLETE = "session_complete"
    SESSION_QUIT = "session_quit"

class RewardEvent(BaseModel):
    timestamp: str  # ISO datetime
    type: RewardEventType
    description: str
    xp_delta: int = 0

    model_config = ConfigDict(frozen=True)

class SessionStatus(str, Enum):
    COMPLETED = "completed"
    QUIT = "quit"

class SessionRecord(BaseModel):
    id: str
    created_at: str  # ISO datetime
    status: SessionStatus
    table_ids: List[int] = Field(default_factory=list)
    table_names: List[str] = Field(default_factory=list)
    modes: List[QuizMode] = Field(default_factory=list)
    word_count: int = 0

    class Config:
        from_attributes = True

class SortCriterion(str, Enum):
    PRIORITY_SCORE = "priority_score"
    RANDOM = "random"
    LOWEST_RANK_POINT = "lowest_rank_point"
    LOWEST_SUCCESS_RATE = "lowest_success_rate"
    LONGEST_SINCE_PRACTICE = "longest_since_practice"
    PRIORITIZE_QUIT = "prioritize_quit"

class WordSelect(BaseModel):
    table_ids: List[int]
    sort_criteria: List[SortCriterion] = Field(
        default_factory=lambda: [SortCriterion.PRIORITY_SCORE], max_length=3
    )
    word_count: int = Field(default=10, ge=1)
    tags: List[str] = Field(default_factory=list)
    seed: Optional[int] = None

class StudyStart(BaseModel):
    """Body for starting a session: explicit word ids, or a selection to run first."""
    table_ids: List[int]
    modes: List[QuizMode]
    relation_ids: List[int] = Field(default_factory=list)
    use_random_relation: bool = False
    word_ids: List[int] = Field(default_factory=list)
    selection: Optional[WordSelect] = None
    seed: Optional[int] = None

class AnswerSubmit(BaseModel):
    user_text: Optional[str] = None     # Typing
    choice: Optional[str] = None        # MultipleChoice
    verdict: Optional[bool] = None      # TrueFalse
