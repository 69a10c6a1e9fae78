from .stats import Stats, StatCounters, FlashcardStatus
from .item import ColumnDef, ColumnType, VocabTable, VocabTableCreate, VocabularyItem, VocabularyItemCreate
from .relation import Relation, RelationCreate, QuizMode
from .session import (
    StudyConfig, GlobalStats, RewardEvent, RewardEventType, SessionRecord, SessionStatus,
    StudyStart, AnswerSubmit, SortCriterion, WordSelect,
)
from .flashcard import FlashcardStart, FlashcardAnswer

__all__ = [
    'Stats', 'StatCounters', 'FlashcardStatus',
    'ColumnDef', 'ColumnType', 'VocabTable', 'VocabTableCreate', 'VocabularyItem', 'VocabularyItemCreate',
    'Relation', 'RelationCreate', 'QuizMode',
    'StudyConfig', 'GlobalStats', 'RewardEvent', 'RewardEventType', 'SessionRecord', 'SessionStatus',
    'StudyStart', 'AnswerSubmit', 'SortCriterion', 'WordSelect',
    'FlashcardStart', 'FlashcardAnswer',
]
