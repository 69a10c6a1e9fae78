from pydantic import BaseModel, model_validator
from typing import List
from enum import Enum

class QuizMode(str, Enum):
    TYPING = "Typing"
    MULTIPLE_CHOICE = "MultipleChoice"
    TRUE_FALSE = "TrueFalse"

class RelationBase(BaseModel):
    table_id: int
    name: str
    question_cols: List[str]
    answer_cols: List[str]
    modes: List[QuizMode]

    @model_validator(mode="after")
    def validate_columns(self):
        if not self.question_cols or not self.answer_cols:
            raise ValueError("A relation needs at least one question and one answer column")
        overlap = set(self.question_cols) & set(self.answer_cols)
        if overlap:
            raise ValueError(
                f"Question and answer columns must not overlap: {', '.join(sorted(overlap))}"
            )
        if not self.modes:
            raise ValueError("A relation must support at least one quiz mode")
        return self

class RelationCreate(RelationBase):
    pass

class Relation(RelationBase):
    id: int

    class Config:
        from_attributes = True

    def answer_signature(self) -> tuple:
        return tuple(self.answer_cols)
