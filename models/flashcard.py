from pydantic import BaseModel, Field
from typing import List, Optional

class FlashcardStart(BaseModel):
    table_ids: List[int]
    relation_ids: List[int]
    word_ids: List[int] = Field(default_factory=list)
    seed: Optional[int] = None

class FlashcardAnswer(BaseModel):
    knew_it: bool
