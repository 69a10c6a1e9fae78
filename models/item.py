from pydantic import BaseModel, Field, field_validator
from typing import Dict, List, Optional
from enum import Enum

from .stats import Stats

KEYWORD_COLUMN = "keyword"

class ColumnType(str, Enum):
    TEXT = "text"
    IMAGE = "image"

class ColumnDef(BaseModel):
    name: str
    type: ColumnType = ColumnType.TEXT

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Column name is required")
        if v.lower() == KEYWORD_COLUMN:
            raise ValueError("'keyword' is a reserved column name")
        return v

class VocabTableBase(BaseModel):
    name: str
    columns: List[ColumnDef] = Field(default_factory=list)

    @field_validator("columns")
    @classmethod
    def validate_unique_columns(cls, v):
        names = [column.name for column in v]
        if len(names) != len(set(names)):
            raise ValueError("Column names must be unique")
        return v

class VocabTableCreate(VocabTableBase):
    pass

class VocabTable(VocabTableBase):
    id: int

    class Config:
        from_attributes = True

class VocabularyItemBase(BaseModel):
    keyword: str
    data: Dict[str, str] = Field(default_factory=dict)
    tags: List[str] = Field(default_factory=list)

    @field_validator("keyword")
    @classmethod
    def validate_keyword(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Keyword is required")
        return v

class VocabularyItemCreate(VocabularyItemBase):
    pass

class VocabularyItem(VocabularyItemBase):
    id: int
    table_id: int
    stats: Stats = Field(default_factory=Stats)

    class Config:
        from_attributes = True

    def display_value(self, column: str) -> str:
        if column == KEYWORD_COLUMN:
            return self.keyword
        return self.data.get(column, "") or ""

def validate_item_data(data: Dict[str, str], columns: List[ColumnDef]) -> Dict[str, str]:
    """Check attributes against the table schema; fill missing columns with ''."""
    known = {column.name for column in columns}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown column(s): {', '.join(unknown)}")
    return {column.name: (data.get(column.name) or "") for column in columns}

class ItemWithPriority(VocabularyItem):
    priority_score: float
    table_name: Optional[str] = None
