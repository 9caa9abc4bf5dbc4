from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import Optional
from datetime import datetime
from app.schemas.item import ItemSummary


class ComparisonPair(BaseModel):
    item_a: ItemSummary
    item_b: ItemSummary


class VoteCreate(BaseModel):
    item1_id: str = Field(..., min_length=1)
    item2_id: str = Field(..., min_length=1)
    winner_id: str = Field(..., min_length=1)
    # Optional client-generated key; resubmitting the same key is a no-op
    idempotency_key: Optional[str] = Field(None, min_length=1, max_length=128)


class VoteResult(BaseModel):
    comparison_id: str
    item1_id: str
    item2_id: str
    winner_id: str
    new_rating_1: float
    new_rating_2: float
    rating_difference: float
    was_upset: bool
    duplicate: bool = False


class SkipCreate(BaseModel):
    item1_id: str = Field(..., min_length=1)
    item2_id: str = Field(..., min_length=1)

    @model_validator(mode="after")
    def check_distinct(self) -> "SkipCreate":
        if self.item1_id == self.item2_id:
            raise ValueError("Cannot skip a pair made of the same item")
        return self


class SkipResult(BaseModel):
    item1_id: str
    item2_id: str
    skip_count_1: int
    skip_count_2: int


class Comparison(BaseModel):
    id: str
    item1_id: str
    item2_id: str
    winner_id: str
    item1_rating_before: float
    item2_rating_before: float
    item1_rating_after: float
    item2_rating_after: float
    rating_difference: float
    was_upset: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
