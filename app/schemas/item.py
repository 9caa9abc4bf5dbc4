from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional
from datetime import datetime


class ItemBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=5000)
    image_url: Optional[str] = Field(None, max_length=2048)

    @field_validator("title")
    @classmethod
    def sanitize_title(cls, v: str) -> str:
        # Remove potential XSS characters
        if "<" in v or ">" in v:
            raise ValueError("Title contains invalid characters")
        v = v.strip()
        if not v:
            raise ValueError("Title must not be blank")
        return v

    @field_validator("description")
    @classmethod
    def sanitize_description(cls, v: Optional[str]) -> Optional[str]:
        if v and ("<" in v or ">" in v):
            raise ValueError("Description contains invalid characters")
        return v.strip() if v else v


class ItemCreate(ItemBase):
    pass


class ItemUpdate(BaseModel):
    description: Optional[str] = Field(None, max_length=5000)
    image_url: Optional[str] = Field(None, max_length=2048)


class ItemSummary(BaseModel):
    """What a voter sees in a comparison."""

    id: str
    title: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    rating: float

    model_config = ConfigDict(from_attributes=True)


class Item(ItemSummary):
    comparison_count: int
    wins: int
    losses: int
    skip_count: int
    familiarity_score: float
    rating_confidence: float
    last_compared_at: Optional[datetime] = None
    peak_rating: Optional[float] = None
    peak_rating_date: Optional[datetime] = None
    current_streak_wins: int
    current_streak_losses: int
    longest_win_streak: int
    upset_win_count: int
    first_vote_date: Optional[datetime] = None
    created_at: Optional[datetime] = None


class ItemScores(BaseModel):
    item_id: str
    familiarity_score: float
    rating_confidence: float


class SimilarityResult(BaseModel):
    title: str
    group: Optional[str]


class Leaderboard(BaseModel):
    rankings: List[Item]
    total: int
    skip: int
    limit: int


class RankedItem(Item):
    rank: int


class ItemSearchResults(BaseModel):
    query: str
    count: int
    results: List[RankedItem]


class Opponent(BaseModel):
    id: str
    title: str
    image_url: Optional[str] = None


class RecentMatch(BaseModel):
    comparison_id: str
    created_at: datetime
    opponent: Opponent
    won: bool


class ItemDetail(RankedItem):
    win_rate: float  # percentage, one decimal
    recent_comparisons: List[RecentMatch]
