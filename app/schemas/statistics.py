from pydantic import BaseModel
from datetime import datetime
from typing import List, Optional


class GlobalStats(BaseModel):
    total_items: int
    eligible_items: int
    total_comparisons: int
    total_voters: int
    today_comparisons: int


class VoterStats(BaseModel):
    total_comparisons: int
    upset_picks: int
    upset_pick_rate: float  # percentage of the voter's picks that were upsets
    average_rating_difference: float
    biggest_upset: Optional[float] = None


class VoterRanking(BaseModel):
    rank: int
    identifier: str
    user_type: str  # "registered" or "anonymous"
    comparisons_count: int
    last_active: datetime


class VoterLeaderboard(BaseModel):
    voters: List[VoterRanking]
    total: int
