from .item import (  # noqa: F401
    Item,
    ItemCreate,
    ItemUpdate,
    ItemSummary,
    ItemScores,
    SimilarityResult,
    Leaderboard,
    RankedItem,
    ItemSearchResults,
    Opponent,
    RecentMatch,
    ItemDetail,
)
from .comparison import (  # noqa: F401
    Comparison,
    ComparisonPair,
    VoteCreate,
    VoteResult,
    SkipCreate,
    SkipResult,
)
from .statistics import (  # noqa: F401
    GlobalStats,
    VoterStats,
    VoterRanking,
    VoterLeaderboard,
)
