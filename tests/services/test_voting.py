"""Tests for the persistence-backed voting operations."""
import random

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from app import crud, models, schemas
from app.db.base import Base
from app.engine.config import EngineConfig
from app.engine.exceptions import (
    IdempotencyConflictError,
    InsufficientPoolError,
    InvalidVoteError,
    ItemNotFoundError,
)
from app.services import voting
from app.services.voting import Identity
from tests.utils.utils import create_random_item


def vote(db: Session, winner, loser, identity=None, key=None, config=None):
    vote_in = schemas.VoteCreate(
        item1_id=str(winner.id),
        item2_id=str(loser.id),
        winner_id=str(winner.id),
        idempotency_key=key,
    )
    return voting.submit_vote(
        db, vote_in, identity or Identity(session_id="s1"), config or EngineConfig()
    )


def test_first_vote_between_new_items(isolated_db: Session) -> None:
    item_a = create_random_item(isolated_db)
    item_b = create_random_item(isolated_db)

    result = vote(isolated_db, item_a, item_b)

    assert result.new_rating_1 == pytest.approx(1516)
    assert result.new_rating_2 == pytest.approx(1484)
    assert result.rating_difference == 0
    assert result.was_upset is False
    assert result.duplicate is False

    isolated_db.refresh(item_a)
    isolated_db.refresh(item_b)
    assert item_a.rating == pytest.approx(1516)
    assert item_b.rating == pytest.approx(1484)
    assert (item_a.comparison_count, item_a.wins, item_a.losses) == (1, 1, 0)
    assert (item_b.comparison_count, item_b.wins, item_b.losses) == (1, 0, 1)
    assert item_a.last_compared_at is not None
    assert item_a.first_vote_date is not None


def test_vote_recomputes_scores(isolated_db: Session) -> None:
    item_a = create_random_item(isolated_db)
    item_b = create_random_item(isolated_db)
    vote(isolated_db, item_a, item_b)

    isolated_db.refresh(item_a)
    isolated_db.refresh(item_b)
    assert item_a.rating_confidence == pytest.approx(1 / 30)
    # exposure 1/50, 100% wins, just compared, never skipped
    assert item_a.familiarity_score == pytest.approx(60.8, abs=0.1)
    assert item_b.familiarity_score == pytest.approx(35.8, abs=0.1)


def test_vote_stores_comparison(isolated_db: Session) -> None:
    item_a = create_random_item(isolated_db, rating=1600.0)
    item_b = create_random_item(isolated_db)
    result = vote(isolated_db, item_b, item_a, identity=Identity(user_id="u1"))

    comparison = crud.comparison.get(isolated_db, id=result.comparison_id)
    assert comparison.item1_id == str(item_b.id)
    assert comparison.winner_id == str(item_b.id)
    assert comparison.item1_rating_before == 1500
    assert comparison.item2_rating_before == 1600
    assert comparison.item1_rating_after == pytest.approx(result.new_rating_1)
    assert comparison.rating_difference == 100
    assert comparison.user_id == "u1"
    assert comparison.session_id is None


def test_confident_item_moves_less(isolated_db: Session) -> None:
    veteran = create_random_item(isolated_db, comparison_count=40, wins=20, losses=20)
    newcomer = create_random_item(isolated_db)
    result = vote(isolated_db, newcomer, veteran)
    assert result.new_rating_1 - 1500 == pytest.approx(16)
    assert result.new_rating_2 - 1500 == pytest.approx(-8)


def test_upset_win_is_counted(isolated_db: Session) -> None:
    favourite = create_random_item(isolated_db, rating=1900.0)
    underdog = create_random_item(isolated_db, rating=1700.0)
    result = vote(isolated_db, underdog, favourite)

    assert result.was_upset is True
    assert result.rating_difference == pytest.approx(200)
    isolated_db.refresh(underdog)
    isolated_db.refresh(favourite)
    assert underdog.upset_win_count == 1
    assert favourite.upset_win_count == 0


def test_streaks_and_peak_rating(isolated_db: Session) -> None:
    item_a = create_random_item(isolated_db)
    item_b = create_random_item(isolated_db)
    vote(isolated_db, item_a, item_b)
    vote(isolated_db, item_a, item_b)

    isolated_db.refresh(item_a)
    isolated_db.refresh(item_b)
    assert item_a.current_streak_wins == 2
    assert item_a.longest_win_streak == 2
    assert item_a.peak_rating == pytest.approx(item_a.rating)
    assert item_b.current_streak_losses == 2
    assert item_b.current_streak_wins == 0
    assert item_b.peak_rating == pytest.approx(1500)

    vote(isolated_db, item_b, item_a)
    isolated_db.refresh(item_a)
    isolated_db.refresh(item_b)
    assert item_a.current_streak_wins == 0
    assert item_a.current_streak_losses == 1
    assert item_a.longest_win_streak == 2
    assert item_b.current_streak_wins == 1
    assert item_b.current_streak_losses == 0


def test_idempotency_key_prevents_double_count(isolated_db: Session) -> None:
    item_a = create_random_item(isolated_db)
    item_b = create_random_item(isolated_db)

    first = vote(isolated_db, item_a, item_b, key="retry-1")
    second = vote(isolated_db, item_a, item_b, key="retry-1")

    assert second.duplicate is True
    assert second.comparison_id == first.comparison_id
    assert second.new_rating_1 == first.new_rating_1
    isolated_db.refresh(item_a)
    assert item_a.comparison_count == 1
    assert crud.comparison.count(isolated_db) == 1


def test_concurrent_retry_with_same_key(isolated_db: Session, monkeypatch) -> None:
    item_a = create_random_item(isolated_db)
    item_b = create_random_item(isolated_db)
    first = vote(isolated_db, item_a, item_b, key="retry-2")

    real_lookup = crud.comparison.get_by_idempotency_key
    calls = []

    def lookup_misses_once(db, *, key):
        # The retry checks for the key before the first request commits
        calls.append(key)
        if len(calls) == 1:
            return None
        return real_lookup(db, key=key)

    monkeypatch.setattr(crud.comparison, "get_by_idempotency_key", lookup_misses_once)
    second = vote(isolated_db, item_a, item_b, key="retry-2")

    assert len(calls) == 2
    assert second.duplicate is True
    assert second.comparison_id == first.comparison_id
    assert second.new_rating_1 == first.new_rating_1
    assert crud.comparison.count(isolated_db) == 1
    isolated_db.refresh(item_a)
    isolated_db.refresh(item_b)
    assert (item_a.comparison_count, item_a.wins) == (1, 1)
    assert (item_b.comparison_count, item_b.losses) == (1, 1)
    assert item_a.rating == pytest.approx(first.new_rating_1)


def test_idempotency_key_reused_for_another_vote(isolated_db: Session) -> None:
    item_a = create_random_item(isolated_db)
    item_b = create_random_item(isolated_db)
    item_c = create_random_item(isolated_db)
    vote(isolated_db, item_a, item_b, key="retry-3")

    with pytest.raises(IdempotencyConflictError):
        vote(isolated_db, item_b, item_a, key="retry-3")
    with pytest.raises(IdempotencyConflictError):
        vote(isolated_db, item_a, item_c, key="retry-3")
    with pytest.raises(IdempotencyConflictError):
        vote(isolated_db, item_a, item_b, identity=Identity(session_id="s2"), key="retry-3")
    with pytest.raises(IdempotencyConflictError):
        vote(isolated_db, item_a, item_b, identity=Identity(user_id="u1"), key="retry-3")

    assert crud.comparison.count(isolated_db) == 1
    isolated_db.refresh(item_c)
    assert item_c.comparison_count == 0


@pytest.fixture()
def file_sessions(tmp_path):
    """Three independent sessions over one file-backed database."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'votes.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    sessions = [factory() for _ in range(3)]
    yield sessions
    for session in sessions:
        session.close()
    engine.dispose()


def test_votes_from_stale_sessions_are_both_counted(file_sessions) -> None:
    setup, first, second = file_sessions
    item_a = create_random_item(setup)
    item_b = create_random_item(setup)
    a_id, b_id = str(item_a.id), str(item_b.id)

    # Both requests load the pair before either vote lands
    for db in (first, second):
        assert crud.item.get(db, id=a_id).comparison_count == 0
        assert crud.item.get(db, id=b_id).comparison_count == 0

    vote_in = schemas.VoteCreate(item1_id=a_id, item2_id=b_id, winner_id=a_id)
    r1 = voting.submit_vote(first, vote_in, Identity(session_id="s1"), EngineConfig())
    r2 = voting.submit_vote(second, vote_in, Identity(session_id="s2"), EngineConfig())

    setup.expire_all()
    item_a = crud.item.get(setup, id=a_id)
    item_b = crud.item.get(setup, id=b_id)
    assert item_a.comparison_count == 2
    assert item_a.wins + item_a.losses == item_a.comparison_count
    assert item_b.comparison_count == 2
    assert item_b.wins + item_b.losses == item_b.comparison_count
    assert (item_a.wins, item_b.losses) == (2, 2)
    assert item_a.rating == pytest.approx(
        1500 + (r1.new_rating_1 - 1500) + (r2.new_rating_1 - 1500)
    )
    assert item_b.rating == pytest.approx(
        1500 + (r1.new_rating_2 - 1500) + (r2.new_rating_2 - 1500)
    )
    assert item_a.rating > r1.new_rating_1
    assert crud.comparison.count(setup) == 2


def test_malformed_vote_changes_nothing(isolated_db: Session) -> None:
    item_a = create_random_item(isolated_db)
    item_b = create_random_item(isolated_db)
    vote_in = schemas.VoteCreate(
        item1_id=str(item_a.id), item2_id=str(item_b.id), winner_id="someone-else"
    )
    with pytest.raises(InvalidVoteError):
        voting.submit_vote(isolated_db, vote_in, Identity(), EngineConfig())

    isolated_db.refresh(item_a)
    assert item_a.comparison_count == 0
    assert item_a.rating == 1500
    assert crud.comparison.count(isolated_db) == 0


def test_vote_for_unknown_item(isolated_db: Session) -> None:
    item_a = create_random_item(isolated_db)
    vote_in = schemas.VoteCreate(
        item1_id=str(item_a.id), item2_id="missing", winner_id=str(item_a.id)
    )
    with pytest.raises(ItemNotFoundError):
        voting.submit_vote(isolated_db, vote_in, Identity(), EngineConfig())
    assert crud.comparison.count(isolated_db) == 0


def test_skip_updates_both_items(isolated_db: Session) -> None:
    item_a = create_random_item(isolated_db, comparison_count=10, wins=5, losses=5)
    item_b = create_random_item(isolated_db)
    result = voting.submit_skip(
        isolated_db,
        schemas.SkipCreate(item1_id=str(item_a.id), item2_id=str(item_b.id)),
        EngineConfig(),
    )
    assert (result.skip_count_1, result.skip_count_2) == (1, 1)

    isolated_db.refresh(item_a)
    isolated_db.refresh(item_b)
    assert item_a.skip_count == 1
    # exposure 10/50, win rate 0.5, never compared, engagement 10/11
    expected = (0.2 * 0.40 + 0.5 * 0.25 + 0.0 + (10 / 11) * 0.15) * 100
    assert item_a.familiarity_score == pytest.approx(expected)
    assert item_b.familiarity_score == 0.0


def test_skip_unknown_item(isolated_db: Session) -> None:
    item_a = create_random_item(isolated_db)
    with pytest.raises(ItemNotFoundError):
        voting.submit_skip(
            isolated_db,
            schemas.SkipCreate(item1_id=str(item_a.id), item2_id="missing"),
            EngineConfig(),
        )


def test_select_pair_requires_two_eligible_items(isolated_db: Session) -> None:
    create_random_item(isolated_db)
    create_random_item(isolated_db, with_image=False)
    create_random_item(isolated_db, with_image=False)
    with pytest.raises(InsufficientPoolError):
        voting.select_pair(isolated_db, Identity(), EngineConfig())


def test_select_pair_only_uses_items_with_images(isolated_db: Session) -> None:
    with_image = {str(create_random_item(isolated_db).id) for _ in range(3)}
    for _ in range(3):
        create_random_item(isolated_db, with_image=False)

    rng = random.Random(8)
    for _ in range(50):
        item_a, item_b = voting.select_pair(
            isolated_db, Identity(session_id="s1"), EngineConfig(), rng=rng
        )
        assert item_a.id != item_b.id
        assert {str(item_a.id), str(item_b.id)} <= with_image


def test_select_pair_respects_pool_size(isolated_db: Session) -> None:
    for _ in range(5):
        create_random_item(isolated_db)
    config = EngineConfig.from_overrides({"candidate_pool_size": 2})
    item_a, item_b = voting.select_pair(isolated_db, Identity(), config)
    assert item_a.id != item_b.id


def test_session_recency_follows_voter(isolated_db: Session) -> None:
    item_a = create_random_item(isolated_db, title="4th Battalion")
    item_b = create_random_item(isolated_db)
    item_c = create_random_item(isolated_db)
    vote(isolated_db, item_a, item_b, identity=Identity(session_id="s1"))
    vote(isolated_db, item_c, item_b, identity=Identity(session_id="other"))

    recency = voting.load_session_recency(
        isolated_db, Identity(session_id="s1"), EngineConfig()
    )
    assert recency.item_comparisons_ago(str(item_a.id)) == 1
    assert recency.item_comparisons_ago(str(item_c.id)) is None
    assert recency.group_comparisons_ago("military_battalion") == 1

    assert voting.load_session_recency(isolated_db, Identity(), EngineConfig()) is None


def test_user_history_spans_sessions(isolated_db: Session) -> None:
    item_a = create_random_item(isolated_db)
    item_b = create_random_item(isolated_db)
    vote(isolated_db, item_a, item_b, identity=Identity(user_id="u1", session_id="s1"))

    recency = voting.load_session_recency(
        isolated_db, Identity(user_id="u1", session_id="s2"), EngineConfig()
    )
    assert recency.item_comparisons_ago(str(item_b.id)) == 1


def test_recompute_scores(isolated_db: Session) -> None:
    item = create_random_item(isolated_db, comparison_count=30, wins=30)
    scores = voting.recompute_scores(isolated_db, item, EngineConfig())
    isolated_db.commit()
    isolated_db.refresh(item)
    assert scores.rating_confidence == 1.0
    assert item.rating_confidence == 1.0
    assert item.familiarity_score == pytest.approx(scores.familiarity_score)
    assert isinstance(item, models.Item)
