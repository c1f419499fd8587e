import asyncio

import pytest

from voteapp.errors import NotFound, PersistenceError, PreconditionFailed
from voteapp.votes import committer


async def test_commit_creates_vote_and_counters(store):
    event = store.seed_event(vote_price="5.00")
    payment = store.seed_payment(event["id"], status="completed")

    result = await committer.commit(payment["id"])

    assert result.already_committed is False
    assert result.vote["payment_id"] == payment["id"]
    assert store.contestant_of(event["id"])["vote_count"] == 1
    assert store.events[event["id"]]["total_votes"] == 1
    assert store.events[event["id"]]["total_revenue"] == "5.00"

async def test_commit_twice_returns_same_vote(store):
    event = store.seed_event()
    payment = store.seed_payment(event["id"], status="completed")

    first = await committer.commit(payment["id"])
    second = await committer.commit(payment["id"])

    assert second.already_committed is True
    assert second.vote["id"] == first.vote["id"]
    assert len(store.votes_for(payment["id"])) == 1
    assert store.events[event["id"]]["total_votes"] == 1

async def test_concurrent_commits_single_vote(store):
    event = store.seed_event()
    payment = store.seed_payment(event["id"], status="completed")

    results = await asyncio.gather(*(committer.commit(payment["id"]) for _ in range(5)))

    assert len(store.votes_for(payment["id"])) == 1
    assert sum(1 for r in results if not r.already_committed) == 1
    assert len({r.vote["id"] for r in results}) == 1
    assert store.contestant_of(event["id"])["vote_count"] == 1

async def test_commit_requires_completed_payment(store):
    event = store.seed_event()
    payment = store.seed_payment(event["id"], status="pending")
    with pytest.raises(PreconditionFailed) as exc:
        await committer.commit(payment["id"])
    assert exc.value.code == "PaymentNotCompleted"
    assert store.votes == {}

async def test_commit_unknown_payment(store):
    with pytest.raises(NotFound):
        await committer.commit("missing")

async def test_commit_checks_voter_and_contestant(store):
    event = store.seed_event()
    payment = store.seed_payment(event["id"], status="completed")
    with pytest.raises(PreconditionFailed) as exc:
        await committer.commit(payment["id"], expected_voter_id="other-voter")
    assert exc.value.code == "PaymentMismatch"
    with pytest.raises(PreconditionFailed) as exc:
        await committer.commit(payment["id"], expected_contestant_id="other-contestant")
    assert exc.value.code == "PaymentMismatch"
    assert store.votes == {}

async def test_conflict_without_existing_vote_is_an_error(store, monkeypatch):
    from voteapp.errors import ConflictAlreadyCommitted

    event = store.seed_event()
    payment = store.seed_payment(event["id"], status="completed")

    async def always_conflict(p):
        raise ConflictAlreadyCommitted("Vote déjà enregistré pour ce paiement")
    monkeypatch.setattr("voteapp.votes.repository.commit_vote_atomic", always_conflict)

    with pytest.raises(PersistenceError):
        await committer.commit(payment["id"])
