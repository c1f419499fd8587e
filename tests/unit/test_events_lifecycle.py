from datetime import timedelta

import pytest

from voteapp.errors import Forbidden, NotFound, PreconditionFailed, ValidationError
from voteapp.events import lifecycle


async def test_activate_draft(store):
    event = store.seed_event(status="draft")
    updated = await lifecycle.activate_event(event["id"], "org-1")
    assert updated["status"] == "active"

async def test_activate_checks_owner(store):
    event = store.seed_event(status="draft")
    with pytest.raises(Forbidden):
        await lifecycle.activate_event(event["id"], "org-2")
    with pytest.raises(NotFound):
        await lifecycle.activate_event("missing", "org-1")

async def test_activate_requires_contestants(store):
    empty = store.seed_event(status="draft", with_contestant=False)
    with pytest.raises(PreconditionFailed) as exc:
        await lifecycle.activate_event(empty["id"], "org-1")
    assert exc.value.code == "NoCategories"

    store.categories["cat-x"] = {"id": "cat-x", "name": "Vide", "event_id": empty["id"]}
    with pytest.raises(PreconditionFailed) as exc:
        await lifecycle.activate_event(empty["id"], "org-1")
    assert exc.value.code == "NoContestants"

async def test_activate_rejects_past_end_and_non_draft(store):
    past = store.seed_event(status="draft", starts_in=timedelta(days=-3), ends_in=timedelta(days=-1))
    with pytest.raises(PreconditionFailed) as exc:
        await lifecycle.activate_event(past["id"], "org-1")
    assert exc.value.code == "EndDateInPast"

    active = store.seed_event(status="active")
    with pytest.raises(PreconditionFailed) as exc:
        await lifecycle.activate_event(active["id"], "org-1")
    assert exc.value.code == "InvalidTransition"

async def test_end_and_force_end(store):
    active = store.seed_event(status="active")
    assert (await lifecycle.end_event(active["id"], "org-1"))["status"] == "ended"
    with pytest.raises(PreconditionFailed):
        await lifecycle.end_event(active["id"], "org-1")

    draft = store.seed_event(status="draft")
    assert (await lifecycle.force_end_event(draft["id"]))["status"] == "ended"
    with pytest.raises(PreconditionFailed):
        await lifecycle.force_end_event(draft["id"])

async def test_price_locked_after_votes(store):
    event = store.seed_event(status="active")
    store.events[event["id"]]["total_votes"] = 3

    with pytest.raises(PreconditionFailed) as exc:
        await lifecycle.update_event(event["id"], "org-1", {"vote_price": "10.00"})
    assert exc.value.code == "EventLocked"
    assert store.events[event["id"]]["vote_price"] == "5.00"

    # Le titre reste modifiable
    updated = await lifecycle.update_event(event["id"], "org-1", {"title": "Nouveau titre"})
    assert updated["title"] == "Nouveau titre"

async def test_price_editable_before_votes(store):
    event = store.seed_event(status="active")
    updated = await lifecycle.update_event(event["id"], "org-1", {"vote_price": "2.5"})
    assert updated["vote_price"] == "2.50"

async def test_update_event_validation(store):
    event = store.seed_event(status="draft")
    with pytest.raises(ValidationError) as exc:
        await lifecycle.update_event(event["id"], "org-1", {"unknown": 1})
    assert exc.value.code == "EmptyUpdate"
    with pytest.raises(ValidationError) as exc:
        await lifecycle.update_event(event["id"], "org-1", {"vote_price": "0"})
    assert exc.value.code == "InvalidAmount"
    with pytest.raises(ValidationError) as exc:
        await lifecycle.update_event(event["id"], "org-1", {"start_date": "2100-01-01T00:00:00Z"})
    assert exc.value.code == "InvalidDates"
    with pytest.raises(ValidationError) as exc:
        await lifecycle.update_event(event["id"], "org-1", {"end_date": "pas une date"})
    assert exc.value.code == "InvalidDates"

async def test_ended_event_not_editable(store):
    event = store.seed_event(status="ended")
    with pytest.raises(PreconditionFailed) as exc:
        await lifecycle.update_event(event["id"], "org-1", {"title": "x"})
    assert exc.value.code == "EventLocked"

def test_contestant_lock():
    lifecycle.assert_contestant_mutable({"vote_count": 0})
    with pytest.raises(PreconditionFailed) as exc:
        lifecycle.assert_contestant_mutable({"vote_count": 1})
    assert exc.value.code == "EventLocked"

async def test_update_contestant_before_votes(store):
    event = store.seed_event()
    cid = f"cand-{event['id']}"
    updated = await lifecycle.update_contestant(cid, "org-1", {"name": "Awa K.", "vote_count": 99})
    assert updated["name"] == "Awa K."
    assert store.contestants[cid]["vote_count"] == 0

async def test_update_contestant_locked_after_vote(store):
    event = store.seed_event()
    cid = f"cand-{event['id']}"
    store.contestants[cid]["vote_count"] = 1
    with pytest.raises(PreconditionFailed) as exc:
        await lifecycle.update_contestant(cid, "org-1", {"name": "Awa K."})
    assert exc.value.code == "EventLocked"
    assert store.contestants[cid]["name"] == "Awa"

async def test_update_contestant_vote_arrives_during_update(store, monkeypatch):
    event = store.seed_event()
    cid = f"cand-{event['id']}"
    stale = await store.get_contestant_with_event(cid)
    store.contestants[cid]["vote_count"] = 1

    async def read_before_vote(contestant_id):
        return stale

    monkeypatch.setattr("voteapp.votes.repository.get_contestant_with_event", read_before_vote)
    with pytest.raises(PreconditionFailed) as exc:
        await lifecycle.update_contestant(cid, "org-1", {"name": "Awa K."})
    assert exc.value.code == "EventLocked"
    assert store.contestants[cid]["name"] == "Awa"

async def test_update_contestant_owner_only(store):
    event = store.seed_event(organizer_id="org-2")
    with pytest.raises(Forbidden):
        await lifecycle.update_contestant(f"cand-{event['id']}", "org-1", {"name": "Awa K."})
    with pytest.raises(NotFound):
        await lifecycle.update_contestant("missing", "org-1", {"name": "Awa K."})
