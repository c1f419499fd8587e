from voteapp.votes import committer, reconcile


async def test_backfill_creates_missing_votes(store):
    event = store.seed_event()
    missing = store.seed_payment(event["id"], status="completed")
    voted = store.seed_payment(event["id"], status="completed")
    store.seed_payment(event["id"], status="pending")
    await committer.commit(voted["id"])

    counters = await reconcile.backfill_missing_votes(limit=10)

    assert counters == {"scanned": 1, "committed": 1, "already_committed": 0, "failed": 0}
    assert len(store.votes_for(missing["id"])) == 1
    assert store.events[event["id"]]["total_votes"] == 2

    # Idempotent: second passage sans effet
    assert (await reconcile.backfill_missing_votes())["scanned"] == 0

async def test_backfill_counts_failures(store, monkeypatch):
    from voteapp.errors import PersistenceError

    event = store.seed_event()
    store.seed_payment(event["id"], status="completed")

    async def broken(payment):
        raise PersistenceError("Stockage indisponible")
    monkeypatch.setattr("voteapp.votes.repository.commit_vote_atomic", broken)

    counters = await reconcile.backfill_missing_votes()
    assert counters["failed"] == 1
    assert counters["committed"] == 0

def test_cli_exit_code(store, capsys):
    assert reconcile.main(["--limit", "5"]) == 0
    assert "scanned=0" in capsys.readouterr().out
