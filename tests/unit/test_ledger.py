from decimal import Decimal

import pytest

from voteapp.errors import NotFound, PreconditionFailed, ValidationError
from voteapp.payments import ledger


async def test_create_freezes_commission(store):
    event = store.seed_event(vote_price="5.00")
    payment = await ledger.create("voter-1", f"cand-{event['id']}", "5.00", "card")

    assert payment["status"] == "pending"
    assert payment["amount"] == "5.00"
    assert payment["platform_fee"] == "0.25"
    assert payment["organizer_earnings"] == "4.75"
    assert payment["commission_rate"] == "0.05"
    assert payment["currency"] == "usd"
    assert payment["event_id"] == event["id"]

    # Un changement de taux ultérieur ne touche pas le paiement existant
    store.settings["commission_rate"] = "0.20"
    stored = store.payments[payment["id"]]
    assert stored["platform_fee"] == "0.25"
    assert Decimal(stored["platform_fee"]) + Decimal(stored["organizer_earnings"]) == Decimal(stored["amount"])

async def test_create_mobile_money_uses_settlement_currency(store):
    event = store.seed_event(currency="usd")
    payment = await ledger.create("voter-1", f"cand-{event['id']}", "5.00", "mobile_money")
    assert payment["currency"] == "ghs"

async def test_create_rejects_ineligible_without_row(store):
    event = store.seed_event(status="draft")
    with pytest.raises(PreconditionFailed) as exc:
        await ledger.create("voter-1", f"cand-{event['id']}", "5.00", "card")
    assert exc.value.code == "EventNotActive"
    assert store.payments == {}

async def test_create_provider_disabled(store):
    event = store.seed_event()
    store.settings["stripe_enabled"] = False
    with pytest.raises(PreconditionFailed) as exc:
        await ledger.create("voter-1", f"cand-{event['id']}", "5.00", "card")
    assert exc.value.code == "ProviderDisabled"
    assert store.payments == {}

async def test_create_unknown_method_and_currency(store):
    event = store.seed_event()
    with pytest.raises(ValidationError) as exc:
        await ledger.create("voter-1", f"cand-{event['id']}", "5.00", "cash")
    assert exc.value.code == "UnknownPaymentMethod"
    with pytest.raises(ValidationError) as exc:
        await ledger.create("voter-1", f"cand-{event['id']}", "5.00", "card", currency="xyz")
    assert exc.value.code == "UnsupportedCurrency"

async def test_attach_provider_ref_idempotent(store):
    event = store.seed_event()
    payment = store.seed_payment(event["id"])
    await ledger.attach_provider_ref(payment["id"], "pi_123", {"method": "card"})
    assert store.payments[payment["id"]]["payment_intent_id"] == "pi_123"
    assert store.payments[payment["id"]]["metadata"]["provider_init"] == {"method": "card"}

    # Même valeur: aucun effet
    await ledger.attach_provider_ref(payment["id"], "pi_123")
    # Valeur différente: refus
    with pytest.raises(ValidationError) as exc:
        await ledger.attach_provider_ref(payment["id"], "pi_other")
    assert exc.value.code == "ProviderRefConflict"

async def test_attach_provider_ref_mobile_money_column(store):
    event = store.seed_event()
    payment = store.seed_payment(event["id"], payment_method="mobile_money")
    await ledger.attach_provider_ref(payment["id"], payment["id"])
    assert store.payments[payment["id"]]["payment_provider_id"] == payment["id"]
    assert store.payments[payment["id"]]["payment_intent_id"] is None

async def test_mark_completed_then_noop(store):
    event = store.seed_event()
    payment = store.seed_payment(event["id"])
    first = await ledger.mark_completed(payment["id"], payload={"event_id": "evt_1"})
    assert first.applied and first.previous_status == "pending"
    assert store.payments[payment["id"]]["metadata"]["completed_payload"] == {"event_id": "evt_1"}

    again = await ledger.mark_completed(payment["id"])
    assert again.outcome == ledger.NOOP

async def test_no_backward_transitions(store):
    event = store.seed_event()
    failed = store.seed_payment(event["id"], status="failed")
    assert (await ledger.mark_completed(failed["id"])).outcome == ledger.REJECTED
    assert store.payments[failed["id"]]["status"] == "failed"

    completed = store.seed_payment(event["id"], status="completed")
    outcome = await ledger.mark_failed(completed["id"], "late_failure")
    assert outcome.outcome == ledger.REJECTED
    assert store.payments[completed["id"]]["status"] == "completed"

async def test_disputed_and_refunded_only_from_completed(store):
    event = store.seed_event()
    pending = store.seed_payment(event["id"])
    assert (await ledger.mark_refunded(pending["id"], "refund")).outcome == ledger.REJECTED

    completed = store.seed_payment(event["id"], status="completed")
    outcome = await ledger.mark_disputed(completed["id"], "fraudulent")
    assert outcome.applied
    assert store.payments[completed["id"]]["metadata"]["disputed_reason"] == "fraudulent"
    # disputed est terminal
    assert (await ledger.mark_refunded(completed["id"], "refund")).outcome == ledger.REJECTED

async def test_cas_lost_race_rereads(store):
    event = store.seed_event()
    payment = store.seed_payment(event["id"])

    # Un autre écrivain échoue le paiement entre la lecture et l'écriture
    def concurrent_failure(payment_id):
        store.payments[payment_id]["status"] = "failed"
    store.before_payment_cas = concurrent_failure

    outcome = await ledger.mark_completed(payment["id"])
    assert outcome.outcome == ledger.REJECTED
    assert store.payments[payment["id"]]["status"] == "failed"

async def test_cas_lost_race_same_target_is_noop(store):
    event = store.seed_event()
    payment = store.seed_payment(event["id"])

    def concurrent_success(payment_id):
        store.payments[payment_id]["status"] = "completed"
    store.before_payment_cas = concurrent_success

    outcome = await ledger.mark_completed(payment["id"])
    assert outcome.outcome == ledger.NOOP

async def test_cancel_owner_pending_only(store, providers):
    event = store.seed_event()
    payment = store.seed_payment(event["id"], payment_intent_id="pi_abc")

    with pytest.raises(NotFound):
        await ledger.cancel(payment["id"], "someone-else")

    outcome = await ledger.cancel(payment["id"], "voter-1")
    assert outcome.applied
    assert store.payments[payment["id"]]["status"] == "failed"
    assert store.payments[payment["id"]]["metadata"]["failed_reason"] == "canceled_by_voter"
    assert providers.called("stripe.cancel") == [("stripe.cancel", "pi_abc")]

    with pytest.raises(NotFound):
        await ledger.cancel(payment["id"], "voter-1")

def test_transition_table():
    assert ledger.can_transition("pending", "completed")
    assert ledger.can_transition("completed", "disputed")
    assert not ledger.can_transition("completed", "pending")
    assert not ledger.can_transition("refunded", "completed")
    assert not ledger.can_transition(None, "completed")
