import asyncio
from decimal import Decimal
import logging

import pytest

from voteapp.errors import NotFound, PreconditionFailed, ValidationError
from voteapp.withdrawals import service as withdrawals_service

MOMO = {"mobile_number": "0241234567", "network": "MTN"}


def _earnings(store, organizer_id="org-1", count=2):
    event = store.seed_event(organizer_id=organizer_id)
    for _ in range(count):
        store.seed_payment(event["id"], status="completed", organizer_earnings="4.75")
    # Non comptés: paiement en attente et paiement remboursé
    store.seed_payment(event["id"], status="pending", organizer_earnings="4.75")
    store.seed_payment(event["id"], status="refunded", organizer_earnings="4.75")
    return event


async def test_balance_from_frozen_earnings(store):
    _earnings(store, count=2)
    store.seed_withdrawal("org-1", "3.00", status="completed")
    store.seed_withdrawal("org-1", "2.00", status="processing")
    store.seed_withdrawal("org-1", "1.00", status="failed")

    # Le taux courant n'intervient pas
    store.settings["commission_rate"] = "0.50"
    balance = await withdrawals_service.compute_balance("org-1")

    assert balance.total_earnings == Decimal("9.50")
    assert balance.total_withdrawn == Decimal("3.00")
    assert balance.pending_withdrawals == Decimal("2.00")
    assert balance.available == Decimal("4.50")

async def test_balance_other_organizer_isolated(store):
    _earnings(store, organizer_id="org-2", count=3)
    balance = await withdrawals_service.compute_balance("org-1")
    assert balance.available == Decimal("0")

async def test_request_withdrawal_ok(store):
    _earnings(store, count=2)
    withdrawal = await withdrawals_service.request_withdrawal("org-1", "9.50", "mobile_money", MOMO)

    assert withdrawal["status"] == "pending"
    assert withdrawal["amount"] == "9.50"
    assert withdrawal["payment_details"]["network"] == "mtn"
    balance = await withdrawals_service.compute_balance("org-1")
    assert balance.available == Decimal("0.00")

async def test_insufficient_balance_writes_nothing(store):
    _earnings(store, count=1)
    with pytest.raises(PreconditionFailed) as exc:
        await withdrawals_service.request_withdrawal("org-1", "4.76", "mobile_money", MOMO)
    assert exc.value.code == "InsufficientBalance"
    assert exc.value.to_dict()["available"] == "4.75"
    assert exc.value.to_dict()["requested"] == "4.76"
    assert store.withdrawals == {}

async def test_concurrent_requests_never_exceed_earnings(store):
    _earnings(store, count=2)

    results = await asyncio.gather(
        withdrawals_service.request_withdrawal("org-1", "9.00", "mobile_money", MOMO),
        withdrawals_service.request_withdrawal("org-1", "9.00", "mobile_money", MOMO),
        return_exceptions=True,
    )

    created = [r for r in results if isinstance(r, dict)]
    rejected = [r for r in results if isinstance(r, PreconditionFailed)]
    assert len(created) == 1
    assert len(rejected) == 1
    assert rejected[0].code == "InsufficientBalance"
    assert rejected[0].to_dict()["available"] == "0.50"
    assert len(store.withdrawals) == 1
    balance = await withdrawals_service.compute_balance("org-1")
    assert balance.total_withdrawn + balance.pending_withdrawals <= balance.total_earnings

async def test_amount_too_low(store):
    _earnings(store)
    with pytest.raises(ValidationError) as exc:
        await withdrawals_service.request_withdrawal("org-1", "0.50", "mobile_money", MOMO)
    assert exc.value.code == "AmountTooLow"

@pytest.mark.parametrize(
    "method,details,code",
    [
        ("cheque", {}, "InvalidWithdrawalMethod"),
        ("bank_transfer", {"account_number": "123"}, "InvalidPaymentDetails"),
        ("mobile_money", {"mobile_number": "024", "network": "orange"}, "InvalidNetwork"),
    ],
)
def test_validate_details(method, details, code):
    with pytest.raises(ValidationError) as exc:
        withdrawals_service.validate_details(method, details)
    assert exc.value.code == code

async def test_cancel_pending_only(store):
    pending = store.seed_withdrawal("org-1", "2.00")
    done = store.seed_withdrawal("org-1", "2.00", status="completed")

    await withdrawals_service.cancel_withdrawal("org-1", pending["id"])
    assert pending["id"] not in store.withdrawals

    with pytest.raises(NotFound):
        await withdrawals_service.cancel_withdrawal("org-1", done["id"])
    with pytest.raises(NotFound):
        other = store.seed_withdrawal("org-2", "2.00")
        await withdrawals_service.cancel_withdrawal("org-1", other["id"])

async def test_process_withdrawal_transitions(store):
    w = store.seed_withdrawal("org-1", "2.00")

    processing = await withdrawals_service.process_withdrawal(w["id"], "processing", admin_id="admin-1")
    assert processing["status"] == "processing"
    completed = await withdrawals_service.process_withdrawal(w["id"], "completed", "virement OK", admin_id="admin-1")
    assert completed["status"] == "completed"
    assert completed["admin_notes"] == "virement OK"
    assert completed["processed_by"] == "admin-1"
    assert completed["processed_at"]

    with pytest.raises(PreconditionFailed) as exc:
        await withdrawals_service.process_withdrawal(w["id"], "failed")
    assert exc.value.code == "InvalidTransition"

async def test_process_withdrawal_invalid_status(store):
    w = store.seed_withdrawal("org-1", "2.00")
    with pytest.raises(ValidationError):
        await withdrawals_service.process_withdrawal(w["id"], "pending")
    with pytest.raises(NotFound):
        await withdrawals_service.process_withdrawal("missing", "completed")

async def test_withdrawal_info_and_list(store):
    _earnings(store, count=1)
    store.seed_withdrawal("org-1", "1.00")
    info = await withdrawals_service.withdrawal_info("org-1")
    assert info["balance"] == {
        "total_earnings": "4.75",
        "total_withdrawn": "0.00",
        "pending_withdrawals": "1.00",
        "available": "3.75",
    }
    assert "mobile_money" in info["methods"]

    listing = await withdrawals_service.list_withdrawals("org-1", page=1, limit=10)
    assert listing["pagination"]["total"] == 1
    assert len(listing["withdrawals"]) == 1

async def test_transfer_reversed_after_completion_logged(store, caplog):
    w = store.seed_withdrawal("org-1", "4.00", status="completed")
    caplog.set_level(logging.WARNING, logger="voteapp.withdrawals.service")

    result = await withdrawals_service.apply_transfer_outcome(w["id"], False, {"event": "transfer.reversed"})

    assert result is None
    assert store.withdrawals[w["id"]]["status"] == "completed"
    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert any("reversed after completion" in r.getMessage() and w["id"] in r.getMessage() for r in warnings)
