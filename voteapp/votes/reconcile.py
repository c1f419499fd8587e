"""
Réconciliation: crée les votes manquants des paiements 'completed'.
Rattrape les cas où le paiement a été finalisé mais où la création du vote a échoué
(stockage indisponible après le webhook, processus interrompu...).

Usage:
    python -m voteapp.votes.reconcile [--limit N]
"""
import argparse
import asyncio
import logging
from typing import Dict

from voteapp.errors import AppError
from voteapp.votes import committer, repository

logger = logging.getLogger(__name__)


# module voteapp.votes.reconcile
async def backfill_missing_votes(limit: int = 100) -> Dict[str, int]:
    """Retour: {scanned, committed, already_committed, failed}."""
    payments = await repository.list_completed_payments_without_vote(limit)
    counters = {"scanned": len(payments), "committed": 0, "already_committed": 0, "failed": 0}
    for payment in payments:
        try:
            result = await committer.commit(payment["id"])
        except AppError:
            counters["failed"] += 1
            logger.exception("votes.reconcile commit failed payment_id=%s", payment.get("id"))
            continue
        if result.already_committed:
            counters["already_committed"] += 1
        else:
            counters["committed"] += 1
    logger.info("votes.reconcile done %s", " ".join(f"{k}={v}" for k, v in counters.items()))
    return counters


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Crée les votes manquants des paiements complétés.")
    parser.add_argument("--limit", type=int, default=100)
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s %(message)s")
    counters = asyncio.run(backfill_missing_votes(args.limit))
    print(" ".join(f"{k}={v}" for k, v in counters.items()))
    return 1 if counters["failed"] else 0


if __name__ == "__main__":
    raise SystemExit(main())
