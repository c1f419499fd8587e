"""
Cas d'usage 'votes': création explicite d'un vote par le client et pré-vol d'éligibilité.
La création du vote elle-même est déléguée au committer (idempotent par paiement).
"""
from datetime import datetime
from typing import Any, Dict, Optional

from voteapp.votes import committer, eligibility


# module voteapp.votes.service
async def cast_vote(
    voter_id: str,
    contestant_id: str,
    payment_id: str,
    amount: Any,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Vote adossé à un paiement complété du votant pour ce candidat.
    - Rejouer la requête renvoie le même vote avec already_committed=True.
    """
    await eligibility.check_eligibility(contestant_id, amount, voter_id=voter_id, now=now)
    result = await committer.commit(
        payment_id,
        expected_voter_id=voter_id,
        expected_contestant_id=contestant_id,
    )
    return {"vote": result.vote, "already_committed": result.already_committed}


async def can_vote(contestant_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    return await eligibility.can_vote(contestant_id, now=now)
