"""
Provenance - Oracle Consensus.

Weighted aggregation of oracle attestations per request, following
the oracle integration contract: an aggregate counts once summed
source weight reaches the quorum, and passes when the passing share
is at least the threshold in basis points (inclusive).
"""

from collections import OrderedDict
from typing import Dict, Iterable, List

from .types import EventKind, OracleConsensus, ProvenanceEvent


def aggregate_oracle_consensus(
    events: Iterable[ProvenanceEvent],
    quorum_weight: int = 200,
    pass_bps_threshold: int = 6000,
) -> List[OracleConsensus]:
    """
    Aggregate attestation events by oracle request id.

    Results are ordered by the first attestation seen for each request.
    A source attesting twice to the same request only counts once.
    """
    groups: Dict[str, Dict[str, ProvenanceEvent]] = OrderedDict()

    for event in events:
        if event.kind != EventKind.ORACLE_ATTESTATION:
            continue
        request_id = str(event.payload.get("request_id", ""))
        signers = groups.setdefault(request_id, OrderedDict())
        signers.setdefault(event.actor.lower(), event)

    results = []
    for request_id, signers in groups.items():
        total_weight = 0
        pass_weight = 0
        for event in signers.values():
            weight = max(0, int(event.payload.get("weight", 0) or 0))
            total_weight += weight
            if event.payload.get("verdict"):
                pass_weight += weight

        quorum_reached = total_weight >= quorum_weight
        passed = quorum_reached and pass_weight * 10000 >= pass_bps_threshold * total_weight

        results.append(OracleConsensus(
            request_id=request_id,
            total_weight=total_weight,
            pass_weight=pass_weight,
            count=len(signers),
            quorum_reached=quorum_reached,
            passed=passed,
        ))

    return results
