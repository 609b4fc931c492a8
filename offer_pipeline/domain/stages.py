"""Stage classification into aggregation buckets."""

from __future__ import annotations

from typing import Any

from offer_pipeline.domain.models import Stage, StageBucket

# A confirmed PO counts as realized business even before formal booking.
STAGE_BUCKETS: dict[Stage, StageBucket] = {
    Stage.INITIAL: StageBucket.ACTIVE,
    Stage.PROPOSAL_SENT: StageBucket.ACTIVE,
    Stage.NEGOTIATION: StageBucket.ACTIVE,
    Stage.FINAL_APPROVAL: StageBucket.ACTIVE,
    Stage.PO_RECEIVED: StageBucket.WON,
    Stage.ORDER_BOOKED: StageBucket.WON,
    Stage.WON: StageBucket.WON,
    Stage.LOST: StageBucket.LOST,
}


def classify(stage: Stage | str | Any) -> StageBucket:
    """Map a stage to WON, ACTIVE or LOST.

    Raises ConfigurationError for any value outside the stage enumeration.
    """
    return STAGE_BUCKETS[Stage.parse(stage)]
