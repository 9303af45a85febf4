"""
Structural and temporal validity of a prover assignment.
"""

import logging

from rollsettle.core.canonical import ZERO_HASH
from rollsettle.core.exceptions import AssignmentExpiredOrInvalid
from rollsettle.core.models import Assignment, BlockContext

logger = logging.getLogger(__name__)


def is_valid_assignment(
    assignment:           Assignment,
    ctx:                  BlockContext,
    current_time:         int,
    current_block_number: int,
) -> bool:
    """True iff none of the four invalidity conditions holds."""
    return not (
        current_time > assignment.expiry
        or (assignment.meta_hash != ZERO_HASH and assignment.meta_hash != ctx.meta_hash)
        or (assignment.max_block_id != 0 and ctx.block_id > assignment.max_block_id)
        or (assignment.max_proposed_in != 0 and current_block_number > assignment.max_proposed_in)
    )


def validate_assignment(
    assignment:           Assignment,
    ctx:                  BlockContext,
    current_time:         int,
    current_block_number: int,
) -> None:
    """
    Raise AssignmentExpiredOrInvalid if the assignment cannot be used for ctx.

    Expiry, metadata binding, block id ceiling and proposal height ceiling
    all surface as the same error kind. No side effects.
    """
    if not is_valid_assignment(assignment, ctx, current_time, current_block_number):
        logger.debug(
            "Assignment rejected for block %d at time=%d height=%d",
            ctx.block_id, current_time, current_block_number,
        )
        raise AssignmentExpiredOrInvalid(
            "Assignment expired or not valid for this block",
            {"block_id": ctx.block_id},
        )
