"""
Picks the faculty approver for a new leave request.

Candidates are the active faculty of the student's department, ordered by
account creation time and then id. With several candidates:
- first_match takes the oldest account, the same choice every time;
- least_loaded takes whoever has the fewest pending leaves, oldest first on ties.
"""

import logging
from typing import Optional

from app.core.config import settings
from app.core.exceptions import InvalidInput, NoFacultyAvailable
from app.core.repository import LeaveRepository
from app.schemas.leave import LeaveStatus

logger = logging.getLogger(__name__)

STRATEGIES = ("first_match", "least_loaded")


def resolve_faculty(
    repo: LeaveRepository,
    department: Optional[str],
    strategy: Optional[str] = None,
) -> dict:
    department = (department or "").strip()
    if not department:
        raise InvalidInput.for_field("department", "Student has no department on record")

    strategy = strategy or settings.FACULTY_ASSIGNMENT
    if strategy not in STRATEGIES:
        raise ValueError(f"Unknown faculty assignment strategy: {strategy}")

    candidates = repo.list_faculty(department)
    if not candidates:
        raise NoFacultyAvailable()

    if strategy == "least_loaded" and len(candidates) > 1:
        loads = [
            repo.count_leaves(status=LeaveStatus.PENDING.value, faculty_id=f["id"])
            for f in candidates
        ]
        # min() keeps the first of equal loads, which preserves the age order
        chosen = candidates[loads.index(min(loads))]
    else:
        chosen = candidates[0]

    logger.debug(
        "Assigned faculty %s for department %s (%s, %d candidates)",
        chosen["id"], department, strategy, len(candidates),
    )
    return chosen
