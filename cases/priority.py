"""
Initial priority classification.

``classify_priority`` is a pure function of the case type and claim
amount; it touches no persistence and is safe to call anywhere.
"""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings

from core.constants import DEFAULT_PRIORITY_CLAIM_THRESHOLD

from .models import CasePriority, CaseType

CRITICAL_CASE_TYPES = frozenset({
    CaseType.ILLEGAL_EVICTION,
    CaseType.HARASSMENT,
    CaseType.HEALTH_AND_SAFETY,
})


def claim_threshold() -> Decimal:
    """Rent-arrears claims strictly above this amount are High priority."""
    return Decimal(str(getattr(
        settings,
        "CASE_PRIORITY_CLAIM_THRESHOLD",
        DEFAULT_PRIORITY_CLAIM_THRESHOLD,
    )))


def classify_priority(
    case_type: str,
    claim_amount: Decimal | int | float | None,
    *,
    threshold: Decimal | None = None,
) -> CasePriority:
    """
    Map a case type and claim amount to its initial priority tier.

    Parameters
    ----------
    case_type : str
        A ``CaseType`` value.
    claim_amount : Decimal | None
        Amount claimed; ``None`` is treated as no claim.
    threshold : Decimal, optional
        Override of the configured rent-arrears threshold.

    Returns
    -------
    CasePriority
        ``CRITICAL`` for eviction, harassment and health-and-safety
        disputes; ``HIGH`` for repair neglect or rent arrears above the
        threshold; ``MEDIUM`` otherwise.  ``LOW`` is never produced.
    """
    if case_type in CRITICAL_CASE_TYPES:
        return CasePriority.CRITICAL

    if case_type == CaseType.REPAIR_NEGLECT:
        return CasePriority.HIGH

    if case_type == CaseType.RENT_ARREARS and claim_amount is not None:
        limit = threshold if threshold is not None else claim_threshold()
        if Decimal(str(claim_amount)) > limit:
            return CasePriority.HIGH

    return CasePriority.MEDIUM
