"""
Human-readable case and hearing numbers.

Format: ``{prefix}/{year}/{month:02}/{sequence:04}``, e.g.
``RA/2026/03/0007``.  The prefix is a fixed two-letter code per case
type (``OT`` for anything unmapped) or ``HE`` for hearings.  Sequences
come from ``core.domain.sequences.next_sequence``, which serializes
allocation per (prefix, year, month) bucket.
"""

from __future__ import annotations

from datetime import datetime

from django.utils import timezone

from core.constants import HEARING_NUMBER_PREFIX, SEQUENCE_WIDTH
from core.domain.sequences import next_sequence

from .models import CaseType

CASE_TYPE_PREFIXES: dict[str, str] = {
    CaseType.RENT_ARREARS: "RA",
    CaseType.PROPERTY_MAINTENANCE: "PM",
    CaseType.ILLEGAL_EVICTION: "IE",
    CaseType.RENT_INCREASE_DISPUTE: "RI",
    CaseType.SECURITY_DEPOSIT_DISPUTE: "SD",
    CaseType.HARASSMENT: "HR",
    CaseType.UTILITY_DISPUTE: "UD",
    CaseType.REPAIR_NEGLECT: "RN",
    CaseType.OVERCROWDING: "OC",
    CaseType.HEALTH_AND_SAFETY: "HS",
    CaseType.NOISE_COMPLAINT: "NC",
    CaseType.LEASE_VIOLATION: "LV",
}
DEFAULT_CASE_PREFIX = "OT"


def case_type_prefix(case_type: str) -> str:
    return CASE_TYPE_PREFIXES.get(case_type, DEFAULT_CASE_PREFIX)


def format_number(prefix: str, year: int, month: int, sequence: int) -> str:
    return f"{prefix}/{year}/{month:02d}/{sequence:0{SEQUENCE_WIDTH}d}"


def _allocate(prefix: str, now: datetime | None) -> str:
    now = timezone.localtime(now or timezone.now())
    sequence = next_sequence(prefix, year=now.year, month=now.month)
    return format_number(prefix, now.year, now.month, sequence)


def allocate_case_number(case_type: str, *, now: datetime | None = None) -> str:
    """Allocate the next case number for ``case_type`` in the current month."""
    return _allocate(case_type_prefix(case_type), now)


def allocate_hearing_number(*, now: datetime | None = None) -> str:
    """Allocate the next ``HE/...`` hearing number in the current month."""
    return _allocate(HEARING_NUMBER_PREFIX, now)
