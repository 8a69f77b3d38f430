"""
Core constants — **Single Source of Truth** for project-wide magic numbers.

Any business rule, cache window or pagination limit that references a
numeric constant should import it from here instead of hardcoding.
Values that operators may tune per deployment are read from Django
settings with these as defaults.
"""

from decimal import Decimal

# ── Roles ───────────────────────────────────────────────────────────


class RoleNames:
    """Canonical ``Role.name`` values seeded by ``setup_roles``."""

    ADMIN = "Admin"
    RCD_OFFICER = "RCD_Officer"
    MEDIATOR = "Mediator"
    TENANT = "Tenant"
    LANDLORD = "Landlord"

    ALL = (ADMIN, RCD_OFFICER, MEDIATOR, TENANT, LANDLORD)


# ── Priority classification ─────────────────────────────────────────
# Rent-arrears claims strictly above this amount are High priority.
# Override with ``settings.CASE_PRIORITY_CLAIM_THRESHOLD``.
DEFAULT_PRIORITY_CLAIM_THRESHOLD: Decimal = Decimal("5000.00")

# ── Aggregate cache windows (seconds) ───────────────────────────────
CASE_DETAIL_CACHE_TTL: int = 10 * 60
CASE_STATISTICS_CACHE_TTL: int = 15 * 60
DASHBOARD_CACHE_TTL: int = 5 * 60
HEARING_CALENDAR_CACHE_TTL: int = 5 * 60

# Generation counters outlive the entries they version.
CALENDAR_GENERATION_TTL: int = 24 * 60 * 60

# ── External registries ─────────────────────────────────────────────
# Seconds a property / tenancy lookup may take before the registry is
# reported unavailable.  Override with ``settings.COLLABORATOR_TIMEOUT_SECONDS``.
DEFAULT_COLLABORATOR_TIMEOUT_SECONDS: float = 5.0

# ── Pagination ──────────────────────────────────────────────────────
DEFAULT_PAGE_SIZE: int = 20
MAX_PAGE_SIZE: int = 100

# ── Reporting windows ───────────────────────────────────────────────
DASHBOARD_CASE_LIMIT: int = 10
STATISTICS_MONTHS_BACK: int = 6
ATTENTION_AGE_DAYS: int = 14
OVERDUE_SUBMITTED_DAYS: int = 30
UPCOMING_HEARING_DAYS: int = 7
DASHBOARD_SUBMITTED_STALE_DAYS: int = 7
DASHBOARD_REVIEW_STALE_DAYS: int = 14

# ── Numbering ───────────────────────────────────────────────────────
HEARING_NUMBER_PREFIX: str = "HE"
SEQUENCE_WIDTH: int = 4
