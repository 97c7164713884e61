"""
Application-wide constants and configuration keys.

This module centralizes all magic strings and numbers used throughout the lending
engine to improve maintainability and reduce duplication.
"""
from enum import Enum


class EnvKeys:
    """Environment variable names read at startup"""

    DATABASE_URL = "DATABASE_URL"
    LOG_LEVEL = "LIBRARY_LOG_LEVEL"
    LOG_FILE = "LIBRARY_LOG_FILE"

    # Policy overrides, one per LibraryConfiguration field
    POLICY_PREFIX = "LIBRARY_"


class PolicyDefaults:
    """Default lending policy thresholds.

    Staff readers get doubled caps for the period, request, domain and
    extension limits, a halved re-borrow cooldown and no daily cap.
    """

    MAX_DOMAINS_PER_BOOK = 3
    MAX_BOOKS_PER_PERIOD = 10
    BORROWING_PERIOD_DAYS = 28
    MAX_BOOKS_PER_REQUEST = 6
    MAX_BOOKS_PER_DOMAIN = 3
    DOMAIN_LIMIT_MONTHS = 6
    MAX_EXTENSION_DAYS = 28
    MIN_DAYS_BETWEEN_BORROWS = 10
    MAX_BOOKS_PER_DAY = 5
    MAX_BOOKS_STAFF_PER_DAY = 3
    MIN_AVAILABLE_PERCENTAGE = 0.1

    STAFF_MULTIPLIER = 2
    EXTENSION_WINDOW_MONTHS = 3
    DIVERSITY_THRESHOLD = 3
    MIN_DISTINCT_DOMAINS = 2


class BorrowRule(str, Enum):
    """
    Names of the eligibility and quota rules.

    Used as the `rule` of a BusinessRuleViolation and in rejection log lines.
    """

    READER_OR_BOOK_MISSING = 'READER_OR_BOOK_MISSING'
    NO_AVAILABLE_COPIES = 'NO_AVAILABLE_COPIES'
    NO_LOANABLE_STOCK = 'NO_LOANABLE_STOCK'
    AVAILABILITY_RESERVE = 'AVAILABILITY_RESERVE'
    ACTIVE_LOAN_CAP = 'ACTIVE_LOAN_CAP'
    DOMAIN_SUBTREE_CAP = 'DOMAIN_SUBTREE_CAP'
    REBORROW_COOLDOWN = 'REBORROW_COOLDOWN'
    DAILY_CAP = 'DAILY_CAP'

    STAFF_DAILY_CAP = 'STAFF_DAILY_CAP'
    REQUEST_CAP = 'REQUEST_CAP'
    DOMAIN_DIVERSITY = 'DOMAIN_DIVERSITY'
    PERIOD_CAP = 'PERIOD_CAP'
    NOT_ELIGIBLE = 'NOT_ELIGIBLE'

    LOAN_NOT_ACTIVE = 'LOAN_NOT_ACTIVE'
    EXTENSION_LIMIT = 'EXTENSION_LIMIT'
    EXTENSION_WINDOW_CAP = 'EXTENSION_WINDOW_CAP'

    MAX_DOMAINS_PER_BOOK = 'MAX_DOMAINS_PER_BOOK'
    DOMAIN_HIERARCHY_CONFLICT = 'DOMAIN_HIERARCHY_CONFLICT'
    DUPLICATE_ISBN = 'DUPLICATE_ISBN'
    DOMAIN_SELF_PARENT = 'DOMAIN_SELF_PARENT'
    DOMAIN_IN_USE = 'DOMAIN_IN_USE'
    STAFF_REQUIRED = 'STAFF_REQUIRED'
    READING_ROOM_EXCEEDS_TOTAL = 'READING_ROOM_EXCEEDS_TOTAL'


class HierarchyLimits:
    """Traversal guards for the domain tree"""

    # Upper bound on ancestor walks; a deeper chain means corrupt parent links
    MAX_DEPTH = 256
