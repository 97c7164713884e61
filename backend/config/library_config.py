"""
Lending Policy Configuration

Immutable set of numeric thresholds the borrowing engine enforces.

Includes:
- Defaults for every quota, window and percentage
- Environment overrides (LIBRARY_<FIELD_NAME>)
- Staff-adjusted threshold helpers
"""
import os
import logging
from typing import Optional

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from constants import EnvKeys, PolicyDefaults
from exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class LibraryConfiguration(BaseModel):
    """
    Lending policy knobs.

    Instances are frozen; pass a new instance to a service to run it under a
    different policy.
    """

    max_domains_per_book: int = Field(PolicyDefaults.MAX_DOMAINS_PER_BOOK, ge=1, description="Cap on tagged domains per book")
    max_books_per_period: int = Field(PolicyDefaults.MAX_BOOKS_PER_PERIOD, ge=0, description="Active-loan and rolling-period cap")
    borrowing_period_days: int = Field(PolicyDefaults.BORROWING_PERIOD_DAYS, ge=0, description="Width of the rolling period window")
    max_books_per_request: int = Field(PolicyDefaults.MAX_BOOKS_PER_REQUEST, ge=0, description="Books allowed in one request")
    max_books_per_domain: int = Field(PolicyDefaults.MAX_BOOKS_PER_DOMAIN, ge=0, description="Cumulative domain-subtree cap")
    domain_limit_months: int = Field(PolicyDefaults.DOMAIN_LIMIT_MONTHS, ge=0, description="Window for the domain-subtree cap")
    max_extension_days: int = Field(PolicyDefaults.MAX_EXTENSION_DAYS, ge=0, description="Per-loan and rolling extension cap")
    min_days_between_borrows: int = Field(PolicyDefaults.MIN_DAYS_BETWEEN_BORROWS, ge=0, description="Re-borrow cooldown in days")
    max_books_per_day: int = Field(PolicyDefaults.MAX_BOOKS_PER_DAY, ge=0, description="Daily cap for non-staff readers")
    max_books_staff_per_day: int = Field(PolicyDefaults.MAX_BOOKS_STAFF_PER_DAY, ge=0, description="Books one staff member may hand out per day")
    min_available_percentage: float = Field(PolicyDefaults.MIN_AVAILABLE_PERCENTAGE, ge=0.0, le=1.0, description="Reserved fraction of loanable stock")

    class Config:
        """Pydantic configuration."""
        frozen = True

    @classmethod
    def build(cls, **overrides) -> "LibraryConfiguration":
        """
        Create a configuration, converting validation failures.

        Raises:
            ConfigurationError: If any value is out of range
        """
        try:
            return cls(**overrides)
        except PydanticValidationError as e:
            invalid = [".".join(str(p) for p in err["loc"]) for err in e.errors()]
            raise ConfigurationError(
                f"Invalid lending policy: {', '.join(invalid)}",
                invalid_keys=invalid
            ) from e

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "LibraryConfiguration":
        """
        Build a configuration from LIBRARY_* environment variables.

        Unset variables keep their defaults.

        Args:
            environ: Mapping to read instead of os.environ

        Raises:
            ConfigurationError: If a variable cannot be parsed or is out of range
        """
        environ = os.environ if environ is None else environ
        overrides = {}
        for name, field in cls.model_fields.items():
            key = f"{EnvKeys.POLICY_PREFIX}{name.upper()}"
            raw = environ.get(key)
            if raw is None or raw.strip() == '':
                continue
            try:
                overrides[name] = field.annotation(raw.strip())
            except ValueError as e:
                raise ConfigurationError(
                    f"Environment variable {key} is not a valid {field.annotation.__name__}: {raw!r}",
                    invalid_keys=[key]
                ) from e

        if overrides:
            logger.info(f"Lending policy overrides from environment: {sorted(overrides)}")
        return cls.build(**overrides)

    # Staff-adjusted thresholds

    def max_books_in_period(self, is_staff: bool) -> int:
        return self.max_books_per_period * PolicyDefaults.STAFF_MULTIPLIER if is_staff else self.max_books_per_period

    def max_books_in_request(self, is_staff: bool) -> int:
        return self.max_books_per_request * PolicyDefaults.STAFF_MULTIPLIER if is_staff else self.max_books_per_request

    def max_books_in_domain(self, is_staff: bool) -> int:
        return self.max_books_per_domain * PolicyDefaults.STAFF_MULTIPLIER if is_staff else self.max_books_per_domain

    def max_extension_in_window(self, is_staff: bool) -> int:
        return self.max_extension_days * PolicyDefaults.STAFF_MULTIPLIER if is_staff else self.max_extension_days

    def cooldown_days(self, is_staff: bool) -> int:
        return self.min_days_between_borrows // 2 if is_staff else self.min_days_between_borrows

    def max_books_in_day(self, is_staff: bool) -> Optional[int]:
        """Daily cap, or None when the reader has no daily cap."""
        return None if is_staff else self.max_books_per_day


DEFAULT_CONFIGURATION = LibraryConfiguration()
