import pytest
from pydantic import ValidationError as PydanticValidationError

from config.library_config import DEFAULT_CONFIGURATION, LibraryConfiguration
from exceptions import ConfigurationError


def test_defaults():
    config = DEFAULT_CONFIGURATION

    assert config.max_domains_per_book == 3
    assert config.max_books_per_period == 10
    assert config.borrowing_period_days == 28
    assert config.max_books_per_request == 6
    assert config.max_books_per_domain == 3
    assert config.domain_limit_months == 6
    assert config.max_extension_days == 28
    assert config.min_days_between_borrows == 10
    assert config.max_books_per_day == 5
    assert config.max_books_staff_per_day == 3
    assert config.min_available_percentage == 0.1


def test_configuration_is_frozen():
    with pytest.raises(PydanticValidationError):
        DEFAULT_CONFIGURATION.max_books_per_day = 50


@pytest.mark.parametrize("overrides", [
    {"max_domains_per_book": 0},
    {"max_books_per_day": -1},
    {"min_available_percentage": 1.5},
])
def test_build_rejects_out_of_range_values(overrides):
    with pytest.raises(ConfigurationError) as exc_info:
        LibraryConfiguration.build(**overrides)
    assert list(overrides) == exc_info.value.details["invalid_keys"]


def test_from_env_reads_prefixed_variables():
    config = LibraryConfiguration.from_env({
        "LIBRARY_MAX_BOOKS_PER_DAY": "7",
        "LIBRARY_MIN_AVAILABLE_PERCENTAGE": "0.25",
        "LIBRARY_DOMAIN_LIMIT_MONTHS": "",
        "UNRELATED": "x",
    })

    assert config.max_books_per_day == 7
    assert config.min_available_percentage == 0.25
    assert config.domain_limit_months == 6


def test_from_env_rejects_unparsable_value():
    with pytest.raises(ConfigurationError) as exc_info:
        LibraryConfiguration.from_env({"LIBRARY_MAX_EXTENSION_DAYS": "two weeks"})
    assert exc_info.value.details["invalid_keys"] == ["LIBRARY_MAX_EXTENSION_DAYS"]


def test_staff_thresholds():
    config = LibraryConfiguration.build(min_days_between_borrows=9)

    assert config.max_books_in_period(True) == 20
    assert config.max_books_in_request(True) == 12
    assert config.max_books_in_domain(True) == 6
    assert config.max_extension_in_window(True) == 56
    assert config.cooldown_days(True) == 4
    assert config.max_books_in_day(True) is None

    assert config.max_books_in_period(False) == 10
    assert config.cooldown_days(False) == 9
    assert config.max_books_in_day(False) == 5
