"""
Utility functions and decorators.
"""

from .logging_utils import StructuredLogger, log_operation, configure_logging
from .date_utils import subtract_months, start_of_day

__all__ = ["StructuredLogger", "log_operation", "configure_logging", "subtract_months", "start_of_day"]
