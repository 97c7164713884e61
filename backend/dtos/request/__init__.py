"""
Request DTOs

DTOs for incoming service calls. They validate ids, day counts and dates at
the boundary so the lending rules only ever see well-formed input.
"""

from .borrowing_request import (
    BorrowingBatchRequest,
    SingleBorrowRequest,
    ExtensionRequest,
    ReturnRequest,
    parse_request,
)

__all__ = [
    "BorrowingBatchRequest",
    "SingleBorrowRequest",
    "ExtensionRequest",
    "ReturnRequest",
    "parse_request",
]
