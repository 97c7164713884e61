"""
Borrowing Request DTOs

Validate the arguments of borrow, extend and return calls before any rule runs.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, validator
from pydantic import ValidationError as PydanticValidationError

from exceptions import ValidationError


class BorrowingBatchRequest(BaseModel):
    """
    Request DTO for borrowing several books in one call.
    """

    reader_id: int = Field(gt=0, description="Borrowing reader")
    book_ids: List[int] = Field(min_length=1, description="Books to borrow, processed in order")
    borrowing_date: datetime = Field(description="Borrowing date of every created loan")
    days_to_borrow: int = Field(gt=0, description="Loan length in days")
    staff_id: Optional[int] = Field(None, gt=0, description="Staff member processing the request")

    @validator("book_ids", each_item=True)
    def validate_book_id(cls, v):
        """Ensure every book id is positive."""
        if v <= 0:
            raise ValueError("Book ids must be positive")
        return v


class SingleBorrowRequest(BaseModel):
    reader_id: int = Field(gt=0)
    book_id: int = Field(gt=0)
    borrowing_days: int = Field(gt=0)
    staff_id: Optional[int] = Field(None, gt=0)


class ExtensionRequest(BaseModel):
    borrowing_id: int = Field(gt=0)
    extension_days: int = Field(gt=0)
    extension_date: datetime


class ReturnRequest(BaseModel):
    borrowing_id: int = Field(gt=0)
    return_date: datetime


def parse_request(dto_class, **values):
    """
    Build a request DTO, converting pydantic failures.

    Raises:
        ValidationError: If any argument is missing or out of range
    """
    try:
        return dto_class(**values)
    except PydanticValidationError as e:
        invalid_fields = {".".join(str(p) for p in err["loc"]): err["msg"] for err in e.errors()}
        raise ValidationError(
            f"Invalid arguments: {', '.join(sorted(invalid_fields))}",
            invalid_fields=invalid_fields
        ) from e
