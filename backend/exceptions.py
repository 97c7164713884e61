"""
Custom exception classes for the application.

This module defines domain-specific exceptions that provide better error handling
and clearer error messages throughout the lending engine.
"""


class ApplicationError(Exception):
    """Base exception for all application errors"""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ConfigurationError(ApplicationError):
    """Raised when a policy or environment setting is invalid"""

    def __init__(self, message: str, invalid_keys: list[str] | None = None):
        details = {"invalid_keys": invalid_keys} if invalid_keys else {}
        super().__init__(message, details)


class NotFoundError(ApplicationError):
    """Raised when a reader, book, borrowing or domain does not exist"""

    def __init__(self, entity: str, entity_id: int | None, message: str | None = None):
        details = {"entity": entity, "entity_id": entity_id}
        msg = message or f"{entity} {entity_id} not found."
        super().__init__(msg, details)


class ValidationError(ApplicationError):
    """Raised when a required input is missing or malformed"""

    def __init__(self, message: str, invalid_fields: dict | None = None):
        details = {"invalid_fields": invalid_fields} if invalid_fields else {}
        super().__init__(message, details)


class BusinessRuleViolation(ApplicationError):
    """Raised when a lending quota or eligibility rule rejects an operation"""

    def __init__(self, rule: str, message: str):
        details = {"rule": rule}
        self.rule = rule
        super().__init__(message, details)


class DatabaseError(ApplicationError):
    """Raised when database operations fail"""

    def __init__(self, operation: str, message: str):
        details = {"operation": operation}
        super().__init__(message, details)
