"""
Data Transfer Objects (DTOs) Layer

This package contains DTOs that decouple service callers from the database models.

Structure:
- request/: DTOs for incoming service calls
"""
