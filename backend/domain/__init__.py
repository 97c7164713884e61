"""
Domain Layer

This package contains the core lending decision logic, separated from
persistence concerns and infrastructure.

Structure:
- hierarchy.py: traversal of the category forest
- availability.py: loanable copy counts and the availability reserve
- value_objects/: Immutable value types without identity
"""
