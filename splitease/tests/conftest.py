"""
Registers every model before any test runs.

Relationships are declared by class name, so DB-free unit tests that build
model instances need the whole mapper registry importable up front.
"""

from splitease.app.models import friend, split, transaction, user  # noqa: F401
