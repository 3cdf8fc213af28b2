"""Validation of resolved factory declarations."""

from .base import (
    EnvironmentNotSupported,
    ValidationOutcome,
    WellKnownTypes,
    resolve_well_known,
)
from .declaration import DeclarationValidator

__all__ = [
    "DeclarationValidator",
    "EnvironmentNotSupported",
    "ValidationOutcome",
    "WellKnownTypes",
    "resolve_well_known",
]
