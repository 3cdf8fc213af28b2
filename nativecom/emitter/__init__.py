"""Code emission for factory forwarding units and the shared dispatch unit."""

from .builder import (
    CLASS_E_CLASSNOTAVAILABLE,
    DISPATCH_UNIT,
    SERVER_LOCK_UNIT,
    CodeEmitter,
    EmissionResult,
)
from .dispatch import DispatchTable, DispatchTableBuilder, EmissionError

__all__ = [
    "CLASS_E_CLASSNOTAVAILABLE",
    "CodeEmitter",
    "DISPATCH_UNIT",
    "DispatchTable",
    "DispatchTableBuilder",
    "EmissionError",
    "EmissionResult",
    "SERVER_LOCK_UNIT",
]
