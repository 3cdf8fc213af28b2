"""Executable model of the activation surface the generated code exposes.

The generated C# runs inside a native host process, so its behaviour cannot
be observed from a generation run. This module mirrors it in Python: the same
HRESULT contract, the same dispatch through a :class:`DispatchTable`, and the
same lock counter discipline. Tests and ``nativecom lookup`` use it to probe a
dispatch table the way a host process would.
"""

from __future__ import annotations

from dataclasses import dataclass
import threading
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Tuple

from .emitter.dispatch import DispatchTable
from .identifiers import FieldLayout
from .logging import get_logger


def to_hresult(value: int) -> int:
    """Interpret an unsigned 32-bit result code as the signed value a host sees."""
    value &= 0xFFFFFFFF
    return value - 0x1_0000_0000 if value & 0x80000000 else value


S_OK = 0
S_FALSE = 1
E_NOINTERFACE = to_hresult(0x80004002)
E_POINTER = to_hresult(0x80004003)
E_UNEXPECTED = to_hresult(0x8000FFFF)
CLASS_E_NOAGGREGATION = to_hresult(0x80040110)
CLASS_E_CLASSNOTAVAILABLE = to_hresult(0x80040111)

logger = get_logger("runtime")


class InteropRuntime(Protocol):
    """Wrapper services of the interop layer, treated as an opaque collaborator."""

    def create_wrapper(self, instance: object) -> Optional[Any]:
        """Return a wrapper handle for ``instance`` or None on failure."""

    def query_interface(self, handle: Any, iid: FieldLayout) -> Tuple[int, Optional[Any]]:
        """Return ``(hresult, interface pointer)`` for ``iid`` on ``handle``."""

    def release(self, handle: Any) -> None:
        """Drop one reference from ``handle``."""


@dataclass
class OutputSlot:
    """Caller-owned location receiving an interface pointer (``void**``)."""

    value: Optional[Any] = None


class LockCounter:
    """Process-wide server lock count mutated by concurrent ``LockServer`` calls."""

    def __init__(self) -> None:
        self._value = 0
        self._lock = threading.Lock()

    def increment(self) -> int:
        with self._lock:
            self._value += 1
            return self._value

    def decrement(self) -> int:
        with self._lock:
            self._value -= 1
            return self._value

    @property
    def value(self) -> int:
        with self._lock:
            return self._value


def create_instance_helper(
    cls: Callable[[], object],
    outer: Optional[object],
    iid: FieldLayout,
    slot: Optional[OutputSlot],
    runtime: InteropRuntime,
) -> int:
    """Instantiate ``cls`` and hand back the interface ``iid`` through ``slot``."""
    if slot is None:
        return E_POINTER
    slot.value = None
    if outer is not None:
        return CLASS_E_NOAGGREGATION

    instance = cls()
    handle = runtime.create_wrapper(instance)
    if handle is None:
        return E_UNEXPECTED
    try:
        hr, pointer = runtime.query_interface(handle, iid)
        if hr == S_OK:
            slot.value = pointer
        return hr
    finally:
        runtime.release(handle)


class ClassFactory:
    """Behaviour of a generated factory unit: forward creation, count locks."""

    def __init__(
        self,
        target: Callable[[], object],
        counter: LockCounter,
        runtime: InteropRuntime,
    ) -> None:
        self.target = target
        self.counter = counter
        self.runtime = runtime

    def create_instance(self, outer: Optional[object], iid: FieldLayout, slot: Optional[OutputSlot]) -> int:
        return create_instance_helper(self.target, outer, iid, slot, self.runtime)

    def lock_server(self, lock: bool) -> int:
        if lock:
            self.counter.increment()
        else:
            self.counter.decrement()
        return S_OK


class ComServer:
    """Behaviour of the generated dispatch unit over a dispatch table.

    ``factories`` maps each factory's qualified name to a constructor of its
    model object. Dispatched indices are recorded in ``invocations``.
    """

    def __init__(
        self,
        table: DispatchTable,
        factories: Mapping[str, Callable[[], object]],
        runtime: InteropRuntime,
        counter: Optional[LockCounter] = None,
    ) -> None:
        missing = [name for name in table.helpers if name not in factories]
        if missing:
            raise KeyError(f"No factory constructor registered for: {', '.join(missing)}")
        self.table = table
        self.runtime = runtime
        self.counter = counter or LockCounter()
        self._helpers: List[Callable[[Optional[object], FieldLayout, Optional[OutputSlot]], int]] = [
            self._make_helper(factories[name]) for name in table.helpers
        ]
        self.invocations: List[int] = []

    @classmethod
    def for_targets(
        cls,
        table: DispatchTable,
        factory_targets: Mapping[str, str],
        targets: Mapping[str, Callable[[], object]],
        runtime: InteropRuntime,
    ) -> "ComServer":
        """Model a module whose factories create the mapped target constructors.

        ``factory_targets`` maps factory names to target names and ``targets``
        maps target names to constructors; all factories share one counter.
        """
        counter = LockCounter()
        factories: Dict[str, Callable[[], object]] = {}
        for name in table.helpers:
            target = targets[factory_targets[name]]

            def _construct(target: Callable[[], object] = target) -> ClassFactory:
                return ClassFactory(target, counter, runtime)

            factories[name] = _construct
        return cls(table, factories, runtime, counter)

    def get_class_object(self, clsid: FieldLayout, iid: FieldLayout, slot: Optional[OutputSlot]) -> int:
        index = self.table.lookup(clsid)
        if index is None:
            logger.debug("Class identifier not served by this module")
            return CLASS_E_CLASSNOTAVAILABLE
        self.invocations.append(index)
        return self._helpers[index](None, iid, slot)

    def can_unload_now(self) -> int:
        return S_OK if self.counter.value <= 0 else S_FALSE

    def _make_helper(
        self, factory: Callable[[], object]
    ) -> Callable[[Optional[object], FieldLayout, Optional[OutputSlot]], int]:
        def _helper(outer: Optional[object], iid: FieldLayout, slot: Optional[OutputSlot]) -> int:
            return create_instance_helper(factory, outer, iid, slot, self.runtime)

        return _helper


__all__ = [
    "CLASS_E_CLASSNOTAVAILABLE",
    "CLASS_E_NOAGGREGATION",
    "ClassFactory",
    "ComServer",
    "E_NOINTERFACE",
    "E_POINTER",
    "E_UNEXPECTED",
    "InteropRuntime",
    "LockCounter",
    "OutputSlot",
    "S_FALSE",
    "S_OK",
    "create_instance_helper",
    "to_hresult",
]
