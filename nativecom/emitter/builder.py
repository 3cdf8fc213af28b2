"""Renders generated C# units from validated declarations."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from ..config import ACTIVATION_HELPER
from ..diagnostics import DiagnosticCode, DiagnosticReporter
from ..identifiers import IdentifierError, render_literal
from ..logging import get_logger
from ..models import GeneratedUnit, UnitSet, ValidatedDeclaration
from .dispatch import DispatchTable, DispatchTableBuilder, EmissionError

DISPATCH_UNIT = "Dll.g.cs"
SERVER_LOCK_UNIT = "NativeComServerLock.g.cs"
SERVER_LOCK_COUNTER = "global::NativeComServerLock.Count"
CLASS_E_CLASSNOTAVAILABLE = -2147221231

_INDENT = "    "


@dataclass(frozen=True)
class EmissionResult:
    """Units produced for one run plus the dispatch table they were built from."""

    units: UnitSet
    dispatch: DispatchTable
    skipped: Tuple[ValidatedDeclaration, ...] = ()


class CodeEmitter:
    """Deterministic renderer for factory, dispatch and lock-counter units."""

    def __init__(
        self,
        templates_dir: Path | None = None,
        *,
        activation_helper: str = ACTIVATION_HELPER,
        unit_suffix: str = ".NC.g.cs",
    ) -> None:
        self.templates_dir = templates_dir
        self.activation_helper = activation_helper
        self.unit_suffix = unit_suffix
        self._env = self._create_env(templates_dir)
        self.logger = get_logger("emitter")

    def emit(
        self,
        validated: Sequence[ValidatedDeclaration],
        *,
        emit_entry_points: bool = True,
        reporter: Optional[DiagnosticReporter] = None,
    ) -> EmissionResult:
        """Render every unit for an ordered sequence of validated declarations.

        A factory gets one unit for the first target it declares. Later targets
        of the same factory are skipped and reported as NC0006 warnings.
        """
        units = UnitSet()
        table_builder = DispatchTableBuilder()
        served: Dict[str, ValidatedDeclaration] = {}
        skipped: List[ValidatedDeclaration] = []
        for declaration in validated:
            first = served.get(declaration.factory.qualified_name)
            if first is not None:
                self.logger.debug(
                    "Factory %s already creates %s; skipping target %s",
                    declaration.factory.qualified_name,
                    first.target.qualified_name,
                    declaration.target.qualified_name,
                )
                if reporter is not None:
                    reporter.report(
                        DiagnosticCode.NC0006,
                        declaration.factory.location,
                        first.target.qualified_name,
                        declaration.target.qualified_name,
                    )
                skipped.append(declaration)
                continue
            served[declaration.factory.qualified_name] = declaration
            units.add(self.emit_factory(declaration))
            table_builder.add(declaration)
        dispatch = table_builder.build()
        units.add(self.emit_server_lock())
        if emit_entry_points:
            units.add(self.emit_dispatch(dispatch))
        else:
            self.logger.info("Entry point emission disabled; skipping %s", DISPATCH_UNIT)
        self.logger.debug("Emitted %d units (%d dispatch entries)", len(units), len(dispatch))
        return EmissionResult(units=units, dispatch=dispatch, skipped=tuple(skipped))

    def unit_name(self, validated: ValidatedDeclaration) -> str:
        return f"{validated.factory.qualified_name}{self.unit_suffix}"

    def helper_reference(self, factory_name: str) -> str:
        return f"global::{self.activation_helper}.CreateInstanceHelper<global::{factory_name}>"

    def emit_factory(self, validated: ValidatedDeclaration) -> GeneratedUnit:
        factory = validated.factory
        containers = factory.containing_types
        openers: List[Tuple[str, str]] = [
            (_INDENT * depth, name) for depth, name in enumerate(containers)
        ]
        closers = [_INDENT * depth + "}" for depth in reversed(range(len(containers)))]
        content = self._render(
            "factory.cs.j2",
            namespace=factory.namespace,
            openers=openers,
            closers=closers,
            prefix=_INDENT * len(containers),
            class_close=_INDENT * len(containers) + "}",
            name=factory.name,
            target=validated.target.qualified_name,
            helper=f"global::{self.activation_helper}",
            counter=SERVER_LOCK_COUNTER,
        )
        return GeneratedUnit(name=self.unit_name(validated), content=content)

    def emit_dispatch(self, table: DispatchTable) -> GeneratedUnit:
        entries = []
        for entry in table.entries:
            try:
                literal = render_literal(entry.identifier)
            except IdentifierError as exc:
                raise EmissionError(f"Validated identifier cannot be rendered: {exc}") from exc
            entries.append({"literal": literal, "index": entry.index})
        content = self._render(
            "dll.cs.j2",
            entries=entries,
            helpers=[self.helper_reference(name) for name in table.helpers],
            counter=SERVER_LOCK_COUNTER,
            class_not_available=CLASS_E_CLASSNOTAVAILABLE,
        )
        return GeneratedUnit(name=DISPATCH_UNIT, content=content)

    def emit_server_lock(self) -> GeneratedUnit:
        return GeneratedUnit(name=SERVER_LOCK_UNIT, content=self._render("server_lock.cs.j2"))

    def _render(self, template_name: str, **context: object) -> str:
        template = self._env.get_template(template_name)
        # Normalise line endings so output never depends on template checkout settings.
        return template.render(**context).replace("\r\n", "\n")

    @staticmethod
    def _create_env(templates_dir: Path | None) -> Environment:
        directories: List[str] = []
        if templates_dir:
            directories.append(str(templates_dir))
        default_dir = Path(__file__).with_name("templates")
        directories.append(str(default_dir))
        seen: set[str] = set()
        ordered: List[str] = []
        for directory in directories:
            if directory not in seen:
                ordered.append(directory)
                seen.add(directory)
        loader = FileSystemLoader(ordered)
        return Environment(
            loader=loader,
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
            undefined=StrictUndefined,
        )


__all__ = [
    "CLASS_E_CLASSNOTAVAILABLE",
    "CodeEmitter",
    "DISPATCH_UNIT",
    "EmissionResult",
    "SERVER_LOCK_UNIT",
]
