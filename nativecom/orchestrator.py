"""Pipeline orchestration for generate/check/lookup flows."""

from __future__ import annotations

from dataclasses import dataclass, field
import fnmatch
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from .config import MarkerConfig, NativeComConfig, load_config
from .diagnostics import Diagnostic, DiagnosticCode, DiagnosticReporter, Severity
from .emitter import CodeEmitter, DispatchTable
from .graph import CSharpGraphBuilder, SymbolGraph, load_manifest
from .identifiers import decode, render
from .logging import get_logger
from .models import Declaration, UnitSet, ValidatedDeclaration
from .resolver import DeclarationResolver
from .runtime import CLASS_E_CLASSNOTAVAILABLE, S_OK
from .stores import UnitCache, content_digest
from .validators import DeclarationValidator, EnvironmentNotSupported, resolve_well_known

DEFAULT_MANIFEST = "nativecom.symbols.yml"


@dataclass
class GenerationResult:
    """Everything a single generation pass produced."""

    units: UnitSet
    diagnostics: List[Diagnostic]
    dispatch: DispatchTable
    declarations: List[Declaration] = field(default_factory=list)
    validated: List[ValidatedDeclaration] = field(default_factory=list)
    aborted: bool = False

    @property
    def has_errors(self) -> bool:
        return any(d.severity is Severity.ERROR for d in self.diagnostics)


class Generator:
    """Resolve, validate and emit for one symbol graph. Holds no state between runs."""

    def __init__(
        self,
        markers: MarkerConfig | None = None,
        emitter: CodeEmitter | None = None,
        *,
        emit_entry_points: bool = True,
    ) -> None:
        self.markers = markers or MarkerConfig()
        self.resolver = DeclarationResolver(self.markers.factory_markers)
        self.emitter = emitter or CodeEmitter(activation_helper=self.markers.activation_helper)
        self.emit_entry_points = emit_entry_points
        self.logger = get_logger("generator")

    def run(self, graph: SymbolGraph) -> GenerationResult:
        reporter = DiagnosticReporter()
        try:
            well_known = resolve_well_known(graph, self.markers)
        except EnvironmentNotSupported as exc:
            reporter.report(DiagnosticCode.NC0001, None, exc.type_name)
            self.logger.error("Generation aborted: required type '%s' is unavailable", exc.type_name)
            return GenerationResult(
                units=UnitSet(),
                diagnostics=reporter.diagnostics,
                dispatch=DispatchTable(),
                aborted=True,
            )

        declarations = self.resolver.resolve(graph)
        validator = DeclarationValidator(graph, well_known)
        validated = list(validator.validate(declarations, reporter))
        self.logger.info(
            "Validated %d of %d factory declarations", len(validated), len(declarations)
        )
        emission = self.emitter.emit(
            validated, emit_entry_points=self.emit_entry_points, reporter=reporter
        )
        return GenerationResult(
            units=emission.units,
            diagnostics=reporter.diagnostics,
            dispatch=emission.dispatch,
            declarations=declarations,
            validated=validated,
        )


@dataclass
class WriteReport:
    """Files touched by a write pass."""

    written: List[Path] = field(default_factory=list)
    unchanged: List[Path] = field(default_factory=list)
    removed: List[Path] = field(default_factory=list)


class UnitWriter:
    """Writes units into an output directory, skipping unchanged files."""

    def __init__(self, output_dir: Path, cache: UnitCache | None = None) -> None:
        self.output_dir = output_dir
        self.cache = cache or UnitCache(None)
        self.logger = get_logger("writer")

    def write(self, units: UnitSet, *, dry_run: bool = False) -> WriteReport:
        report = WriteReport()
        self.cache.bind(self.output_dir)
        for unit in units:
            path = self.output_dir / unit.name
            digest = content_digest(unit.content)
            if self.cache.get(unit.name) == digest and self._matches(path, digest):
                report.unchanged.append(path)
                continue
            report.written.append(path)
            if dry_run:
                continue
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(unit.content.encode("utf-8"))
            self.cache.store(unit.name, digest)
            self.logger.debug("Wrote %s", path)

        stale = [name for name in self.cache.names() if name not in units]
        for name in stale:
            path = self.output_dir / name
            report.removed.append(path)
            if not dry_run and path.exists():
                path.unlink()
                self.logger.debug("Removed stale unit %s", path)
        if not dry_run:
            self.cache.prune(units.names())
            self.cache.persist()
        return report

    @staticmethod
    def _matches(path: Path, digest: str) -> bool:
        try:
            return content_digest(path.read_bytes().decode("utf-8")) == digest
        except (OSError, UnicodeDecodeError):
            return False


@dataclass
class GenerateOutcome:
    """Result of a generate command."""

    result: GenerationResult
    output_dir: Path
    report: WriteReport
    dry_run: bool


@dataclass
class LookupOutcome:
    """Which factory a class identifier dispatches to, if any."""

    identifier: str
    hresult: int
    index: Optional[int] = None
    factory: Optional[str] = None
    target: Optional[str] = None


class Orchestrator:
    """Coordinates configuration, graph loading, generation and output."""

    def __init__(
        self,
        csharp_builder_factory: Callable[[Iterable[str]], CSharpGraphBuilder] = CSharpGraphBuilder,
    ) -> None:
        self._csharp_builder_factory = csharp_builder_factory
        self.logger = get_logger("orchestrator")

    def run_generate(
        self,
        path: str,
        *,
        output_dir: str | None = None,
        dry_run: bool = False,
        emit_entry_points: bool | None = None,
    ) -> GenerateOutcome:
        """Generate units for the project at ``path`` and write them to disk."""
        config = self._load_config(path)
        target_dir = Path(output_dir).expanduser().resolve() if output_dir else config.output_dir
        self.logger.info("Starting generate run for %s", config.root)
        result = self._generate(config, emit_entry_points, exclude=[target_dir])
        if result.aborted:
            self.logger.warning("Generation aborted; leaving %s untouched", target_dir)
            return GenerateOutcome(result=result, output_dir=target_dir, report=WriteReport(), dry_run=dry_run)

        # Dry runs read the cache but never persist it.
        writer = UnitWriter(target_dir, UnitCache(config.cache_file))
        report = writer.write(result.units, dry_run=dry_run)
        self.logger.info(
            "Generated %d units in %s (%d written, %d unchanged, %d removed)",
            len(result.units),
            target_dir,
            len(report.written),
            len(report.unchanged),
            len(report.removed),
        )
        return GenerateOutcome(result=result, output_dir=target_dir, report=report, dry_run=dry_run)

    def run_check(self, path: str, *, emit_entry_points: bool | None = None) -> GenerationResult:
        """Resolve, validate and render in memory without writing anything."""
        config = self._load_config(path)
        self.logger.info("Starting check run for %s", config.root)
        return self._generate(config, emit_entry_points, exclude=[config.output_dir])

    def lookup(self, path: str, identifier: str) -> LookupOutcome:
        """Report which factory serves ``identifier`` in the generated dispatch table."""
        layout = decode(identifier)
        result = self.run_check(path)
        canonical = render(layout)
        index = result.dispatch.lookup(layout)
        if index is None:
            return LookupOutcome(identifier=canonical, hresult=CLASS_E_CLASSNOTAVAILABLE)
        factory = result.dispatch.helpers[index]
        target = next(
            (item.target.qualified_name for item in result.validated if item.factory.qualified_name == factory),
            None,
        )
        return LookupOutcome(identifier=canonical, hresult=S_OK, index=index, factory=factory, target=target)

    def load_graph(self, config: NativeComConfig, *, exclude: Iterable[Path] = ()) -> SymbolGraph:
        if config.source.kind == "csharp":
            references = config.source.references or config.markers.reference_types()
            builder = self._csharp_builder_factory(references)
            paths = self._collect_sources(config, exclude)
            self.logger.debug("Parsing %d C# files", len(paths))
            return builder.build_from_paths(config.root, paths)
        manifest = config.source.manifest or (config.root / DEFAULT_MANIFEST)
        return load_manifest(manifest, config.source.references)

    # ------------------------------------------------------------------
    # Internal helpers

    def _generate(
        self,
        config: NativeComConfig,
        emit_entry_points: bool | None,
        *,
        exclude: Iterable[Path],
    ) -> GenerationResult:
        graph = self.load_graph(config, exclude=exclude)
        emit = config.generation.emit_entry_points if emit_entry_points is None else emit_entry_points
        emitter = CodeEmitter(
            config.generation.templates_dir,
            activation_helper=config.markers.activation_helper,
            unit_suffix=config.generation.unit_suffix,
        )
        generator = Generator(config.markers, emitter, emit_entry_points=emit)
        return generator.run(graph)

    def _collect_sources(self, config: NativeComConfig, exclude: Iterable[Path]) -> List[Path]:
        excluded_dirs = [path.resolve() for path in exclude]
        found: dict[str, Path] = {}
        for pattern in config.source.include:
            for path in config.root.glob(pattern):
                if not path.is_file():
                    continue
                resolved = path.resolve()
                if any(resolved.is_relative_to(directory) for directory in excluded_dirs):
                    continue
                relative = resolved.relative_to(config.root).as_posix()
                if any(fnmatch.fnmatch(relative, skip) for skip in config.source.exclude):
                    continue
                found.setdefault(relative, resolved)
        return [found[key] for key in sorted(found)]

    def _load_config(self, path: str) -> NativeComConfig:
        root = Path(path).expanduser().resolve()
        if not root.exists():
            raise FileNotFoundError(f"Project path not found: {root}")
        return load_config(root)


__all__ = [
    "GenerateOutcome",
    "GenerationResult",
    "Generator",
    "LookupOutcome",
    "Orchestrator",
    "UnitWriter",
    "WriteReport",
]
