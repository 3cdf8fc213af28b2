"""Tests for nativecom.orchestrator."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Sequence

import pytest
import yaml

from nativecom.config import ACTIVATION_INTERFACE, INTEROP_MARKER
from nativecom.diagnostics import DiagnosticCode, Severity
from nativecom.emitter import DISPATCH_UNIT, SERVER_LOCK_UNIT
from nativecom.graph import StaticSymbolGraph
from nativecom.identifiers import IdentifierError
from nativecom.models import GeneratedUnit, UnitSet
from nativecom.orchestrator import Generator, Orchestrator, UnitWriter
from nativecom.runtime import CLASS_E_CLASSNOTAVAILABLE, S_OK
from nativecom.stores import UnitCache
from tests._fixtures.graph_builder import (
    EXPLORER_CLSID,
    GENERIC_FACTORY_MARKER,
    GraphBuilder,
    ProjectBuilder,
    explorer_graph,
)

FACTORY_UNIT = "TestNamespace.ExplorerCommandFactory.NC.g.cs"


class RecordingBuilder:
    """Stands in for the C# parser and records the files it was handed."""

    def __init__(self, references: Iterable[str]) -> None:
        self.references = list(references)
        self.paths: List[str] = []

    def build_from_paths(self, root: Path, paths: Sequence[Path]) -> StaticSymbolGraph:
        self.paths = [path.relative_to(root).as_posix() for path in paths]
        return explorer_graph()


def _broken_factory() -> dict[str, object]:
    return {
        "name": "TestNamespace.BrokenFactory",
        "file": "BrokenFactory.cs",
        "line": 3,
        "column": 22,
        "attributes": [
            {"type": GENERIC_FACTORY_MARKER, "args": ["TestNamespace.ExplorerCommand"]},
            INTEROP_MARKER,
        ],
    }


def test_generator_without_declarations_emits_entry_points_only() -> None:
    builder = GraphBuilder()
    builder.target("App.Widget")

    result = Generator().run(builder.build())

    assert result.units.names() == [SERVER_LOCK_UNIT, DISPATCH_UNIT]
    assert result.diagnostics == []
    assert result.aborted is False


def test_generator_aborts_when_library_is_not_referenced() -> None:
    builder = GraphBuilder(references=[])
    builder.target("App.Widget")
    builder.factory("App.WidgetFactory", "App.Widget")

    result = Generator().run(builder.build())

    assert result.aborted is True
    assert len(result.units) == 0
    assert [d.code for d in result.diagnostics] == [DiagnosticCode.NC0001]
    assert result.diagnostics[0].location is None
    assert ACTIVATION_INTERFACE in result.diagnostics[0].message


def test_generator_runs_explorer_module() -> None:
    result = Generator().run(explorer_graph())

    assert result.units.names() == [FACTORY_UNIT, SERVER_LOCK_UNIT, DISPATCH_UNIT]
    assert [d.factory.qualified_name for d in result.validated] == [
        "TestNamespace.ExplorerCommandFactory"
    ]
    assert result.has_errors is False


def test_generator_keeps_other_factories_when_one_declares_two_targets() -> None:
    builder = GraphBuilder()
    builder.target("App.Widget", "00000000-0000-0000-0000-000000000001")
    builder.target("App.A", "00000000-0000-0000-0000-00000000000A")
    builder.target("App.B", "00000000-0000-0000-0000-00000000000B")
    builder.factory("App.WidgetFactory", "App.Widget")
    shared = builder.factory("App.SharedFactory", "App.A", "App.B")

    result = Generator().run(builder.build())

    assert result.units.names() == [
        "App.WidgetFactory.NC.g.cs",
        "App.SharedFactory.NC.g.cs",
        SERVER_LOCK_UNIT,
        DISPATCH_UNIT,
    ]
    assert result.dispatch.helpers == ("App.WidgetFactory", "App.SharedFactory")
    [diagnostic] = result.diagnostics
    assert diagnostic.code is DiagnosticCode.NC0006
    assert diagnostic.severity is Severity.WARNING
    assert diagnostic.location == shared.location
    assert result.has_errors is False


def test_run_generate_writes_units(project: ProjectBuilder) -> None:
    project.write_explorer_manifest()

    outcome = Orchestrator().run_generate(str(project.path()))

    output_dir = project.path().resolve() / "Generated"
    assert outcome.output_dir == output_dir
    assert sorted(path.name for path in outcome.report.written) == sorted(
        [FACTORY_UNIT, SERVER_LOCK_UNIT, DISPATCH_UNIT]
    )
    factory_unit = outcome.result.units.get(FACTORY_UNIT)
    assert factory_unit is not None
    assert (output_dir / FACTORY_UNIT).read_text(encoding="utf-8") == factory_unit.content
    assert (project.path() / ".nativecom" / "cache.json").exists()


def test_second_run_leaves_unchanged_units_alone(project: ProjectBuilder) -> None:
    project.write_explorer_manifest()
    orchestrator = Orchestrator()
    orchestrator.run_generate(str(project.path()))

    outcome = orchestrator.run_generate(str(project.path()))

    assert outcome.report.written == []
    assert len(outcome.report.unchanged) == 3


def test_edited_output_is_rewritten(project: ProjectBuilder) -> None:
    project.write_explorer_manifest()
    orchestrator = Orchestrator()
    first = orchestrator.run_generate(str(project.path()))
    (first.output_dir / DISPATCH_UNIT).write_text("// edited\n", encoding="utf-8")

    outcome = orchestrator.run_generate(str(project.path()))

    assert [path.name for path in outcome.report.written] == [DISPATCH_UNIT]
    assert "DllGetClassObject" in (first.output_dir / DISPATCH_UNIT).read_text(encoding="utf-8")


def test_units_no_longer_produced_are_removed(project: ProjectBuilder) -> None:
    project.write_explorer_manifest()
    orchestrator = Orchestrator()
    first = orchestrator.run_generate(str(project.path()))
    assert (first.output_dir / FACTORY_UNIT).exists()

    outcome = orchestrator.run_generate(str(project.path()), emit_entry_points=False)

    assert [path.name for path in outcome.report.removed] == [DISPATCH_UNIT]
    assert not (first.output_dir / DISPATCH_UNIT).exists()
    assert (first.output_dir / FACTORY_UNIT).exists()


def test_dry_run_writes_nothing(project: ProjectBuilder) -> None:
    project.write_explorer_manifest()

    outcome = Orchestrator().run_generate(str(project.path()), dry_run=True)

    assert outcome.dry_run is True
    assert len(outcome.report.written) == 3
    assert not outcome.output_dir.exists()
    assert not (project.path() / ".nativecom").exists()


def test_output_directory_override(project: ProjectBuilder, tmp_path: Path) -> None:
    project.write_explorer_manifest()
    target = tmp_path / "elsewhere"

    outcome = Orchestrator().run_generate(str(project.path()), output_dir=str(target))

    assert outcome.output_dir == target.resolve()
    assert (target / FACTORY_UNIT).exists()


def test_config_can_disable_entry_points(project: ProjectBuilder) -> None:
    project.write_explorer_manifest()
    project.write({".nativecom.yml": "generation:\n  emit_entry_points: false\n"})

    outcome = Orchestrator().run_generate(str(project.path()))

    assert DISPATCH_UNIT not in outcome.result.units
    assert not (outcome.output_dir / DISPATCH_UNIT).exists()
    assert (outcome.output_dir / SERVER_LOCK_UNIT).exists()


def test_failed_declarations_are_reported_while_others_are_written(project: ProjectBuilder) -> None:
    path = project.write_explorer_manifest()
    project.write_manifest(
        [*_load_types(path), _broken_factory()],
    )

    outcome = Orchestrator().run_generate(str(project.path()))

    assert outcome.result.has_errors is True
    [diagnostic] = outcome.result.diagnostics
    assert diagnostic.code is DiagnosticCode.NC0002
    assert str(diagnostic.location) == "BrokenFactory.cs(3,22)"
    assert (outcome.output_dir / FACTORY_UNIT).exists()
    assert not (outcome.output_dir / "TestNamespace.BrokenFactory.NC.g.cs").exists()


def test_missing_library_aborts_without_touching_output(project: ProjectBuilder) -> None:
    path = project.write_explorer_manifest()
    project.write_manifest(_load_types(path), references=[])

    outcome = Orchestrator().run_generate(str(project.path()))

    assert outcome.result.aborted is True
    assert [d.code for d in outcome.result.diagnostics] == [DiagnosticCode.NC0001]
    assert not outcome.output_dir.exists()


def test_run_check_writes_nothing(project: ProjectBuilder) -> None:
    project.write_explorer_manifest()

    result = Orchestrator().run_check(str(project.path()))

    assert len(result.validated) == 1
    assert not (project.path() / "Generated").exists()


def test_lookup_reports_serving_factory(project: ProjectBuilder) -> None:
    project.write_explorer_manifest()
    orchestrator = Orchestrator()

    found = orchestrator.lookup(str(project.path()), EXPLORER_CLSID.lower())
    missing = orchestrator.lookup(str(project.path()), "00000000-0000-0000-0000-000000000000")

    assert found.hresult == S_OK
    assert found.identifier == EXPLORER_CLSID
    assert found.index == 0
    assert found.factory == "TestNamespace.ExplorerCommandFactory"
    assert found.target == "TestNamespace.ExplorerCommand"
    assert missing.hresult == CLASS_E_CLASSNOTAVAILABLE
    assert missing.index is None


def test_lookup_rejects_malformed_identifier(project: ProjectBuilder) -> None:
    project.write_explorer_manifest()

    with pytest.raises(IdentifierError):
        Orchestrator().lookup(str(project.path()), "not-an-identifier")


def test_missing_project_path_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        Orchestrator().run_check(str(tmp_path / "missing"))


def test_csharp_sources_are_collected_with_excludes(project: ProjectBuilder) -> None:
    project.write(
        {
            ".nativecom.yml": "source:\n  kind: csharp\n",
            "Program.cs": "class Program {}\n",
            "src/Widget.cs": "class Widget {}\n",
            "bin/Debug/Copy.cs": "class Copy {}\n",
            "Generated/Old.NC.g.cs": "// old\n",
            "notes.txt": "ignored\n",
        }
    )
    builders: List[RecordingBuilder] = []

    def _factory(references: Iterable[str]) -> RecordingBuilder:
        builder = RecordingBuilder(references)
        builders.append(builder)
        return builder

    result = Orchestrator(csharp_builder_factory=_factory).run_check(str(project.path()))  # type: ignore[arg-type]

    assert builders[0].paths == ["Program.cs", "src/Widget.cs"]
    assert ACTIVATION_INTERFACE in builders[0].references
    assert len(result.validated) == 1


def test_unit_writer_without_cache_file_remembers_writes_in_memory(tmp_path: Path) -> None:
    units = UnitSet()
    units.add(GeneratedUnit("A.g.cs", "// a\n"))
    writer = UnitWriter(tmp_path / "out", UnitCache(None))

    first = writer.write(units)
    second = writer.write(units)

    assert [path.name for path in first.written] == ["A.g.cs"]
    # The in-memory cache still remembers the first write.
    assert [path.name for path in second.unchanged] == ["A.g.cs"]


def _load_types(path: Path) -> list[dict[str, object]]:
    return yaml.safe_load(path.read_text(encoding="utf-8"))["types"]
