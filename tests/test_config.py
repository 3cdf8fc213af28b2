"""Tests for nativecom.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from nativecom.config import (
    ACTIVATION_INTERFACE,
    FACTORY_MARKERS,
    ConfigError,
    NativeComConfig,
    load_config,
)


def test_load_config_returns_defaults_when_missing(tmp_path: Path) -> None:
    config = load_config(tmp_path)

    assert isinstance(config, NativeComConfig)
    assert config.root == tmp_path.resolve()
    assert config.source.kind == "manifest"
    assert config.source.manifest is None
    assert config.source.include == ["**/*.cs"]
    assert config.markers.activation_interface == ACTIVATION_INTERFACE
    assert config.markers.factory_markers == list(FACTORY_MARKERS)
    assert config.generation.emit_entry_points is True
    assert config.output_dir == tmp_path.resolve() / "Generated"
    assert config.cache_file == tmp_path.resolve() / ".nativecom" / "cache.json"


def test_load_config_parses_expected_fields(tmp_path: Path) -> None:
    config_file = tmp_path / ".nativecom.yml"
    config_file.write_text(
        """
source:
  kind: CSharp
  manifest: symbols/app.yml
  include:
    - "src/**/*.cs"
  exclude: "src/legacy/**"
  references:
    - Bluehill.NativeCom.IClassFactory
markers:
  activation_interface: Contoso.IFactory
  factory_markers:
    - Contoso.MakesAttribute
generation:
  output_dir: obj/nativecom
  emit_entry_points: "no"
  unit_suffix: .gen.cs
  templates_dir: templates
  cache_file: .cache/units.json
""",
        encoding="utf-8",
    )

    config = load_config(tmp_path)
    root = tmp_path.resolve()

    assert config.source.kind == "csharp"
    assert config.source.manifest == root / "symbols/app.yml"
    assert config.source.include == ["src/**/*.cs"]
    assert config.source.exclude == ["src/legacy/**"]
    assert config.source.references == ["Bluehill.NativeCom.IClassFactory"]
    assert config.markers.activation_interface == "Contoso.IFactory"
    assert config.markers.factory_markers == ["Contoso.MakesAttribute"]
    assert config.markers.identifier_marker.endswith("GuidAttribute")
    assert config.generation.emit_entry_points is False
    assert config.generation.unit_suffix == ".gen.cs"
    assert config.output_dir == root / "obj/nativecom"
    assert config.generation.templates_dir == root / "templates"
    assert config.cache_file == root / ".cache/units.json"


def test_reference_types_cover_every_marker() -> None:
    config = NativeComConfig(root=Path("."))

    references = config.markers.reference_types()

    assert ACTIVATION_INTERFACE in references
    assert all(marker in references for marker in FACTORY_MARKERS)


@pytest.mark.parametrize(
    "content, message",
    [
        ("- just\n- a list\n", "mapping at the root"),
        ("source:\n  kind: java\n", "Unsupported source kind"),
        ("source:\n  include:\n    pattern: x\n", "Expected a list"),
        ("source: [\n", "Failed to parse"),
    ],
)
def test_load_config_rejects_invalid_documents(tmp_path: Path, content: str, message: str) -> None:
    (tmp_path / ".nativecom.yml").write_text(content, encoding="utf-8")

    with pytest.raises(ConfigError) as excinfo:
        load_config(tmp_path)

    assert message in str(excinfo.value)


def test_empty_config_file_yields_defaults(tmp_path: Path) -> None:
    (tmp_path / ".nativecom.yml").write_text("\n", encoding="utf-8")

    assert load_config(tmp_path).source.kind == "manifest"
