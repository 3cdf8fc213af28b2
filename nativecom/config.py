"""Configuration loading for nativecom (.nativecom.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

CONFIG_FILENAME = ".nativecom.yml"

ACTIVATION_INTERFACE = "Bluehill.NativeCom.IClassFactory"
INTEROP_MARKER = "System.Runtime.InteropServices.Marshalling.GeneratedComClassAttribute"
IDENTIFIER_MARKER = "System.Runtime.InteropServices.GuidAttribute"
FACTORY_MARKERS = (
    "Bluehill.NativeCom.ClassFactoryAttribute`1",
    "Bluehill.NativeCom.ClassFactoryAttribute",
)
ACTIVATION_HELPER = "Bluehill.NativeCom.DllHelper"


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class SourceConfig:
    """Where the symbol graph comes from."""

    kind: str = "manifest"
    manifest: Optional[Path] = None
    include: List[str] = field(default_factory=lambda: ["**/*.cs"])
    exclude: List[str] = field(default_factory=lambda: ["bin/**", "obj/**"])
    references: List[str] = field(default_factory=list)


@dataclass
class MarkerConfig:
    """Fully qualified names of the well-known types the generator relies on."""

    activation_interface: str = ACTIVATION_INTERFACE
    interop_marker: str = INTEROP_MARKER
    identifier_marker: str = IDENTIFIER_MARKER
    factory_markers: List[str] = field(default_factory=lambda: list(FACTORY_MARKERS))
    activation_helper: str = ACTIVATION_HELPER

    def reference_types(self) -> List[str]:
        """Types that live in referenced assemblies rather than in user sources."""
        return [
            self.activation_interface,
            self.interop_marker,
            self.identifier_marker,
            *self.factory_markers,
            self.activation_helper,
        ]


@dataclass
class GenerationConfig:
    """Emission settings."""

    output_dir: Optional[Path] = None
    emit_entry_points: bool = True
    unit_suffix: str = ".NC.g.cs"
    templates_dir: Optional[Path] = None
    cache_file: Optional[Path] = None


@dataclass
class NativeComConfig:
    """Represents the settings defined in .nativecom.yml."""

    root: Path
    source: SourceConfig = field(default_factory=SourceConfig)
    markers: MarkerConfig = field(default_factory=MarkerConfig)
    generation: GenerationConfig = field(default_factory=GenerationConfig)

    @property
    def output_dir(self) -> Path:
        return self.generation.output_dir or (self.root / "Generated")

    @property
    def cache_file(self) -> Path:
        return self.generation.cache_file or (self.root / ".nativecom" / "cache.json")


def load_config(config_path: Path) -> NativeComConfig:
    """Load configuration from disk, returning defaults when the file is absent."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return NativeComConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    source = SourceConfig()
    source_data = _as_dict(data.get("source"))
    if source_data:
        kind = (_as_str(source_data.get("kind")) or source.kind).lower()
        if kind not in {"manifest", "csharp"}:
            raise ConfigError(f"Unsupported source kind '{kind}' (expected manifest or csharp)")
        source.kind = kind
        manifest = _as_str(source_data.get("manifest"))
        source.manifest = root / manifest if manifest else None
        if "include" in source_data:
            source.include = _as_str_list(source_data.get("include"))
        if "exclude" in source_data:
            source.exclude = _as_str_list(source_data.get("exclude"))
        source.references = _as_str_list(source_data.get("references"))

    markers = MarkerConfig()
    marker_data = _as_dict(data.get("markers"))
    if marker_data:
        markers.activation_interface = (
            _as_str(marker_data.get("activation_interface")) or markers.activation_interface
        )
        markers.interop_marker = _as_str(marker_data.get("interop_marker")) or markers.interop_marker
        markers.identifier_marker = (
            _as_str(marker_data.get("identifier_marker")) or markers.identifier_marker
        )
        factory_markers = _as_str_list(marker_data.get("factory_markers"))
        if factory_markers:
            markers.factory_markers = factory_markers
        markers.activation_helper = (
            _as_str(marker_data.get("activation_helper")) or markers.activation_helper
        )

    generation = GenerationConfig()
    generation_data = _as_dict(data.get("generation"))
    if generation_data:
        output_dir = _as_str(generation_data.get("output_dir"))
        generation.output_dir = root / output_dir if output_dir else None
        emit = _as_bool(generation_data.get("emit_entry_points"))
        if emit is not None:
            generation.emit_entry_points = emit
        generation.unit_suffix = _as_str(generation_data.get("unit_suffix")) or generation.unit_suffix
        templates_dir = _as_str(generation_data.get("templates_dir"))
        generation.templates_dir = root / templates_dir if templates_dir else None
        cache_file = _as_str(generation_data.get("cache_file"))
        generation.cache_file = root / cache_file if cache_file else None

    return NativeComConfig(root=root, source=source, markers=markers, generation=generation)


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return str(value)


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "on", "1"}:
            return True
        if lowered in {"false", "no", "off", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, (list, tuple)):
        return [str(item).strip() for item in value if str(item).strip()]
    raise ConfigError(f"Expected a list of strings, got {type(value).__name__}")


__all__ = [
    "ConfigError",
    "GenerationConfig",
    "MarkerConfig",
    "NativeComConfig",
    "SourceConfig",
    "load_config",
]
