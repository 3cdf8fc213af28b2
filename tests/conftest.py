from __future__ import annotations

from pathlib import Path

import pytest

from tests._fixtures.graph_builder import GraphBuilder, ProjectBuilder


@pytest.fixture
def graph_builder() -> GraphBuilder:
    """Provide an empty graph builder with the library types referenced."""
    return GraphBuilder()


@pytest.fixture
def project(tmp_path: Path) -> ProjectBuilder:
    """Provide a manifest-backed project rooted at the pytest tmp_path."""
    return ProjectBuilder(tmp_path)
