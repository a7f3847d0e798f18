"""Pytest fixtures for modmatcher tests."""

import io
import json
import tempfile
from pathlib import Path
from typing import Callable, Dict, Generator, Optional

import pytest
from rich.console import Console

from modmatcher.catalog import Catalog, parse_catalog
from modmatcher.matching import StagedMatcher
from modmatcher.ui import MatchTUI

SAMPLE_CATALOG_DATA = {
    "version": "test-1",
    "entries": [
        {
            "name": "Raiden Shogun",
            "object_type": "Character",
            "tags": ["Raiden", "Ei", "Electro"],
            "custom_skins": [
                {"name": "Wish", "aliases": ["Raiden Wish"], "rarity": "5"},
            ],
            "hash_db": {"Default": ["d94c8962"], "Wish": ["0x1A2B3C4D"]},
        },
        {
            "name": "Zhongli",
            "object_type": "Character",
            "tags": ["Geo", "Archon"],
            "hash_db": {"Default": ["aa11bb22"]},
        },
        {
            "name": "Nightblade",
            "object_type": "Weapon",
            "tags": ["Sword"],
        },
        {
            "name": "Nightblade Cloak",
            "object_type": "Other",
            "tags": ["Cape"],
        },
    ],
}

RAIDEN_HASH_INI = "[TextureOverrideBody]\nhash = d94c8962\nmatch_first_index = 0\n"


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests of a single module")
    config.addinivalue_line("markers", "integration: tests that touch the filesystem end to end")


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for isolated test environments.

    Yields:
        Path to the temporary directory.
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def catalog_data() -> Dict:
    """A fresh copy of the sample catalog document."""
    return json.loads(json.dumps(SAMPLE_CATALOG_DATA))


@pytest.fixture
def sample_catalog(catalog_data: Dict) -> Catalog:
    """Four-entry catalog: Raiden Shogun, Zhongli, Nightblade, Nightblade Cloak."""
    return parse_catalog(catalog_data)


@pytest.fixture
def catalog_file(temp_dir: Path, catalog_data: Dict) -> Path:
    """The sample catalog written to catalog.json."""
    path = temp_dir / "catalog.json"
    path.write_text(json.dumps(catalog_data), encoding="utf-8")
    return path


@pytest.fixture
def matcher(sample_catalog: Catalog) -> StagedMatcher:
    return StagedMatcher(sample_catalog)


@pytest.fixture
def make_mod_folder(temp_dir: Path) -> Callable[..., Path]:
    """Factory creating a mod folder with the given files.

    Usage:
        folder = make_mod_folder("Raiden", {"mod.ini": "...", "Body/tex.dds": b""})
    """

    def _make(
        name: str,
        files: Optional[Dict[str, object]] = None,
        parent: Optional[Path] = None,
    ) -> Path:
        folder = (parent or temp_dir / "Mods") / name
        folder.mkdir(parents=True, exist_ok=True)
        for relative, content in (files or {}).items():
            path = folder / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                path.write_bytes(content)
            else:
                path.write_text(str(content), encoding="utf-8")
        return folder

    return _make


@pytest.fixture
def mods_dir(make_mod_folder: Callable[..., Path], temp_dir: Path) -> Path:
    """Mods directory with one folder per kind of outcome.

    Creates:
        - DISABLED Random Pack 01: root INI carrying Raiden's unique hash
        - Zhongli: name only, no content
        - Zhnogli: misspelled name, no content
        - Nightblade: name shared by two entries
    """
    make_mod_folder("DISABLED Random Pack 01", {"mod.ini": RAIDEN_HASH_INI})
    make_mod_folder("Zhongli")
    make_mod_folder("Zhnogli")
    make_mod_folder("Nightblade")
    return temp_dir / "Mods"


@pytest.fixture
def string_console() -> Console:
    """Console writing to an in-memory buffer, readable via .file.getvalue()."""
    return Console(file=io.StringIO(), force_terminal=True, width=120)


@pytest.fixture
def tui(string_console: Console) -> MatchTUI:
    return MatchTUI(console=string_console)
