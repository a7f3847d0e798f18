"""
Unit tests for folder scanning, signal collection and the signal cache.

Tests cover:
- Mod folder listing (sorting, DISABLED prefix, missing paths)
- Depth-limited content walks and symlink handling
- Signal fields for Quick and Full modes
- INI file and byte budgets
- Fingerprint determinism
- SignalCache hits, misses and clearing
"""

import logging
import os
import platform
from pathlib import Path

import pytest

from modmatcher.models import FolderContent, FolderSignals, MatchMode
from modmatcher.scanning import (
    ModFolderScanner,
    SignalBudget,
    SignalCache,
    collect_signals,
    compute_fingerprint,
)
from modmatcher.scanning.signal_collector import (
    FULL_MAX_TOTAL_INI_BYTES,
    QUICK_MAX_INI_BYTES_PER_FILE,
)

KIB = 1024

RAIDEN_INI = (
    "[TextureOverrideRaidenBody]\n"
    "hash = d94c8962\n"
    "filename = Textures/RaidenBodyDiffuse.dds\n"
)


def walk_and_collect(folder: Path, mode: MatchMode, budget: SignalBudget = None):
    """Walk a folder to its mode depth and collect signals."""
    scanner = ModFolderScanner()
    content = scanner.scan_folder_content(folder, SignalBudget.for_mode(mode).max_depth)
    return collect_signals(folder, content, mode, budget=budget)


# =============================================================================
# ModFolderScanner
# =============================================================================

@pytest.mark.unit
class TestScanModFolders:
    """Tests for listing mod folders."""

    def test_lists_sorted_directories_only(self, temp_dir: Path):
        for name in ["Zhongli", "DISABLED Keqing", "Amber"]:
            (temp_dir / name).mkdir()
        (temp_dir / "notes.txt").write_text("not a folder")

        folders = ModFolderScanner().scan_mod_folders(temp_dir)

        assert [f.raw_name for f in folders] == ["Amber", "DISABLED Keqing", "Zhongli"]

    def test_disabled_prefix(self, temp_dir: Path):
        (temp_dir / "DISABLED Keqing").mkdir()

        folder = ModFolderScanner().scan_mod_folders(temp_dir)[0]

        assert folder.is_disabled
        assert folder.display_name == "Keqing"
        assert folder.path == temp_dir / "DISABLED Keqing"

    def test_missing_path_records_error(self, temp_dir: Path):
        scanner = ModFolderScanner()

        assert scanner.scan_mod_folders(temp_dir / "missing") == []
        assert len(scanner.get_errors()) == 1
        assert "not found" in scanner.get_errors()[0]

    def test_file_path_records_error(self, temp_dir: Path):
        path = temp_dir / "file.txt"
        path.write_text("x")
        scanner = ModFolderScanner()

        assert scanner.scan_mod_folders(path) == []
        assert "not a directory" in scanner.get_errors()[0]

    @pytest.mark.parametrize("name, message", [("missing", "not found"), ("file.txt", "not a directory")])
    def test_path_errors_are_logged(self, temp_dir: Path, caplog, name: str, message: str):
        (temp_dir / "file.txt").write_text("x")
        scanner = ModFolderScanner()

        with caplog.at_level(logging.WARNING, logger="modmatcher.scanning.folder_scanner"):
            scanner.scan_mod_folders(temp_dir / name)

        assert message in caplog.text
        assert scanner.get_errors() == [record.getMessage() for record in caplog.records]

    def test_clear_errors(self, temp_dir: Path):
        scanner = ModFolderScanner()
        scanner.scan_mod_folders(temp_dir / "missing")

        scanner.clear_errors()

        assert scanner.get_errors() == []


@pytest.mark.unit
class TestScanFolderContent:
    """Tests for depth-limited content walks."""

    @pytest.fixture
    def nested_folder(self, temp_dir: Path) -> Path:
        folder = temp_dir / "Nested"
        (folder / "a" / "b" / "c").mkdir(parents=True)
        (folder / "root.ini").write_text("[Root]")
        (folder / "readme.md").write_text("ignored")
        (folder / "a" / "tex.dds").write_bytes(b"")
        (folder / "a" / "x.ini").write_text("[X]")
        (folder / "a" / "b" / "y.ini").write_text("[Y]")
        (folder / "a" / "b" / "c" / "z.ini").write_text("[Z]")
        return folder

    def test_depth_one_is_direct_children(self, nested_folder: Path):
        content = ModFolderScanner().scan_folder_content(nested_folder, max_depth=1)

        assert content.subfolder_names == ["a"]
        assert content.ini_files == [nested_folder / "root.ini"]
        assert [f.name for f in content.files] == ["root.ini"]

    def test_depth_three(self, nested_folder: Path):
        content = ModFolderScanner().scan_folder_content(nested_folder, max_depth=3)

        assert content.subfolder_names == ["a", "b", "c"]
        assert content.ini_files == [
            nested_folder / "root.ini",
            nested_folder / "a" / "x.ini",
            nested_folder / "a" / "b" / "y.ini",
        ]
        assert sorted(f.extension for f in content.files) == ["dds", "ini", "ini", "ini"]

    def test_depth_zero_is_empty(self, nested_folder: Path):
        content = ModFolderScanner().scan_folder_content(nested_folder, max_depth=0)

        assert content == FolderContent()

    def test_negative_depth_raises(self, nested_folder: Path):
        with pytest.raises(ValueError, match="max_depth"):
            ModFolderScanner().scan_folder_content(nested_folder, max_depth=-1)

    @pytest.mark.skipif(platform.system() == "Windows", reason="Symlinks need privileges on Windows")
    def test_symlinked_directories_are_not_followed(self, temp_dir: Path):
        outside = temp_dir / "outside"
        outside.mkdir()
        (outside / "secret.ini").write_text("hash = d94c8962")
        folder = temp_dir / "Linked"
        folder.mkdir()
        os.symlink(outside, folder / "link", target_is_directory=True)

        content = ModFolderScanner().scan_folder_content(folder, max_depth=3)

        assert content.ini_files == []


# =============================================================================
# Signal collection
# =============================================================================

@pytest.mark.unit
class TestCollectSignals:
    """Tests for the collected signal fields."""

    @pytest.fixture
    def raiden_folder(self, make_mod_folder) -> Path:
        return make_mod_folder(
            "Raiden Pack",
            {"mod.ini": RAIDEN_INI, "Textures/RaidenBodyDiffuse.dds": b""},
        )

    def test_full_mode_fields(self, raiden_folder: Path):
        signals = walk_and_collect(raiden_folder, MatchMode.FULL)

        assert signals.folder_tokens == ("pack", "raiden")
        assert signals.folder_name_normalized == "raiden pack"
        assert signals.deep_name_tokens == ("mod", "raidenbodydiffuse", "textures")
        assert signals.deep_name_strings == ("raidenbodydiffuse", "textures")
        assert signals.ini_section_tokens == ("body", "raiden")
        assert signals.ini_content_tokens == ("body", "diffuse", "filename", "raiden", "textures")
        assert signals.ini_derived_strings == ("raidenbody", "raidenbodydiffuse")
        assert signals.ini_hashes == ("d94c8962",)
        assert signals.scanned_ini_files == 1
        assert signals.scanned_name_items == 3
        assert signals.scanned_ini_bytes == len(RAIDEN_INI.encode("utf-8"))

    def test_quick_mode_walks_one_level(self, raiden_folder: Path):
        signals = walk_and_collect(raiden_folder, MatchMode.QUICK)

        assert signals.deep_name_tokens == ("mod", "textures")
        assert signals.scanned_name_items == 2
        assert signals.ini_hashes == ("d94c8962",)

    def test_quick_mode_reads_root_ini_only(self, make_mod_folder):
        folder = make_mod_folder("Nested", {"sub/mod.ini": RAIDEN_INI})
        content = ModFolderScanner().scan_folder_content(folder, max_depth=3)

        signals = collect_signals(folder, content, MatchMode.QUICK)

        assert signals.scanned_ini_files == 0
        assert signals.ini_hashes == ()

    def test_empty_folder(self, make_mod_folder):
        signals = walk_and_collect(make_mod_folder("Zhongli"), MatchMode.FULL)

        assert signals.folder_tokens == ("zhongli",)
        assert signals.deep_name_tokens == ()
        assert signals.scanned_ini_files == 0
        assert signals.fingerprint

    def test_unreadable_ini_is_skipped(self, make_mod_folder):
        folder = make_mod_folder("Broken")
        content = FolderContent(ini_files=[folder / "missing.ini"])

        signals = collect_signals(folder, content, MatchMode.FULL)

        assert signals.scanned_ini_files == 0

    def test_name_item_cap(self, make_mod_folder):
        folder = make_mod_folder("Many", {f"part{i:02d}.dds": b"" for i in range(10)})
        budget = SignalBudget(max_depth=1, root_ini_only=True, max_ini_files=2, max_name_items=3)

        signals = walk_and_collect(folder, MatchMode.QUICK, budget=budget)

        assert signals.scanned_name_items == 3
        assert signals.deep_name_tokens == ("part00", "part01", "part02")

    def test_negative_budget_raises(self):
        with pytest.raises(ValueError, match="max_ini_files"):
            SignalBudget(max_depth=1, root_ini_only=True, max_ini_files=-1)


@pytest.mark.unit
class TestSignalBudgets:
    """Tests for the Quick and Full INI budgets."""

    def test_mode_defaults(self):
        quick = SignalBudget.for_mode(MatchMode.QUICK)
        full = SignalBudget.for_mode(MatchMode.FULL)

        assert (quick.max_depth, quick.root_ini_only, quick.max_ini_files) == (1, True, 2)
        assert quick.max_ini_bytes_per_file == 256 * KIB
        assert (full.max_depth, full.root_ini_only, full.max_ini_files) == (3, False, 10)
        assert full.max_ini_bytes_total == 1024 * KIB

    def test_quick_reads_two_files_capped_per_file(self, make_mod_folder):
        folder = make_mod_folder(
            "Big", {f"part{i}.ini": b"a" * (300 * KIB) for i in range(4)}
        )

        signals = walk_and_collect(folder, MatchMode.QUICK)

        assert signals.scanned_ini_files == 2
        assert signals.scanned_ini_bytes == 2 * QUICK_MAX_INI_BYTES_PER_FILE

    def test_full_shares_total_budget(self, make_mod_folder):
        folder = make_mod_folder(
            "Big", {f"part{i}.ini": b"a" * (300 * KIB) for i in range(5)}
        )

        signals = walk_and_collect(folder, MatchMode.FULL)

        assert signals.scanned_ini_files == 4
        assert signals.scanned_ini_bytes == FULL_MAX_TOTAL_INI_BYTES

    def test_full_file_limit(self, make_mod_folder):
        folder = make_mod_folder(
            "Many", {f"part{i:02d}.ini": "[Part]\n" for i in range(12)}
        )

        signals = walk_and_collect(folder, MatchMode.FULL)

        assert signals.scanned_ini_files == 10


@pytest.mark.unit
class TestFingerprint:
    """Tests for the signal fingerprint."""

    def test_deterministic(self, make_mod_folder):
        folder = make_mod_folder("Raiden", {"mod.ini": RAIDEN_INI})

        first = walk_and_collect(folder, MatchMode.FULL)
        second = walk_and_collect(folder, MatchMode.FULL)

        assert first == second
        assert first.fingerprint == compute_fingerprint(first)
        assert len(first.fingerprint) == 64

    def test_changes_with_content(self, make_mod_folder):
        folder = make_mod_folder("Raiden", {"mod.ini": RAIDEN_INI})
        before = walk_and_collect(folder, MatchMode.FULL)

        (folder / "mod.ini").write_text(RAIDEN_INI + "hash = aa11bb22\n", encoding="utf-8")
        after = walk_and_collect(folder, MatchMode.FULL)

        assert before.fingerprint != after.fingerprint

    def test_subfolder_word_order_changes_fingerprint(self, make_mod_folder, temp_dir: Path):
        left = make_mod_folder("pack", {"Ayaka Kamisato/x.dds": b""}, parent=temp_dir / "A")
        right = make_mod_folder("pack", {"Kamisato Ayaka/x.dds": b""}, parent=temp_dir / "B")

        left_signals = walk_and_collect(left, MatchMode.FULL)
        right_signals = walk_and_collect(right, MatchMode.FULL)

        assert left_signals.deep_name_tokens == right_signals.deep_name_tokens
        assert left_signals.deep_name_strings != right_signals.deep_name_strings
        assert left_signals.fingerprint != right_signals.fingerprint

    def test_normalized_folder_name_changes_fingerprint(self):
        left = FolderSignals(folder_tokens=("raiden",), folder_name_normalized="raiden")
        right = FolderSignals(folder_tokens=("raiden",), folder_name_normalized="raiden!")

        assert compute_fingerprint(left) != compute_fingerprint(right)

    def test_field_boundaries_do_not_collide(self):
        left = FolderSignals(folder_tokens=("ab",), deep_name_tokens=("c",))
        right = FolderSignals(folder_tokens=("a",), deep_name_tokens=("bc",))

        assert compute_fingerprint(left) != compute_fingerprint(right)


# =============================================================================
# SignalCache
# =============================================================================

@pytest.mark.unit
class TestSignalCache:
    """Tests for the per-batch signal cache."""

    def test_hit_and_miss_counts(self, make_mod_folder):
        folder = make_mod_folder("Raiden", {"mod.ini": RAIDEN_INI})
        content = ModFolderScanner().scan_folder_content(folder, max_depth=1)
        cache = SignalCache()

        first = cache.get_or_compute(folder, content, MatchMode.QUICK)
        second = cache.get_or_compute(folder, content, MatchMode.QUICK)

        assert first is second
        assert cache.get_cache_stats() == {"size": 1, "hits": 1, "misses": 1}

    def test_modes_are_cached_separately(self, make_mod_folder):
        folder = make_mod_folder("Raiden", {"mod.ini": RAIDEN_INI})
        content = ModFolderScanner().scan_folder_content(folder, max_depth=3)
        cache = SignalCache()

        cache.get_or_compute(folder, content, MatchMode.QUICK)
        cache.get_or_compute(folder, content, MatchMode.FULL)

        assert len(cache) == 2
        assert cache.get(folder, MatchMode.FULL) is not None

    def test_get_does_not_count(self, temp_dir: Path):
        cache = SignalCache()

        assert cache.get(temp_dir, MatchMode.QUICK) is None
        assert cache.get_cache_stats() == {"size": 0, "hits": 0, "misses": 0}

    def test_clear(self, make_mod_folder):
        folder = make_mod_folder("Raiden")
        cache = SignalCache()
        cache.get_or_compute(folder, FolderContent(), MatchMode.QUICK)

        cache.clear()

        assert len(cache) == 0
        assert cache.get_cache_stats() == {"size": 0, "hits": 0, "misses": 0}

    def test_keys_use_path_as_given(self, make_mod_folder):
        folder = make_mod_folder("Raiden", {"mod.ini": RAIDEN_INI})
        alias = folder.parent / ".." / folder.parent.name / folder.name
        content = ModFolderScanner().scan_folder_content(folder, max_depth=1)
        cache = SignalCache()

        cache.get_or_compute(folder, content, MatchMode.QUICK)

        assert cache.get(alias, MatchMode.QUICK) is None
        assert cache.get(folder, MatchMode.QUICK) is not None
