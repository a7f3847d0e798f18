"""Mod folder discovery and bounded content walking.

This module provides the ModFolderScanner class, which lists the mod folders
directly under a mods directory and walks each folder's content up to a
depth limit for the signal collector.

Example:
    >>> from modmatcher.scanning import ModFolderScanner
    >>> scanner = ModFolderScanner()
    >>> for folder in scanner.scan_mod_folders(Path("/games/Mods")):
    ...     content = scanner.scan_folder_content(folder.path, max_depth=3)
    ...     print(f"{folder.display_name}: {len(content.ini_files)} ini files")
"""

import logging
import os
from pathlib import Path
from typing import List

from modmatcher.catalog.normalizer import is_disabled_folder, normalize_display_name
from modmatcher.models.data_models import FileInfo, FolderContent, ModFolder

logger = logging.getLogger(__name__)

# Extensions kept as FileInfo entries during content scanning
SCAN_EXTENSIONS = frozenset({"ini", "dds", "txt", "buf", "ib", "vb"})


class ModFolderScanner:
    """Lists mod folders and walks their content.

    Symlinks are never followed. Errors are collected rather than raised so
    one unreadable folder does not abort a batch.

    Attributes:
        _errors: List of error messages encountered during scanning.

    Example:
        >>> scanner = ModFolderScanner()
        >>> folders = scanner.scan_mod_folders(Path("/games/Mods"))
        >>> if scanner.get_errors():
        ...     print("Some folders could not be read")
    """

    def __init__(self) -> None:
        self._errors: List[str] = []

    def scan_mod_folders(self, mods_path: Path) -> List[ModFolder]:
        """List immediate child directories of the mods directory.

        Args:
            mods_path: Root mods directory.

        Returns:
            ModFolder records sorted by raw name. A missing or unreadable
            mods directory yields an empty list and a recorded error.
        """
        result: List[ModFolder] = []

        try:
            resolved_path = mods_path.resolve()

            if not resolved_path.exists():
                self._record_error(f"Mods path not found: {mods_path}")
                return result

            if not resolved_path.is_dir():
                self._record_error(f"Mods path is not a directory: {mods_path}")
                return result

            for child in sorted(resolved_path.iterdir(), key=lambda p: p.name):
                if not child.is_dir():
                    continue

                raw_name = child.name
                result.append(
                    ModFolder(
                        path=child,
                        raw_name=raw_name,
                        display_name=normalize_display_name(raw_name),
                        is_disabled=is_disabled_folder(raw_name),
                    )
                )

        except PermissionError:
            self._record_error(f"Permission denied accessing mods path: {mods_path}")
        except OSError as e:
            self._record_error(f"Error scanning mods path {mods_path}: {e}")

        return result

    def scan_folder_content(self, folder: Path, max_depth: int) -> FolderContent:
        """Walk a mod folder up to `max_depth` levels below it.

        Depth 1 covers the folder's direct children. Subfolder names at
        every visited level are collected, along with files whose
        extension is in SCAN_EXTENSIONS and every ``.ini`` path.

        Args:
            folder: Mod folder to walk.
            max_depth: Maximum entry depth relative to `folder`.

        Returns:
            FolderContent with entries in sorted walk order.

        Raises:
            ValueError: If max_depth is negative.
        """
        if max_depth < 0:
            raise ValueError(f"max_depth must be non-negative, got {max_depth}")

        content = FolderContent()
        if max_depth == 0:
            return content

        def on_error(error: OSError) -> None:
            self._record_error(f"Error walking {error.filename}: {error.strerror}")

        root_depth = len(folder.parts)

        for dirpath, dirnames, filenames in os.walk(folder, onerror=on_error, followlinks=False):
            current = Path(dirpath)
            depth = len(current.parts) - root_depth + 1

            dirnames.sort()
            for dirname in dirnames:
                content.subfolder_names.append(dirname)

            for filename in sorted(filenames):
                file_path = current / filename
                extension = file_path.suffix[1:].lower() if file_path.suffix else ""

                if extension == "ini":
                    content.ini_files.append(file_path)

                if extension in SCAN_EXTENSIONS:
                    content.files.append(
                        FileInfo(path=file_path, name=filename, extension=extension)
                    )

            # Entries below this level would exceed max_depth
            if depth >= max_depth:
                dirnames[:] = []

        return content

    def get_errors(self) -> List[str]:
        """Get list of errors encountered during scanning operations.

        Returns:
            List of error message strings.
        """
        return self._errors.copy()

    def clear_errors(self) -> None:
        """Clear the list of accumulated errors."""
        self._errors.clear()

    def _record_error(self, message: str) -> None:
        logger.warning(message)
        self._errors.append(message)
