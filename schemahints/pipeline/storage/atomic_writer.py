"""
Atomic file writer for artifacts.

Ensures a destination is either entirely the prior version or entirely
the new one, never a partial write.
"""

from __future__ import annotations

import json
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Any

from ...utils import dump_json
from ..errors import StorageError


class AtomicWriter:
    """Handles atomic file writes with validation.

    Uses a two-phase commit approach:
    1. Write to a temporary file in the same directory
    2. Validate the content
    3. Atomically replace the target file
    """

    def __init__(self, validate_json: Callable[[str], None] | None = None):
        """Initialize the atomic writer.

        Args:
            validate_json: Optional validation function for serialized JSON
        """
        self._validate_json = validate_json or self._default_validate_json
        self.written: list[Path] = []

    def write(self, path: Path, content: str, validate: bool = True) -> None:
        """Write content to file atomically.

        Args:
            path: Target file path
            content: Content to write
            validate: Whether to validate before finalizing

        Raises:
            StorageError: If validation or any file operation fails
        """
        path = Path(path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            # Same directory ensures atomic rename on the same filesystem
            temp_fd, temp_path_str = tempfile.mkstemp(
                dir=path.parent,
                prefix=f".{path.name}.",
                suffix=".tmp",
                text=True,
            )
        except OSError as e:
            raise StorageError(path, str(e)) from e

        temp_path = Path(temp_path_str)
        try:
            with open(temp_fd, "w", encoding="utf-8") as f:
                f.write(content)

            if validate:
                self._validate_json(content)

            temp_path.replace(path)
        except OSError as e:
            self._cleanup(temp_path)
            raise StorageError(path, str(e)) from e
        except Exception:
            self._cleanup(temp_path)
            raise
        self.written.append(path)

    def write_json(self, path: Path, document: Any, sort_keys: bool = False) -> None:
        """Serialize a document deterministically and write it atomically."""
        self.write(path, dump_json(document, sort_keys=sort_keys))

    @staticmethod
    def _cleanup(temp_path: Path) -> None:
        if temp_path.exists():
            try:
                temp_path.unlink()
            except OSError:
                pass  # Best effort cleanup

    def _default_validate_json(self, content: str) -> None:
        """Default validation: content must parse back as a JSON value.

        Raises:
            StorageError: If validation fails
        """
        try:
            json.loads(content)
        except ValueError as e:
            raise StorageError("<content>", f"not valid JSON: {e}") from e
