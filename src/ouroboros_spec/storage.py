"""YAML-backed persistence for one specification file.

The store reads and writes plain ``dict`` documents. A layout object knows
what a minimal document looks like and which top-level sections must exist;
documents missing any of them are repaired in place and written back.
"""

import os
import tempfile
from pathlib import Path
from typing import ContextManager, Protocol

import structlog
import yaml

from .errors import SpecParseError
from .locking import ReadWriteLock

logger = structlog.get_logger()


class DocumentLayout(Protocol):
    def create(self) -> dict:
        """Return a minimal valid document."""
        ...

    def repair(self, document: dict) -> list[str]:
        """Add missing required sections, returning the repaired section names."""
        ...


def ensure_section(parent: dict, key: str) -> tuple[dict, bool]:
    """Return ``parent[key]`` as a dict, replacing a missing or non-map value.

    The boolean reports whether the section had to be created.
    """
    value = parent.get(key)
    if isinstance(value, dict):
        return value, False
    value = {}
    parent[key] = value
    return value, True


def load_yaml_map(text: str, source: str) -> dict:
    """Parse YAML text that must hold a map at its root."""
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise SpecParseError(source, str(e)) from e
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise SpecParseError(source, f"root must be a map, got {type(loaded).__name__}")
    return loaded


def dump_yaml(document: dict) -> str:
    return yaml.safe_dump(
        document,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
    )


class SpecStore:
    """One YAML specification file plus the lock serialising access to it."""

    def __init__(self, path: str | Path, layout: DocumentLayout):
        self.path = Path(path)
        self.layout = layout
        self.lock = ReadWriteLock()

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> tuple[dict, list[str]]:
        """Load and repair the document in memory without writing anything.

        Returns the document and the names of the sections that were repaired.
        """
        if not self.exists():
            return self.layout.create(), []
        document = load_yaml_map(self.path.read_text(encoding="utf-8"), str(self.path))
        return document, self.layout.repair(document)

    def read(self) -> dict:
        """Load the document, creating or repairing it as needed.

        Callers hold the appropriate lock. A missing file yields a minimal
        document without touching disk; a repaired file is written back.
        """
        document, repaired = self.load()
        if repaired:
            self.save_repaired(document, repaired)
        return document

    def save_repaired(self, document: dict, repaired: list[str]) -> None:
        logger.warning("spec_repaired", path=str(self.path), sections=repaired)
        self.write(document)

    def write(self, document: dict) -> None:
        """Replace the file atomically so concurrent readers never see a partial document."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(suffix=".tmp", prefix=self.path.stem + "_", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(dump_yaml(document))
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        logger.debug("spec_written", path=str(self.path))

    def read_locked(self) -> ContextManager[None]:
        return self.lock.read_locked()

    def write_locked(self) -> ContextManager[None]:
        return self.lock.write_locked()
