"""Sources of the scanned specification.

A scanner produces the specification derived from the running service's
code. The reconciler only needs ``scan() -> dict``; the YAML file scanner
covers the common case where an external tool has already written the scan
result out to disk.
"""

from pathlib import Path
from typing import Protocol

import structlog

from .storage import load_yaml_map

logger = structlog.get_logger()


class Scanner(Protocol):
    def scan(self) -> dict:
        """Return the scanned OpenAPI document."""
        ...


class YamlFileScanner:
    """Read the scanned spec from a YAML or JSON file."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def scan(self) -> dict:
        text = self.path.read_text(encoding="utf-8")
        document = load_yaml_map(text, str(self.path))
        logger.debug("scan_loaded", path=str(self.path), paths=len(document.get("paths") or {}))
        return document


class StaticScanner:
    """Return a fixed document. Useful for embedding and tests."""

    def __init__(self, document: dict):
        self.document = document

    def scan(self) -> dict:
        return self.document
