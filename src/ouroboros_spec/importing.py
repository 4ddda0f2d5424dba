"""Pieces shared by the REST and WebSocket YAML importers."""

from typing import Literal

import yaml
from pydantic import BaseModel

from .errors import ImportValidationError

ItemType = Literal["api", "channel", "operation", "schema", "message", "server"]


class RenamedItem(BaseModel):
    type: ItemType
    original: str
    renamed: str
    action: str | None = None
    method: str | None = None


class ValidationIssue(BaseModel):
    location: str
    error_code: str
    message: str


def issue(location: str, code: str, message: str) -> ValidationIssue:
    return ValidationIssue(location=location, error_code=code, message=message)


def validate_filename(filename: str | None) -> list[ValidationIssue]:
    if filename is None:
        return []
    if not filename.strip():
        return [issue("file", "INVALID_FILENAME", "File name is empty")]
    if not filename.lower().endswith((".yml", ".yaml")):
        return [issue("file", "INVALID_FILE_EXTENSION", "Only .yml and .yaml files can be imported")]
    return []


def load_upload(content: str, filename: str | None = None) -> dict:
    """Check the file name and parse the upload into a map, or raise ImportValidationError."""
    issues = validate_filename(filename)
    if issues:
        raise ImportValidationError(issues)

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ImportValidationError([issue("file", "YAML_PARSE_ERROR", f"Failed to parse YAML: {e}")]) from e
    if not isinstance(data, dict):
        raise ImportValidationError([issue("file", "INVALID_YAML_STRUCTURE", "YAML root must be a map")])
    return data


def check_version(data: dict, key: str, label: str) -> list[ValidationIssue]:
    """``key`` must be a string starting with ``3.``."""
    version = data.get(key)
    if version is None:
        return [issue(key, "MISSING_REQUIRED_FIELD", f"'{key}' field is required")]
    if not isinstance(version, str):
        return [issue(key, "INVALID_DATA_TYPE", f"'{key}' must be a string")]
    if not version.startswith("3."):
        return [issue(key, "UNSUPPORTED_VERSION", f"{label} version {version} is not supported, expected 3.x")]
    return []


def check_info(data: dict) -> list[ValidationIssue]:
    info = data.get("info")
    if info is None:
        return [issue("info", "MISSING_REQUIRED_FIELD", "'info' field is required")]
    if not isinstance(info, dict):
        return [issue("info", "INVALID_DATA_TYPE", "'info' must be a map")]
    return [
        issue(f"info.{key}", "MISSING_REQUIRED_FIELD", f"'info.{key}' field is required")
        for key in ("title", "version")
        if not info.get(key)
    ]


def unique_import_name(name: str, existing: dict) -> str:
    """``User`` -> ``User-import``, then ``User-import1``, ``User-import2``..."""
    candidate = f"{name}-import"
    counter = 1
    while candidate in existing:
        candidate = f"{name}-import{counter}"
        counter += 1
    return candidate
