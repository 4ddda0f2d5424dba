"""Error taxonomy for specification operations.

Every failure the services raise derives from SpecError so callers (the CLI,
or an HTTP layer in front of the services) can map them in one place.
"""


class SpecError(Exception):
    """Base class for all specification errors."""


class NotFoundError(SpecError):
    """A named schema, message, channel or operation does not exist."""

    def __init__(self, kind: str, name: str):
        self.kind = kind
        self.name = name
        super().__init__(f"{kind.capitalize()} '{name}' not found")


class DuplicateError(SpecError):
    """Creating an item whose name is already taken."""

    def __init__(self, kind: str, name: str):
        self.kind = kind
        self.name = name
        super().__init__(f"{kind.capitalize()} '{name}' already exists")


class InvalidRequestError(SpecError):
    """Caller input is missing required fields or is malformed."""


class SpecParseError(SpecError):
    """A specification file could not be read as a YAML map."""

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Failed to parse {source}: {reason}")


class ImportValidationError(SpecError):
    """An uploaded OpenAPI or AsyncAPI document failed validation; nothing was imported."""

    def __init__(self, issues: list):
        self.issues = issues
        summary = "; ".join(f"{issue.location}: {issue.message}" for issue in issues)
        super().__init__(f"Import validation failed: {summary}")
