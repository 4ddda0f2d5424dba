"""Keep OpenAPI and AsyncAPI specification files in sync with a running service."""

__version__ = "0.1.0"
