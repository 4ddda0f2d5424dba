"""Request and result models for the WebSocket (AsyncAPI) services."""

from typing import Any

from pydantic import BaseModel, Field

from ..importing import RenamedItem


class ChannelInfo(BaseModel):
    """Channel reference for an operation: an existing channel or a new address."""

    channel_ref: str | None = None
    address: str | None = None
    messages: list[str] = Field(default_factory=list)


class OperationEntry(BaseModel):
    name: str
    tag: str
    operation: dict[str, Any]


class ChannelEntry(BaseModel):
    name: str
    channel: dict[str, Any]


class ImportResult(BaseModel):
    imported_channels: int = 0
    imported_operations: int = 0
    imported_schemas: int = 0
    imported_messages: int = 0
    imported_servers: int = 0
    renamed: list[RenamedItem] = Field(default_factory=list)
    summary: str = ""
