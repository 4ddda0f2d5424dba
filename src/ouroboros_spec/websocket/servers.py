"""Server entries of the AsyncAPI document."""

import structlog

from ..errors import InvalidRequestError
from .document import section

logger = structlog.get_logger()

SUPPORTED_PROTOCOLS = ("ws", "wss")


def sanitize_pathname(pathname: str) -> str:
    return pathname.strip("/").replace("/", "_")


def server_name(protocol: str, pathname: str) -> str:
    """``ws`` + ``/ws/chat`` -> ``ws-ws_chat``."""
    return f"{protocol}-{sanitize_pathname(pathname)}"


class ServerManager:
    def __init__(self, default_host: str = "localhost:8080"):
        self.default_host = default_host

    def ensure_server_exists(self, document: dict, protocol: str, pathname: str) -> str:
        """Return the server name for protocol/pathname, creating the entry if needed."""
        if protocol not in SUPPORTED_PROTOCOLS:
            raise InvalidRequestError(f"Unsupported protocol '{protocol}', expected one of ws, wss")
        if not pathname:
            raise InvalidRequestError("pathname is required")

        servers = section(document, "servers")
        name = server_name(protocol, pathname)
        if name not in servers:
            servers[name] = {
                "host": self.default_host,
                "pathname": pathname,
                "protocol": protocol,
                "description": f"{protocol.upper()} WebSocket server at {pathname}",
            }
            logger.info("server_created", server=name)
        return name


def first_server_pathname(servers: dict) -> str | None:
    for server in servers.values():
        if isinstance(server, dict) and server.get("pathname"):
            return server["pathname"]
    return None
