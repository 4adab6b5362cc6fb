"""Tool data types shared by connections, the registry and the executor.

Provider results are modelled as a closed set of content parts
(:class:`TextPart`, :class:`ImagePart`, :class:`ResourcePart`) and are
validated once, at the protocol boundary, by :func:`parse_content_part`.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Literal

logger = logging.getLogger(__name__)


class ConnectionStatus(enum.Enum):
    """Lifecycle state of a tool server connection."""

    IDLE = "idle"
    STARTING = "starting"
    READY = "ready"
    ERROR = "error"
    STOPPED = "stopped"


@dataclass(frozen=True, slots=True)
class ServerInfo:
    """Identity reported by a tool server during the handshake."""

    name: str
    version: str


@dataclass(frozen=True, slots=True)
class ToolSchema:
    """A tool as declared by its server."""

    name: str
    description: str | None = None
    input_schema: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class CatalogEntry:
    """A tool tagged with the server that owns it."""

    server_name: str
    tool: ToolSchema


@dataclass(frozen=True, slots=True)
class ToolInvocation:
    """A tool call issued by the upstream model."""

    call_id: str
    tool_name: str
    arguments_json: str = "{}"


@dataclass(frozen=True, slots=True)
class ToolOutcome:
    """Result of one invocation, always produced, success or not."""

    call_id: str
    text: str
    is_error: bool = False


# ─── Content parts ────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class TextPart:
    text: str
    type: Literal["text"] = "text"


@dataclass(frozen=True, slots=True)
class ImagePart:
    mime_type: str | None
    data: str = field(default="", repr=False)
    type: Literal["image"] = "image"


@dataclass(frozen=True, slots=True)
class ResourcePart:
    uri: str | None
    text: str | None = None
    mime_type: str | None = None
    type: Literal["resource"] = "resource"


ContentPart = TextPart | ImagePart | ResourcePart


@dataclass(frozen=True, slots=True)
class ToolCallResult:
    """Raw provider result for one ``tools/call`` round trip."""

    content: tuple[ContentPart, ...] = ()
    is_error: bool = False


def _field(item: Any, name: str) -> Any:
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)


def parse_content_part(item: Any) -> ContentPart | None:
    """Convert one protocol content item into a :data:`ContentPart`.

    Accepts either ``mcp.types`` models or plain dicts. Returns None for
    item types outside the text/image/resource set.
    """
    kind = _field(item, "type")
    if kind == "text":
        return TextPart(text=str(_field(item, "text") or ""))
    if kind == "image":
        return ImagePart(
            mime_type=_field(item, "mimeType"),
            data=str(_field(item, "data") or ""),
        )
    if kind == "resource":
        resource = _field(item, "resource")
        if resource is None:
            # flat form: {"type": "resource", "text": ..., "mimeType": ...}
            return ResourcePart(
                uri=_field(item, "uri"),
                text=_field(item, "text"),
                mime_type=_field(item, "mimeType"),
            )
        uri = _field(resource, "uri")
        return ResourcePart(
            uri=str(uri) if uri is not None else None,
            text=_field(resource, "text"),
            mime_type=_field(resource, "mimeType"),
        )
    logger.warning("Dropping unsupported tool content type: %s", kind)
    return None


def parse_call_result(raw: Any) -> ToolCallResult:
    """Validate a ``tools/call`` result into a :class:`ToolCallResult`."""
    items = _field(raw, "content") or []
    parts = tuple(
        part for part in (parse_content_part(item) for item in items) if part is not None
    )
    return ToolCallResult(content=parts, is_error=bool(_field(raw, "isError")))


def parse_tool_schema(raw: Any) -> ToolSchema:
    """Validate one ``tools/list`` entry into a :class:`ToolSchema`."""
    schema = _field(raw, "inputSchema")
    return ToolSchema(
        name=str(_field(raw, "name")),
        description=_field(raw, "description"),
        input_schema=dict(schema) if isinstance(schema, dict) else {},
    )
