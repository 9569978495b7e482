"""Server-sent-events framing for relay events."""

from __future__ import annotations

from .models import EventName, RelayEvent

SSE_MEDIA_TYPE = "text/event-stream"


def format_sse(event: RelayEvent) -> str:
    """Render *event* as one SSE message.

    Payload lines become separate ``data:`` fields, which clients join back
    together with ``\\n``. CR and CRLF are normalised to LF first since SSE
    treats every one of them as a line break.
    """
    data = event.data.replace("\r\n", "\n").replace("\r", "\n")
    lines = [f"event: {event.name.value}"]
    lines.extend(f"data: {line}" for line in data.split("\n"))
    return "\n".join(lines) + "\n\n"


def parse_sse(stream: str) -> list[RelayEvent]:
    """Parse SSE text produced by :func:`format_sse` back into events.

    Handy for Python clients consuming the stream endpoint.
    """
    events: list[RelayEvent] = []
    for block in stream.split("\n\n"):
        if not block.strip():
            continue
        name = None
        data: list[str] = []
        for line in block.split("\n"):
            field, _, value = line.partition(":")
            if value.startswith(" "):
                value = value[1:]
            if field == "event":
                name = value
            elif field == "data":
                data.append(value)
        if name is not None:
            events.append(RelayEvent(name=EventName(name), data="\n".join(data)))
    return events
