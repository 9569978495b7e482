"""codestream streaming pipeline.

Relays a live Ollama generation to a client as server-sent events while
keeping the full text for the completion handoff.

Key classes:
    LineDecoder      - NDJSON line reassembly and record decoding
    TokenFilter      - Terminal/empty/refusal filtering of fragments
    GenerationRelay  - Per-request lifecycle state machine
    QueueEventSink   - Bounded channel between relay and HTTP response
"""

from .decoder import LineDecoder, decode_record
from .events import SSE_MEDIA_TYPE, format_sse, parse_sse
from .filter import FilterStats, TokenFilter
from .models import EventName, GeneratedRecord, RelayEvent, RelayOutcome, RelayState
from .relay import CompletionHandler, GenerationRelay, RelayStateError
from .sinks import CallbackEventSink, EventSink, QueueEventSink

__all__ = [
    "CallbackEventSink",
    "CompletionHandler",
    "EventName",
    "EventSink",
    "FilterStats",
    "GeneratedRecord",
    "GenerationRelay",
    "LineDecoder",
    "QueueEventSink",
    "RelayEvent",
    "RelayOutcome",
    "RelayState",
    "RelayStateError",
    "SSE_MEDIA_TYPE",
    "TokenFilter",
    "decode_record",
    "format_sse",
    "parse_sse",
]
