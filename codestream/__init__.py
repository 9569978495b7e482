"""codestream -- streaming code generation from a local Ollama model.

Relays a live generation to clients as server-sent events, then turns the
finished text into a multi-file project tree and a ZIP archive.

Subpackages:
    streaming  - NDJSON decoding, token filtering and the generation relay
    project    - File extraction, tree building, archiving, project context
"""

__version__ = "0.1.0"
