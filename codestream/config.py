"""codestream configuration.

Centralised, typed configuration for the generation service. All settings use
Pydantic v2 models so they can be validated at construction time and serialised
to/from JSON or environment variables without boiler-plate.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field

DEFAULT_REFUSAL_PHRASES: tuple[str, ...] = (
    "i'm sorry",
    "i can't",
    "cannot",
    "unable to",
    "not able",
    "i apologize",
)


class OllamaConfig(BaseModel):
    """Configuration for the upstream Ollama server."""

    url: str = Field(default="http://localhost:11434")
    model: str = Field(default="qwen2.5-coder")
    timeout: int = Field(
        default=300, ge=60, description="Upper bound for one generation call in seconds"
    )
    connect_timeout: float = Field(default=10.0, gt=0)


class StreamConfig(BaseModel):
    """Tuning knobs for the streaming relay."""

    queue_size: int = Field(
        default=64, ge=1, description="Events buffered between the relay and a slow client"
    )
    refusal_phrases: list[str] = Field(default_factory=lambda: list(DEFAULT_REFUSAL_PHRASES))
    drop_whitespace_fragments: bool = Field(
        default=True,
        description="Drop fragments that contain only whitespace (empty ones are always dropped)",
    )


class ContextConfig(BaseModel):
    """Limits for reading an existing project as prompt context."""

    max_file_size: int = Field(default=100_000, ge=1, description="Per-file limit in bytes")
    max_total_size: int = Field(default=500_000, ge=1, description="Total limit in bytes")
    max_files: int = Field(default=50, ge=1)
    extensions: list[str] = Field(
        default_factory=lambda: [
            ".java", ".properties", ".xml", ".yml", ".yaml", ".json",
            ".ts", ".tsx", ".js", ".html", ".css", ".scss", ".md", ".py",
        ]
    )
    excluded_dirs: list[str] = Field(
        default_factory=lambda: [
            "target", ".git", "node_modules", ".idea", ".vscode",
            "build", "dist", "__pycache__", ".venv",
        ]
    )
    allowed_root: Optional[Path] = Field(
        default=None, description="When set, context may only be read below this directory"
    )


class ServerConfig(BaseModel):
    """Bind address for the HTTP server."""

    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000, ge=1, le=65535)


class Config(BaseModel):
    """Global codestream configuration.

    Instances are typically created once by the CLI entry point or the server
    factory and then passed through the rest of the system.
    """

    output_dir: Path = Field(default=Path("./output"))
    log_level: str = Field(default="INFO")
    ollama: OllamaConfig = Field(default_factory=OllamaConfig)
    stream: StreamConfig = Field(default_factory=StreamConfig)
    context: ContextConfig = Field(default_factory=ContextConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)

    @property
    def generations_dir(self) -> Path:
        """Directory where finished generations are handed off to."""
        return self.output_dir / "generations"

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path | None = None) -> Path:
        """Persist the configuration to a JSON file.

        Args:
            path: Destination file. Defaults to ``<output_dir>/config.json``.

        Returns:
            The resolved path where the file was written.
        """
        target = path or (self.output_dir / "config.json")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "Config":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            CODESTREAM_OLLAMA_URL, CODESTREAM_OLLAMA_MODEL, CODESTREAM_OLLAMA_TIMEOUT,
            CODESTREAM_QUEUE_SIZE, CODESTREAM_OUTPUT_DIR, CODESTREAM_LOG_LEVEL,
            CODESTREAM_HOST, CODESTREAM_PORT, CODESTREAM_CONTEXT_ROOT.
        """
        ollama_kwargs: dict[str, Any] = {}
        if os.environ.get("CODESTREAM_OLLAMA_URL"):
            ollama_kwargs["url"] = os.environ["CODESTREAM_OLLAMA_URL"]
        if os.environ.get("CODESTREAM_OLLAMA_MODEL"):
            ollama_kwargs["model"] = os.environ["CODESTREAM_OLLAMA_MODEL"]
        if os.environ.get("CODESTREAM_OLLAMA_TIMEOUT"):
            ollama_kwargs["timeout"] = int(os.environ["CODESTREAM_OLLAMA_TIMEOUT"])

        stream_kwargs: dict[str, Any] = {}
        if os.environ.get("CODESTREAM_QUEUE_SIZE"):
            stream_kwargs["queue_size"] = int(os.environ["CODESTREAM_QUEUE_SIZE"])

        server_kwargs: dict[str, Any] = {}
        if os.environ.get("CODESTREAM_HOST"):
            server_kwargs["host"] = os.environ["CODESTREAM_HOST"]
        if os.environ.get("CODESTREAM_PORT"):
            server_kwargs["port"] = int(os.environ["CODESTREAM_PORT"])

        context_kwargs: dict[str, Any] = {}
        if os.environ.get("CODESTREAM_CONTEXT_ROOT"):
            context_kwargs["allowed_root"] = Path(os.environ["CODESTREAM_CONTEXT_ROOT"])

        return cls(
            output_dir=Path(os.environ.get("CODESTREAM_OUTPUT_DIR", "./output")),
            log_level=os.environ.get("CODESTREAM_LOG_LEVEL", "INFO"),
            ollama=OllamaConfig(**ollama_kwargs),
            stream=StreamConfig(**stream_kwargs),
            context=ContextConfig(**context_kwargs),
            server=ServerConfig(**server_kwargs),
        )

    def ensure_directories(self) -> None:
        """Create the directories that must exist before generations are stored."""
        for directory in (self.output_dir, self.generations_dir):
            directory.mkdir(parents=True, exist_ok=True)
