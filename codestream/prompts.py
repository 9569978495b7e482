"""Model prompts for code generation.

Each generation target has two Jinja2 templates: one for a new project and one
for extending an existing project whose files are passed in as context. The
existing form is chosen exactly when that context is non-blank.

Every template tells the model to introduce each file with a ``FILE: <path>``
line followed by a fenced code block; :mod:`codestream.project.extractor`
relies on that layout.
"""

from __future__ import annotations

import textwrap
from enum import Enum

from jinja2 import Environment, StrictUndefined, Template


class TargetKind(str, Enum):
    """What kind of code the model is asked for."""

    BACKEND = "backend"
    FRONTEND = "frontend"


_FILE_FORMAT = textwrap.dedent("""\
    Output format (mandatory):
    - Put each file on its own, preceded by a line of the form FILE: <relative/path>
    - Follow that line with a fenced code block tagged with the language, e.g.
      FILE: src/main/java/com/example/demo/entity/Product.java
      ```java
      ...file content...
      ```
    - Use forward slashes in paths. Do not write explanations outside the code blocks.
    """)

_BACKEND_NEW = textwrap.dedent("""\
    Generate Spring Boot CRUD code. Return ONLY Java code, no explanations.

    Requirements: {{ prompt }}

    Create:
    1. Entity class with JPA annotations
    2. Repository interface extending JpaRepository<Entity, Long>
    3. Service interface with CRUD methods
    4. Service implementation with all CRUD operations
    5. REST Controller with @GetMapping, @PostMapping, @PutMapping, @DeleteMapping
    6. DTO classes for request and response
    7. Use Lombok: @Data, @Builder, @NoArgsConstructor, @AllArgsConstructor
    8. Add validation: @NotNull, @NotBlank, @Size
    9. Add Swagger: @Operation, @ApiResponse
    10. Include error handling

    Use Spring Boot, Java 17, PostgreSQL. Return complete Java code only.

    """) + _FILE_FORMAT

_BACKEND_EXISTING = textwrap.dedent("""\
    You are extending an existing Spring Boot project. Return ONLY Java code, no explanations.

    {{ context }}

    Requirements: {{ prompt }}

    Rules:
    1. Reuse the existing packages, naming and base classes shown above
    2. Only output files that are new or that you change; output changed files in full
    3. Keep JPA entities, repositories, services and REST controllers consistent with each other
    4. Use Lombok, validation and Swagger annotations the way the existing code does

    """) + _FILE_FORMAT

_FRONTEND_NEW = textwrap.dedent("""\
    Generate Angular TypeScript interfaces. Return ONLY TypeScript code, no explanations.

    Requirements: {{ prompt }}

    Create TypeScript interfaces with:
    1. Proper types: string, number, boolean, Date
    2. Optional properties with '?'
    3. Export interfaces
    4. PascalCase for interfaces, camelCase for properties
    5. All fields from backend entity
    6. Types for relationships (arrays, nested objects)

    Use Angular 17+, TypeScript 5+. Return complete TypeScript code only.

    """) + _FILE_FORMAT

_FRONTEND_EXISTING = textwrap.dedent("""\
    You are extending an existing Angular project. Return ONLY TypeScript code, no explanations.

    {{ context }}

    Requirements: {{ prompt }}

    Rules:
    1. Match the interfaces and models to the existing backend entities shown above
    2. Only output files that are new or that you change; output changed files in full
    3. PascalCase for interfaces, camelCase for properties, export everything

    """) + _FILE_FORMAT


_TEMPLATES: dict[tuple[TargetKind, bool], str] = {
    (TargetKind.BACKEND, False): _BACKEND_NEW,
    (TargetKind.BACKEND, True): _BACKEND_EXISTING,
    (TargetKind.FRONTEND, False): _FRONTEND_NEW,
    (TargetKind.FRONTEND, True): _FRONTEND_EXISTING,
}


class PromptBuilder:
    """Renders the model input for a target, prompt and optional context."""

    def __init__(self) -> None:
        self.env = Environment(
            autoescape=False,
            keep_trailing_newline=True,
            undefined=StrictUndefined,
        )
        self._compiled: dict[tuple[TargetKind, bool], Template] = {
            key: self.env.from_string(source) for key, source in _TEMPLATES.items()
        }

    def build(
        self,
        target: TargetKind | str,
        user_prompt: str,
        existing_context: str | None = None,
    ) -> str:
        """Return the full model input.

        Raises:
            ValueError: If *user_prompt* is blank or *target* is unknown.
        """
        if not user_prompt or not user_prompt.strip():
            raise ValueError("Prompt must not be empty")
        target = TargetKind(target)

        context = (existing_context or "").strip()
        template = self._compiled[(target, bool(context))]
        values = {"prompt": user_prompt.strip()}
        if context:
            values["context"] = context
        return template.render(**values)


_default_builder: PromptBuilder | None = None


def build_prompt(
    target: TargetKind | str,
    user_prompt: str,
    existing_context: str | None = None,
) -> str:
    """Render a prompt with a shared :class:`PromptBuilder`."""
    global _default_builder
    if _default_builder is None:
        _default_builder = PromptBuilder()
    return _default_builder.build(target, user_prompt, existing_context)
