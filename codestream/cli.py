"""Command line interface for codestream.

Subcommands::

    codestream generate backend "Product with name and price" --zip product.zip
    codestream structure generated.txt
    codestream models
    codestream serve --port 8000
"""

from __future__ import annotations

import argparse
import asyncio
import sys
import time
from pathlib import Path

from rich.tree import Tree

from codestream.config import Config
from codestream.ollama_client import OllamaClient
from codestream.project import (
    ArchiveError,
    ProjectContextReader,
    ProjectStructure,
    ProjectStructureService,
    StarterTemplates,
    TreeNode,
)
from codestream.project.starters import ARCHIVE_NAMES
from codestream.prompts import PromptBuilder, TargetKind
from codestream.storage import FileGenerationStore, new_generation_id
from codestream.streaming import (
    CallbackEventSink,
    EventName,
    GenerationRelay,
    RelayEvent,
    TokenFilter,
)
from codestream.utils import (
    configure_logging,
    console,
    format_duration,
    format_size,
    print_error,
    print_header,
    print_success,
    print_summary_table,
    print_warning,
)

# ---------------------------------------------------------------------------
# Rendering helpers
# ---------------------------------------------------------------------------


def render_tree(root: TreeNode | None) -> Tree:
    """Convert a project tree into a ``rich`` tree for the console."""
    label = root.label if root is not None else "Project"
    tree = Tree(f"[bold]{label}[/bold]")
    if root is not None:
        _add_children(tree, root)
    return tree


def _add_children(branch: Tree, node: TreeNode) -> None:
    for child in node.children or []:
        if child.is_folder:
            _add_children(branch.add(f"[bold blue]{child.label}/[/bold blue]"), child)
        else:
            branch.add(child.label)


def _show_structure(structure: ProjectStructure) -> None:
    console.print(render_tree(structure.root))
    console.print()


def _write_zip(service: ProjectStructureService, structure: ProjectStructure, path: Path) -> bool:
    try:
        data = service.archive(structure)
    except ArchiveError as exc:
        print_error(f"Could not create archive: {exc}")
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    print_success(f"Wrote {path} ({format_size(len(data))})")
    return True


# ---------------------------------------------------------------------------
# Subcommands
# ---------------------------------------------------------------------------


async def run_generate(args: argparse.Namespace, config: Config) -> int:
    """Stream one generation to the console and hand it off to the store."""
    context = ProjectContextReader(config.context).read_context(args.existing_project_path)
    try:
        model_input = PromptBuilder().build(args.target, args.prompt, context)
    except ValueError as exc:
        print_error(str(exc))
        return 2

    client = OllamaClient.from_config(config.ollama)
    store = FileGenerationStore(config.generations_dir)
    generation_id = new_generation_id()
    model = args.model or config.ollama.model

    async def show(event: RelayEvent) -> None:
        if event.name is EventName.CODE_CHUNK:
            console.print(event.data, end="", markup=False, highlight=False, soft_wrap=True)
        elif event.name is EventName.COMPLETE:
            console.print()
            print_success(event.data)
        elif event.name is EventName.NO_CODE:
            console.print()
            print_warning(event.data)
        else:
            console.print()
            print_error(event.data)

    async def handoff(text: str) -> None:
        await store.save(generation_id, text, target=args.target, prompt=args.prompt, model=model)

    relay = GenerationRelay(
        client,
        model_input,
        CallbackEventSink(show),
        on_complete=handoff,
        model=model,
        timeout=config.ollama.timeout,
        token_filter=TokenFilter(
            config.stream.refusal_phrases,
            drop_whitespace=config.stream.drop_whitespace_fragments,
        ),
    )

    print_header(f"Generating {args.target} code with {model}")
    started = time.monotonic()
    outcome = await relay.run()
    elapsed = time.monotonic() - started

    if not outcome.succeeded or outcome.empty:
        return 1

    service = ProjectStructureService()
    structure = service.build(outcome.text)
    print_header("Project structure")
    _show_structure(structure)
    print_summary_table(
        {
            "Generation": generation_id,
            "Files": str(len(structure.files)),
            "Characters": str(len(outcome.text)),
            "Refusals skipped": str(relay.stats.refusals),
            "Duration": format_duration(elapsed),
            "Saved to": str(config.generations_dir),
        }
    )

    if args.zip and not _write_zip(service, structure, Path(args.zip)):
        return 1
    return 0


def run_structure(args: argparse.Namespace) -> int:
    """Parse a saved generation file and show (or zip) its structure."""
    source = Path(args.file)
    if not source.is_file():
        print_error(f"File not found: {source}")
        return 1

    service = ProjectStructureService()
    structure = service.build(source.read_text(encoding="utf-8"))
    if not structure.files:
        print_warning("No files found in the input.")
        return 1

    _show_structure(structure)
    if args.zip and not _write_zip(service, structure, Path(args.zip)):
        return 1
    return 0


def run_template(args: argparse.Namespace) -> int:
    """Show (and zip) an empty starter project for a target."""
    starters = StarterTemplates()
    try:
        structure = starters.structure(args.target, args.name)
    except ValueError as exc:
        print_error(str(exc))
        return 2

    _show_structure(structure)
    target = Path(args.zip or ARCHIVE_NAMES[TargetKind(args.target)])
    if not _write_zip(starters.service, structure, target):
        return 1
    return 0


async def run_models(config: Config) -> int:
    client = OllamaClient.from_config(config.ollama)
    if not await client.is_available():
        print_error(f"Ollama is not reachable at {config.ollama.url}")
        return 1
    models = await client.list_models()
    if not models:
        print_warning("No models installed.")
        return 0
    for name in models:
        marker = " (default)" if name.split(":")[0] == config.ollama.model.split(":")[0] else ""
        console.print(f"  {name}{marker}")
    return 0


def run_serve(config: Config) -> int:
    import uvicorn

    from codestream.server import create_app

    uvicorn.run(
        create_app(config),
        host=config.server.host,
        port=config.server.port,
        log_level=config.log_level.lower(),
    )
    return 0


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="codestream",
        description="codestream -- stream code generation from Ollama into project files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            '  codestream generate backend "Product entity with name and price"\n'
            '  codestream generate frontend "Order interfaces" --zip order.zip\n'
            "  codestream structure output/generations/<id>.txt --zip project.zip\n"
            "  codestream template backend --name shop\n"
            "  codestream serve --port 8080\n"
        ),
    )
    parser.add_argument(
        "--output-dir", "-o",
        default=None,
        help="Where generations are stored (default: ./output or CODESTREAM_OUTPUT_DIR)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (default: INFO or CODESTREAM_LOG_LEVEL)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate = subparsers.add_parser("generate", help="Stream a generation to the console")
    generate.add_argument("target", choices=[t.value for t in TargetKind])
    generate.add_argument("prompt", help="What to generate")
    generate.add_argument(
        "--existing-project-path", "-p",
        default=None,
        help="Extend the project in this directory",
    )
    generate.add_argument("--model", "-m", default=None, help="Override the Ollama model")
    generate.add_argument("--zip", default=None, help="Also write the project as a ZIP file")

    structure = subparsers.add_parser("structure", help="Show the project tree of generated text")
    structure.add_argument("file", help="Text file holding model output")
    structure.add_argument("--zip", default=None, help="Also write the project as a ZIP file")

    template = subparsers.add_parser("template", help="Write an empty starter project as a ZIP file")
    template.add_argument("target", choices=[t.value for t in TargetKind])
    template.add_argument("--name", "-n", default=None, help="Project name (default: demo / my-app)")
    template.add_argument("--zip", default=None, help="ZIP file to write (default: spring-boot-template.zip or frontend-template.zip)")

    subparsers.add_parser("models", help="List the models available on the Ollama server")

    serve = subparsers.add_parser("serve", help="Run the HTTP server")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)
    serve.add_argument(
        "--context-root",
        default=None,
        help="Only read existing projects below this directory (default: current directory)",
    )

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for ``codestream`` and ``python -m codestream``."""
    args = build_parser().parse_args(argv)

    config = Config.from_env()
    if args.output_dir:
        config.output_dir = Path(args.output_dir)
    if args.log_level:
        config.log_level = args.log_level
    if args.command == "serve":
        if args.host:
            config.server.host = args.host
        if args.port:
            config.server.port = args.port
        if args.context_root:
            config.context.allowed_root = Path(args.context_root)
        elif config.context.allowed_root is None:
            config.context.allowed_root = Path.cwd()

    configure_logging(config.log_level)

    if args.command == "generate":
        code = asyncio.run(run_generate(args, config))
    elif args.command == "structure":
        code = run_structure(args)
    elif args.command == "template":
        code = run_template(args)
    elif args.command == "models":
        code = asyncio.run(run_models(config))
    else:
        code = run_serve(config)

    if code:
        sys.exit(code)


if __name__ == "__main__":
    main()
