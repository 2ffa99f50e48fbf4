from __future__ import annotations

import argparse
import asyncio
import logging
from contextlib import AsyncExitStack
from pathlib import Path
from typing import Sequence

from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from .clients.base import ImageGenerator
from .clients.gemini import GeminiImageClient
from .config import AppConfig, load_config
from .orchestrator import GenerationOrchestrator
from .presentation import save_results
from .types import WorkflowPhase
from .uploader import ImageUploader


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Generate images of a person wearing a garment."
    )
    parser.add_argument("person", type=Path, help="Photo of the person (PNG, JPG, WEBP).")
    parser.add_argument("garment", type=Path, help="Image of the clothing item.")
    parser.add_argument(
        "--description",
        type=str,
        default="",
        help='Optional garment qualifier, e.g. "the blue t-shirt".',
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Directory for generated images (defaults to OUTPUT_ROOT_DIR).",
    )
    parser.add_argument(
        "--dotenv",
        type=Path,
        default=None,
        help="Optional path to a .env file containing the Gemini API key.",
    )
    return parser.parse_args(argv)


def configure_logging(level: str, console: Console) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


async def run(
    args: argparse.Namespace,
    config: AppConfig,
    console: Console,
    generator: ImageGenerator | None = None,
) -> int:
    """Run one try-on from the command line and return the process exit code."""
    async with AsyncExitStack() as stack:
        if generator is None:
            generator = await stack.enter_async_context(GeminiImageClient(config.gemini))

        orchestrator = GenerationOrchestrator(generator)
        uploaders = (
            ImageUploader("Person", orchestrator.set_person_image),
            ImageUploader("Clothing", orchestrator.set_garment_image),
        )
        await asyncio.gather(
            uploaders[0].select(args.person),
            uploaders[1].select(args.garment),
        )
        rejected = [uploader for uploader in uploaders if uploader.error]
        for uploader in rejected:
            console.print(f"[red]{uploader.title} image rejected:[/red] {uploader.error}")
        if rejected:
            return 1
        orchestrator.set_garment_description(args.description)

        with Progress(
            SpinnerColumn(),
            TextColumn("{task.description}"),
            TimeElapsedColumn(),
            console=console,
            transient=True,
        ) as progress:
            progress.add_task("Generating try-on, this can take up to 30 seconds...", total=None)
            phase = await orchestrator.trigger_generation()

    state = orchestrator.state
    if phase is not WorkflowPhase.SUCCEEDED:
        console.print(f"[red]Error:[/red] {state.last_error}")
        return 1

    output_dir = args.output_dir or config.output.root_dir
    saved = save_results(state.results, output_dir, stem=args.person.stem)
    if not saved:
        console.print("[yellow]The model returned no images.[/yellow]")
        return 1
    for path in saved:
        console.print(f"[green]Saved[/green] {path}")
    return 0


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    console = Console()

    try:
        config = load_config(args.dotenv)
    except RuntimeError as exc:
        console.print(f"[red]{exc}[/red]")
        raise SystemExit(1) from exc

    configure_logging(config.log_level, console)
    raise SystemExit(asyncio.run(run(args, config, console)))


if __name__ == "__main__":
    main()
