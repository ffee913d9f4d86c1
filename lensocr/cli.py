"""
lensocr CLI - extract text and layout from an image.

Usage:
    lensocr photo.jpg --lang en
    lensocr photo.jpg --json > result.json
"""

from __future__ import annotations

import logging

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler

from lensocr.errors import ProtocolError, ProtocolErrorKind
from lensocr.image_io import DEFAULT_MAX_SIDE, load_image
from lensocr.providers.lens.client import LensClient
from lensocr.retry import RetryPolicy
from lensocr.types import OcrResult

# Load environment variables from .env file
load_dotenv()

app = typer.Typer(add_completion=False)
console = Console()


def _create_client(endpoint: str, timeout_sec: int, attempts: int | None) -> LensClient:
    """Create the protocol client; unset options fall back to the environment."""
    return LensClient(
        endpoint=endpoint,
        timeout_sec=timeout_sec,
        retry=RetryPolicy(max_attempts=attempts) if attempts else None,
    )


def _print_result(result: OcrResult) -> None:
    console.rule("Full Text")
    if result.full_text:
        console.print(result.full_text, markup=False)
    else:
        console.print("[dim](no text found)[/dim]")

    console.rule("Detailed Structure")
    paragraphs = result.paragraphs()
    console.print(
        f"Found {len(result.segments)} segments in {len(paragraphs)} paragraphs "
        f"(language={result.language})."
    )
    width, height = result.source_image_size
    for i, para in enumerate(paragraphs, start=1):
        first = para[0]
        x0, y0, x1, _ = first.bounds()
        console.print(
            f"Paragraph {i}: {len(para)} lines -> first line pos: "
            f"x={x0 * width:.0f}, y={y0 * height:.0f}, w={(x1 - x0) * width:.0f}"
        )

    if result.translation:
        console.rule("Translation")
        console.print(result.translation, markup=False)


@app.command()
def ocr(
    image: str = typer.Argument(..., help="Path to the input image"),
    lang: str | None = typer.Option(None, "--lang", help="Language hint (e.g. en, ja)"),
    as_json: bool = typer.Option(False, "--json", help="Print the OCR result as JSON"),
    max_side: int = typer.Option(DEFAULT_MAX_SIDE, "--max-side", help="Downscale so the longest side fits"),
    attempts: int | None = typer.Option(None, "--attempts", help="Max attempts per image"),
    endpoint: str = typer.Option("", "--endpoint", help="Upload endpoint override"),
    timeout_sec: int = typer.Option(0, "--timeout-sec", help="Per-request timeout"),
    verbose: bool = typer.Option(False, "--verbose/--quiet"),
):
    """Run OCR on one image through the visual-search upload endpoint."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        )

    try:
        payload = load_image(image, max_side=max_side)
    except (OSError, ValueError) as e:
        console.print(f"[red]Cannot read image {image}: {e}[/red]")
        raise typer.Exit(code=1)

    client = _create_client(endpoint, timeout_sec, attempts)
    try:
        result = client.submit(payload, language_hint=lang)
    except ProtocolError as e:
        console.print(f"[red]OCR failed after {e.attempts} attempt(s): {e}[/red]")
        raise typer.Exit(code=2 if e.kind is ProtocolErrorKind.RATE_LIMITED else 1)

    if as_json:
        typer.echo(result.model_dump_json(indent=2))
    else:
        _print_result(result)


def main():
    """Entry point for lensocr CLI."""
    app()
