"""Main CLI entry point."""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console

from amharic_ocr.config import EngineConfig, Preset, ProcessingConfig, Provider
from amharic_ocr.errors import ConfigError, RecognitionError, RelayError
from amharic_ocr.logging_utils import LOG_LEVEL_CHOICES, configure_logging
from amharic_ocr.preprocessing import Preprocessor
from amharic_ocr.providers.anthropic import AnthropicProvider
from amharic_ocr.providers.openai import OpenAIProvider
from amharic_ocr.providers.tesseract import TesseractProvider
from amharic_ocr.relay import forward_text

console = Console(stderr=True)
load_dotenv()

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".webp", ".gif", ".bmp", ".tif", ".tiff"}


@click.command()
@click.argument("input_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--provider", "-p",
    type=click.Choice([p.value for p in Provider], case_sensitive=False),
    default=Provider.TESSERACT.value,
    show_default=True,
    help="Recognition engine.",
)
@click.option(
    "--model", "-m",
    default=None,
    help="Model name override for the LLM providers.",
)
@click.option(
    "--api-key",
    default=None,
    help="API key for the LLM providers (overrides environment variable).",
)
@click.option(
    "--lang", "-l", "language",
    default="amh",
    show_default=True,
    help="Tesseract language code(s), e.g. 'amh' or 'amh+tir'.",
)
@click.option(
    "--english/--no-english",
    default=False,
    show_default=True,
    help="Also recognise English text on the page.",
)
@click.option(
    "--output", "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Output file path. Defaults to stdout.",
)
@click.option(
    "--preprocess/--no-preprocess",
    default=True,
    show_default=True,
    help="Clean the image (grayscale, denoise, binarise, upscale) before recognition.",
)
@click.option(
    "--preset",
    type=click.Choice([p.value for p in Preset], case_sensitive=False),
    default=Preset.DOCUMENT.value,
    show_default=True,
    help="Threshold profile: general = window 21 / constant 10, "
         "document = window 41 / constant 15.",
)
@click.option(
    "--window-size",
    type=int,
    default=None,
    help="Adaptive threshold window (odd, pixels). Overrides the preset.",
)
@click.option(
    "--constant",
    type=int,
    default=None,
    help="How much darker than the local mean a pixel must be to turn black. "
         "Overrides the preset.",
)
@click.option("--grayscale/--no-grayscale", default=True, show_default=True)
@click.option("--binarize/--no-binarize", default=True, show_default=True)
@click.option(
    "--denoise/--no-denoise",
    default=False,
    show_default=True,
    help="3x3 median filter before thresholding (slow on large images).",
)
@click.option("--upscale/--no-upscale", default=True, show_default=True)
@click.option(
    "--save-preview",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the image sent to the recognition engine to this path.",
)
@click.option(
    "--relay-url",
    envvar="REMOTE_BACKEND_URL",
    default=None,
    help="Forward the recognised text to this backend URL [env: REMOTE_BACKEND_URL].",
)
@click.option(
    "--relay-key",
    envvar="UPLOAD_API_KEY",
    default=None,
    help="API key sent to the backend as x-api-key [env: UPLOAD_API_KEY].",
)
@click.option("--log-level", type=click.Choice(LOG_LEVEL_CHOICES), default=None)
@click.option("-v", "--verbose", count=True, help="Increase log verbosity.")
@click.option("-q", "--quiet", count=True, help="Reduce log verbosity.")
@click.version_option(package_name="amharic-ocr")
def main(
    input_path, provider, model, api_key, language, english, output, preprocess,
    preset, window_size, constant, grayscale, binarize, denoise, upscale,
    save_preview, relay_url, relay_key, log_level, verbose, quiet,
):
    """OCR a photographed or scanned Amharic document.

    INPUT_PATH can be a .png, .jpg, .jpeg, .webp, .gif, .bmp or .tif file.
    Results are written to stdout unless --output is specified.
    """
    configure_logging(console, log_level=log_level, verbose=verbose, quiet=quiet)

    suffix = input_path.suffix.lower()
    if suffix not in IMAGE_EXTENSIONS:
        console.print(f"[red]Unsupported file type:[/red] {suffix}")
        sys.exit(1)

    try:
        config = EngineConfig.from_env(
            provider=Provider(provider),
            model_override=model,
            api_key_override=api_key,
        )
        overrides = {
            "grayscale": grayscale,
            "binarize": binarize,
            "denoise": denoise,
            "upscale": upscale,
        }
        if window_size is not None:
            overrides["window_size"] = window_size
        if constant is not None:
            overrides["threshold_constant"] = constant
        processing = ProcessingConfig.from_preset(Preset(preset), **overrides)
        processing.validate()
    except ConfigError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    raw = input_path.read_bytes()
    image = raw
    if preprocess:
        with console.status("[cyan]Preprocessing image..."):
            result = Preprocessor().run(raw, processing)
        if result.fallback:
            console.print("[yellow]Preprocessing failed, using the original image.[/yellow]")
        for event in result.progress():
            logger.debug("preprocess: %s", event)
        image = result.image

    if save_preview:
        save_preview.write_bytes(image)
        console.print(f"[dim]Preview written to {save_preview}[/dim]")

    languages = language
    if english and "eng" not in language.split("+"):
        languages = f"{language}+eng"

    provider_obj = _build_provider(config)
    label = config.model or provider
    try:
        with console.status(f"[cyan]Running OCR via {provider} ({label}, {languages})..."):
            recognition = provider_obj.ocr(image=image, languages=languages)
    except RecognitionError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)
    for event in recognition.events:
        logger.debug("recognition: %s", event)

    text = recognition.text
    console.print(f"[dim]Confidence: {recognition.confidence:.1f}%[/dim]")

    if output:
        output.write_text(text, encoding="utf-8")
        console.print(f"[green]Written to {output}[/green]")
    else:
        click.echo(text)

    if relay_url:
        _relay(relay_url, relay_key, text, recognition.confidence, languages)


def _relay(url, api_key, text, confidence, languages):
    if not text:
        console.print("[yellow]Nothing recognised; skipping upload.[/yellow]")
        return
    metadata = {
        "confidence": confidence,
        "language": languages,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "source": "cli",
    }
    try:
        response = forward_text(url, text, metadata=metadata, api_key=api_key)
    except RelayError as e:
        console.print(f"[red]Upload failed:[/red] {e}")
        sys.exit(1)
    if not response.ok:
        console.print(f"[red]Backend rejected the upload (HTTP {response.status}):[/red] "
                      f"{response.data}")
        sys.exit(1)
    console.print("[green]Saved to backend[/green]")


def _build_provider(config: EngineConfig):
    if config.provider == Provider.TESSERACT:
        return TesseractProvider(tessdata_dir=config.tessdata_dir)
    elif config.provider == Provider.ANTHROPIC:
        return AnthropicProvider(api_key=config.api_key, model=config.model)
    elif config.provider == Provider.OPENAI:
        return OpenAIProvider(api_key=config.api_key, model=config.model)
    else:
        raise ValueError(f"Unknown provider: {config.provider}")
