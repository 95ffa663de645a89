"""Command-line interface for LessonGate."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Optional

import click
import structlog
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from lessongate import __version__
from lessongate.analysis import ContentAnalysisEngine, HtmlPage, LanguageDetector
from lessongate.analysis.engine import SUITABILITY_MESSAGES
from lessongate.config import Config, load_config
from lessongate.errors import ErrorClassifier, GenerationError
from lessongate.observability import MetricsManager, configure_logging
from lessongate.protocols import ContentMetadata, ContentType, ValidationContext
from lessongate.recovery import ExtractionErrorHandler
from lessongate.sections import SECTION_VALIDATORS, get_validator
from lessongate.validation import ContentValidationEngine

console = Console()
logger = structlog.get_logger(__name__)


def _config(ctx: click.Context) -> Config:
    return ctx.obj["config"]


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "-c", type=click.Path(exists=True), help="Configuration file path")
@click.option(
    "--log-level",
    default="WARNING",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Logging level",
)
@click.pass_context
def cli(ctx: click.Context, config: Optional[str], log_level: str) -> None:
    """LessonGate - content quality gate for AI lesson generation."""
    ctx.ensure_object(dict)
    settings = load_config(Path(config) if config else None)
    settings.monitoring.log_level = log_level
    configure_logging(settings.monitoring)
    metrics = MetricsManager(settings.monitoring)
    metrics.start()
    ctx.obj["metrics"] = metrics
    ctx.obj["config"] = settings


@cli.command()
@click.argument("html_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--url", default="", help="URL the page was fetched from")
@click.pass_context
def analyze(ctx: click.Context, html_file: str, url: str) -> None:
    """Score an HTML page and decide whether extraction should be offered."""
    html = Path(html_file).read_text(encoding="utf-8")
    engine = ContentAnalysisEngine(_config(ctx).analysis)
    result = engine.analyze(HtmlPage(html, url=url))

    table = Table(title="Page Analysis")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="magenta")
    table.add_row("Word count", str(result.word_count))
    table.add_row("Content type", result.content_type.value)
    table.add_row("Language", f"{result.language} ({result.language_confidence:.2f})")
    table.add_row("Quality score", f"{result.quality_score:.2f}")
    table.add_row("Main content", str(result.has_main_content))
    table.add_row("Educational", str(result.is_educational))
    table.add_row("Advertising ratio", f"{result.advertising_ratio:.2f}")
    table.add_row("Social feeds", str(result.has_social_media_feeds))
    table.add_row("Comment sections", str(result.has_comment_sections))
    console.print(table)

    reason = engine.unsuitability_reason(result)
    if reason is None:
        console.print("[green]Suitable for lesson generation[/green]")
    else:
        console.print(f"[red]Not suitable:[/red] {SUITABILITY_MESSAGES[reason]}")
        sys.exit(1)


@cli.command()
@click.argument("text_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--language", help="Declared language code; detected from the text when omitted")
@click.option("--confidence", type=click.FloatRange(0.0, 1.0), help="Language confidence for --language")
@click.option(
    "--content-type",
    type=click.Choice([content_type.value for content_type in ContentType]),
    default=None,
    help="Content type reported by extraction",
)
@click.option("--url", default="", help="Source URL")
@click.option("--title", default="", help="Source title")
@click.pass_context
def validate(
    ctx: click.Context,
    text_file: str,
    language: Optional[str],
    confidence: Optional[float],
    content_type: Optional[str],
    url: str,
    title: str,
) -> None:
    """Validate extracted text before it is sent for lesson generation."""
    config = _config(ctx)
    text = Path(text_file).read_text(encoding="utf-8")

    if language is None or confidence is None:
        detection = LanguageDetector(config.validation.supported_languages).detect(text, language)
        language = language or detection.language
        confidence = detection.confidence if confidence is None else confidence

    metadata = ContentMetadata(
        title=title,
        url=url,
        content_type=ContentType(content_type) if content_type else None,
        language=language,
        language_confidence=confidence,
    )
    result = ContentValidationEngine(config.validation).validate_sync(text, metadata)

    table = Table(title="Content Validation")
    table.add_column("Check", style="cyan")
    table.add_column("Result", style="magenta")
    table.add_row("Valid", str(result.is_valid))
    table.add_row("Meets minimum quality", str(result.meets_minimum_quality))
    table.add_row("Score", f"{result.score:.1f}")
    table.add_row("Language", f"{language} ({confidence:.2f})")
    console.print(table)

    for issue in result.issues:
        style = "red" if issue.is_error else "yellow"
        console.print(f"[{style}]{issue.severity.value}[/{style}] {issue.type.value}: {issue.message}")
    for recommendation in result.recommendations:
        console.print(f"  - {recommendation}")

    if not result.can_proceed:
        display = ExtractionErrorHandler.format_for_display(
            ExtractionErrorHandler(config.retry).handle_validation_error(result)
        )
        actions = "\n".join(f"- {action.label}" for action in display.actions)
        console.print(Panel(f"{display.message}\n\n{actions}", title=display.title, subtitle=display.error_id))
        sys.exit(1)


@cli.command()
@click.option("--status", type=int, default=None, help="HTTP status returned by the endpoint")
@click.option("--message", default="", help="Error message")
@click.option("--code", default=None, help="Provider error code")
@click.pass_context
def classify(ctx: click.Context, status: Optional[int], message: str, code: Optional[str]) -> None:
    """Show how a generation failure would be classified and reported."""
    classifier = ErrorClassifier(_config(ctx).errors)
    classified = classifier.classify(GenerationError(message, status=status, code=code))
    user_message = classifier.to_user_message(classified)

    steps = "\n".join(f"{number}. {step}" for number, step in enumerate(user_message.actionable_steps, start=1))
    body = f"{user_message.message}\n\n{steps}"
    if user_message.support_contact:
        body += f"\n\nContact: {user_message.support_contact}"
    console.print(f"[cyan]Type:[/cyan] {classified.type.value}")
    console.print(Panel(body, title=user_message.title, subtitle=user_message.error_id))


@cli.command("check-section")
@click.argument("section", type=click.Choice(sorted(SECTION_VALIDATORS)))
@click.argument("json_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--level", type=click.Choice(["A1", "A2", "B1", "B2", "C1"]), default="B1")
@click.option("--vocabulary", multiple=True, help="Lesson vocabulary word (repeatable)")
def check_section(section: str, json_file: str, level: str, vocabulary: tuple[str, ...]) -> None:
    """Validate a generated lesson section stored as JSON."""
    content = json.loads(Path(json_file).read_text(encoding="utf-8"))
    result = get_validator(section).validate(content, level, ValidationContext(vocabulary_words=list(vocabulary)))

    status = "[green]valid[/green]" if result.is_valid else "[red]invalid[/red]"
    console.print(f"{section}: {status} (score {result.score:.0f}/100)")
    for issue in result.issues + result.warnings:
        style = "red" if issue.severity.value == "error" else "yellow"
        console.print(f"  [{style}]{issue.type.value}[/{style}] {issue.message}")
    if not result.is_valid:
        sys.exit(1)


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
