"""
Command-line interface for pdf2docxauto.
"""

import sys
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from pdf2docxauto import __version__
from pdf2docxauto.backends.pypdf_backend import PypdfTextExtractor
from pdf2docxauto.capabilities import probe_capabilities
from pdf2docxauto.classifier import PdfClassifier
from pdf2docxauto.config import get_settings
from pdf2docxauto.orchestrator import ConversionOrchestrator
from pdf2docxauto.types import ConversionMode
from pdf2docxauto.utils import configure_logging

console = Console()

MODE_CHOICES = [mode.value for mode in ConversionMode]


def _yes_no(flag):
    return "[green]available[/green]" if flag else "[red]not available[/red]"


@click.group()
@click.version_option(version=__version__)
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
def cli(verbose):
    """
    PDF to DOCX converter with automatic OCR / LibreOffice selection.
    """
    settings = get_settings()
    configure_logging("DEBUG" if verbose else settings.log_level)


@cli.command(name="convert")
@click.argument('input_pdf', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    '--output', '-o',
    default=None,
    help='Destination DOCX path (defaults to the input name with .docx)',
    type=click.Path(dir_okay=False, path_type=Path)
)
@click.option(
    '--mode', '-m',
    default=None,
    help='Conversion mode (defaults to the configured mode)',
    type=click.Choice(MODE_CHOICES, case_sensitive=False)
)
def convert(input_pdf, output, mode):
    """
    Convert a PDF file to DOCX.

    Examples:

        pdf2docx-auto convert scan.pdf

        pdf2docx-auto convert report.pdf -o out/report.docx --mode advanced
    """
    settings = get_settings()
    destination = output or input_pdf.with_suffix(".docx")

    orchestrator = ConversionOrchestrator.from_settings(settings)
    with console.status("[bold cyan]Converting...[/bold cyan]"):
        result = orchestrator.convert(input_pdf, destination, mode)

    table = Table(title="Conversion Result", show_header=False)
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Method", result.method.value)
    table.add_row("Duration", f"{result.duration:.2f}s")
    if result.page_count is not None:
        table.add_row("Pages", str(result.page_count))
    if result.total_characters is not None:
        table.add_row("Characters", str(result.total_characters))
    if result.analysis is not None:
        table.add_row("Scanned", "Yes" if result.analysis.is_scanned else "No")

    console.print()
    console.print(table)

    if not result.success:
        console.print(f"\n[bold red]✗ Error:[/bold red] {result.error}")
        sys.exit(1)

    console.print(f"\n[bold green]✓ Saved to {result.output_path}[/bold green]\n")


@cli.command(name="analyze")
@click.argument('input_pdf', type=click.Path(exists=True, dir_okay=False, path_type=Path))
def analyze(input_pdf):
    """
    Report whether a PDF looks digital or scanned.

    Example:

        pdf2docx-auto analyze input.pdf
    """
    settings = get_settings()
    classifier = PdfClassifier(
        PypdfTextExtractor(password=settings.pdf_password),
        min_text_per_page=settings.min_text_per_page,
        expected_chars_per_page=settings.expected_chars_per_page,
        text_threshold=settings.text_threshold,
    )
    analysis = classifier.classify(input_pdf)

    table = Table(title=f"PDF Analysis: {input_pdf.name}")
    table.add_column("Property", style="cyan", no_wrap=True)
    table.add_column("Value", style="green")
    table.add_row("Pages", str(analysis.page_count))
    table.add_row("Characters", str(analysis.text_length))
    table.add_row("Text density", f"{analysis.text_density_per_page:.0f} chars/page")
    table.add_row("Text percentage", f"{analysis.text_percentage:.0f}%")
    table.add_row("Scanned", "Yes" if analysis.is_scanned else "No")
    if analysis.error:
        table.add_row("Error", analysis.error)

    console.print()
    console.print(table)
    console.print()


@cli.command(name="status")
def status():
    """
    Show which external converters are available.
    """
    settings = get_settings()
    capabilities = probe_capabilities(settings)

    table = Table(title="Converter Status")
    table.add_column("Component", style="cyan")
    table.add_column("Status")
    table.add_column("Location", style="dim")
    table.add_row("Basic converter", _yes_no(True), "")
    table.add_row(
        f"Whole-document ({capabilities.whole_document_engine})",
        _yes_no(capabilities.whole_document_converter_available),
        capabilities.libreoffice_path or "",
    )
    table.add_row("Tesseract OCR", _yes_no(capabilities.ocr_engine_available), capabilities.tesseract_path or "")

    console.print()
    console.print(table)
    console.print(f"[dim]Default mode: {settings.conversion_mode.value}[/dim]\n")


def main():
    cli()


if __name__ == "__main__":  # pragma: no cover
    main()
