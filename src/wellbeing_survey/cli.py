"""Command-line interface for the well-being survey analytics tool."""

import asyncio
import json
import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from models import SchoolMetrics, SchoolReport
from scoring import SurveyError, analyze_file
from orchestration import ReportConfig, run_reports

app = typer.Typer(
    name="wellbeing-survey",
    help="Student Well-Being Analytics - survey scoring and school reports",
    add_completion=False,
)

console = Console()


def _configure_logging(verbose: bool):
    from wellbeing_survey.config import AppConfig

    level = "DEBUG" if verbose else AppConfig().log_level
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def _metrics_table(schools: List[SchoolMetrics]) -> Table:
    table = Table(title="School Well-Being Metrics")
    table.add_column("School", style="bold")
    table.add_column("Students", justify="right")
    table.add_column("Avg Score", justify="right")
    table.add_column("Balanced %", justify="right", style="green")
    table.add_column("Mild %", justify="right")
    table.add_column("Moderate %", justify="right", style="yellow")
    table.add_column("High %", justify="right", style="orange3")
    table.add_column("Severe %", justify="right", style="red")
    table.add_column("Anxiety %", justify="right")
    table.add_column("Pressure %", justify="right")
    table.add_column("Support %", justify="right")

    for school in schools:
        table.add_row(
            school.school_name,
            str(school.total_students),
            f"{school.avg_score:.1f}",
            f"{school.pct_balanced:.1f}",
            f"{school.pct_mild:.1f}",
            f"{school.pct_mod:.1f}",
            f"{school.pct_high:.1f}",
            f"{school.pct_severe:.1f}",
            f"{school.pct_anxiety:.1f}",
            f"{school.pct_pressure:.1f}",
            f"{school.pct_support:.1f}",
        )
    return table


def _insights_panel(report: SchoolReport) -> Panel:
    if report.error:
        return Panel(f"[red]AI Error: {report.error}[/red]", title=report.school_name)

    insights = report.ai_insights
    return Panel(
        f"[bold]Executive Summary[/bold]\n{insights.executive_summary}\n\n"
        f"[bold]Strengths[/bold]\n{insights.strengths}\n\n"
        f"[bold]Recommended Interventions[/bold]\n{insights.intervention}",
        title=report.school_name
    )


@app.command()
def version():
    """Show version information."""
    from wellbeing_survey import __version__

    console.print(Panel.fit(
        f"[bold blue]Student Well-Being Analytics[/bold blue]\n"
        f"Version: [green]{__version__}[/green]",
        title="Version Info"
    ))


@app.command()
def analyze(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Survey spreadsheet (.xlsx, .xls, .csv)"),
    insights: bool = typer.Option(False, "--insights", "-i", help="Generate AI narratives for each school"),
    as_json: bool = typer.Option(False, "--json", help="Print reports as JSON"),
    max_concurrent: Optional[int] = typer.Option(None, "--max-concurrent", min=1, max=50, help="Concurrent narrative requests (1-50)"),
    templates_dir: Optional[Path] = typer.Option(None, "--templates-dir", exists=True, file_okay=False, help="Directory of prompt template overrides"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Score a survey file and report per-school stress metrics."""
    _configure_logging(verbose)

    try:
        schools = analyze_file(file)
    except SurveyError as e:
        console.print(f"[red]❌ Error parsing file: {e}[/red]")
        raise typer.Exit(code=1)

    if not schools:
        console.print("[red]No data found: could not find any school data in the file.[/red]")
        raise typer.Exit(code=1)

    fetcher = None
    concurrency = 3 if max_concurrent is None else max_concurrent
    if insights:
        from wellbeing_survey.config import LLMConfig
        from agents import create_insights_agent
        from utils.llm import create_llm_client

        try:
            llm_config = LLMConfig()
            client = create_llm_client(config=llm_config)
        except ValueError as e:
            console.print(f"[red]❌ {e}[/red]")
            raise typer.Exit(code=1)
        if max_concurrent is None:
            concurrency = llm_config.max_concurrent_requests
        fetcher = create_insights_agent(
            client,
            temperature=llm_config.temperature,
            max_tokens=llm_config.max_output_tokens,
            templates_dir=templates_dir
        )

    config = ReportConfig(fetch_insights=insights, max_concurrent_schools=concurrency)
    run = asyncio.run(run_reports(schools, fetcher, config))

    if as_json:
        typer.echo(json.dumps([report.model_dump(mode="json") for report in run.reports], indent=2))
        return

    console.print(_metrics_table(schools))
    console.print(
        f"[green]✅ Loaded {run.total_schools} school(s) with {run.total_students} students.[/green]"
    )

    if insights:
        for report in run.reports:
            console.print(_insights_panel(report))
        if run.insights_failed:
            raise typer.Exit(code=2)


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
