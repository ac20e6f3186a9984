"""Command-line interface for the performance insights engine."""

import json
import logging
from datetime import date, datetime

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.panel import Panel
from rich import box
from rich.markup import escape
from sqlalchemy.exc import SQLAlchemyError

from .config import config
from .importers import DataSourceError, load_energy, load_events, load_tasks
from .analysis import AnalysisSession
from .analysis.pattern_matcher import CANONICAL_PATTERNS, MATCH_MODES

console = Console()


def _strength_style(strength: str) -> str:
    if strength == 'very_strong':
        return "[bold green]Very strong[/bold green]"
    elif strength == 'strong':
        return "[green]Strong[/green]"
    elif strength == 'moderate':
        return "[yellow]Moderate[/yellow]"
    return "[dim]Weak[/dim]"


def _label(metric: str) -> str:
    return metric.replace('_', ' ')


def _parse_end_date(value: str) -> date:
    if not value:
        return date.today()
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise click.BadParameter(f"Expected YYYY-MM-DD, got '{value}'", param_hint="--end-date")


@click.group()
@click.option("--log-level", default=None, help="Logging level (defaults to LOG_LEVEL)")
def cli(log_level):
    """Performance insights: correlations, patterns and optimization plans from work activity."""
    logging.basicConfig(
        level=(log_level or config.LOG_LEVEL).upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


@cli.command()
@click.option("--events", "events_path", help="Path to action events (.json or .csv)")
@click.option("--tasks", "tasks_path", help="Path to task records (.json or .csv)")
@click.option("--energy", "energy_path", help="Path to daily energy estimates (.json or .csv)")
@click.option("--database-url", help="Read events, tasks and energy from this database instead of files")
@click.option("--user-id", default="default", help="User ID when reading from a database")
@click.option("--end-date", help="Last day of the analysis window (YYYY-MM-DD), defaults to today")
@click.option("--days", default=None, type=click.IntRange(1, 365), help="Analysis window in days")
@click.option("--infer-energy", is_flag=True, help="Estimate energy from events when none is supplied")
@click.option("--match-mode", type=click.Choice(MATCH_MODES), default=None, help="Pattern matching mode")
@click.option("--output", help="Export the full report to a JSON file")
def analyze(events_path, tasks_path, energy_path, database_url, user_id, end_date, days,
            infer_energy, match_mode, output):
    """Run the full performance analysis over one window."""
    end_day = _parse_end_date(end_date)
    window_days = days or config.ANALYSIS_WINDOW_DAYS

    console.print(Panel.fit("📊 Performance Insights Analysis", style="bold blue"))

    session = AnalysisSession(window_days=window_days, infer_energy=infer_energy, match_mode=match_mode)
    try:
        if database_url:
            from .db import Database, DatabaseSource

            db = Database(database_url)
            try:
                window = session.normalizer.window(end_day)
                inputs = DatabaseSource(db, user_id=user_id).fetch_inputs(window[0], window[-1])
            finally:
                db.close()
            events, tasks, energy = inputs['events'], inputs['tasks'], inputs['energy']
        else:
            if not events_path or not tasks_path:
                raise click.UsageError("Provide --events and --tasks, or --database-url")
            events = load_events(events_path)
            tasks = load_tasks(tasks_path)
            energy = load_energy(energy_path) if energy_path else None
    except DataSourceError as e:
        console.print(f"[red]❌ {e}[/red]")
        raise SystemExit(1)
    except SQLAlchemyError as e:
        console.print(f"[red]❌ Database error: {escape(str(e))}[/red]")
        raise SystemExit(1)

    report = session.run(events, tasks, end_day, energy=energy)
    result = report.to_dict()

    period = result['analysis_period']
    console.print(f"\n[green]✅ Analysis complete![/green]")
    console.print(f"Period: {period['start_date']} to {period['end_date']} ({period['days']} days)")

    normalization = result['normalization']
    if normalization:
        dropped = normalization['dropped_events'] + normalization['dropped_tasks'] + normalization['dropped_energy']
        if dropped:
            console.print(f"[yellow]⚠️  Dropped {dropped} malformed input records[/yellow]")
        if normalization['energy_source'] == 'none':
            console.print("[dim]No energy estimate supplied; energy-based analyses were skipped[/dim]")

    _print_correlations(report)
    _print_patterns(report)
    _print_segments(report)
    _print_causal_links(report)
    _print_plan(report)

    if output:
        with open(output, 'w') as f:
            json.dump(result, f, indent=2)
        console.print(f"\n[green]✅ Report exported to {output}[/green]")


def _print_correlations(report):
    correlations = report.correlations[:10]
    if not correlations:
        console.print("\n[dim]Not enough data for correlations[/dim]")
        return

    console.print(f"\n[bold]🔥 Top Correlations:[/bold]")
    table = Table(show_header=True, header_style="bold magenta", box=box.ROUNDED)
    table.add_column("Relationship", width=45)
    table.add_column("r", justify="right", style="yellow")
    table.add_column("Strength", justify="center")
    table.add_column("Confidence", justify="right")
    table.add_column("n", justify="right", style="dim")

    for corr in correlations:
        table.add_row(
            f"{_label(corr.factor1)} ↔ {_label(corr.factor2)}",
            f"{corr.coefficient:+.3f}",
            _strength_style(corr.strength),
            f"{corr.heuristic_confidence:.0f}",
            str(corr.sample_size),
        )
    console.print(table)


def _print_patterns(report):
    if not report.patterns:
        return

    console.print(f"\n[bold]🔁 Recurring Patterns:[/bold]")
    table = Table(show_header=True, header_style="bold magenta", box=box.ROUNDED)
    table.add_column("Pattern", width=40)
    table.add_column("Frequency", justify="right")
    table.add_column("Accuracy", justify="right", style="green")
    table.add_column("Conditions", width=40)

    for pattern in report.patterns:
        table.add_row(
            pattern.name,
            f"{pattern.frequency * 100:.1f}%",
            f"{pattern.predictive_accuracy:.0f}",
            pattern.definition.describe(),
        )
    console.print(table)


def _print_segments(report):
    if not report.segments:
        return

    console.print(f"\n[bold]🧩 Segments:[/bold]")
    for segment in report.segments:
        traits = ", ".join(segment.characteristics) or "no distinctive traits"
        console.print(f"  • {segment.name}: {segment.size} days ({traits})")


def _print_causal_links(report):
    if not report.causal_links:
        return

    console.print(f"\n[bold]🎯 Leading Indicators:[/bold]")
    table = Table(show_header=True, header_style="bold magenta", box=box.ROUNDED)
    table.add_column("Cause → Effect", width=40)
    table.add_column("Lag", justify="center", style="yellow")
    table.add_column("Strength", justify="right")
    table.add_column("Confidence", justify="right")

    for link in report.causal_links:
        table.add_row(
            f"{_label(link.cause)} → {_label(link.effect)}",
            f"{link.lag}d",
            f"{link.strength:.0f}",
            f"{link.heuristic_confidence:.0f}",
        )
    console.print(table)


def _print_plan(report):
    insights = report.key_insights
    if insights.surprising_findings or insights.actionable_takeaways:
        console.print(f"\n[bold]💡 Key Insights:[/bold]")
        for finding in insights.surprising_findings:
            console.print(f"  • {finding}")
        for i, takeaway in enumerate(insights.actionable_takeaways, 1):
            console.print(f"  {i}. {takeaway}")

    plan = report.plan
    sections = (
        ("⚡ Quick Wins", plan.quick_wins),
        ("🧪 Experiments to Try", plan.experiments_to_try),
        ("🏗️  Long-term Strategy", plan.long_term_strategy),
    )
    for title, recommendations in sections:
        if not recommendations:
            continue
        console.print(f"\n[bold]{title}:[/bold]")
        for rec in recommendations:
            console.print(
                f"  • {rec.action} [dim](+{rec.expected_improvement:.0f}%, "
                f"confidence {rec.confidence:.0f}, {rec.difficulty.value})[/dim]"
            )


@cli.command()
def patterns():
    """List the built-in pattern definitions."""
    table = Table(title="Built-in Patterns", show_header=True, header_style="bold magenta", box=box.ROUNDED)
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Conditions")
    table.add_column("Expected Outcomes")

    for pattern in CANONICAL_PATTERNS:
        outcomes = ", ".join(
            f"{_label(o.metric)} ≈ {o.expected_value:g} ({o.impact_level})" for o in pattern.outcomes
        )
        table.add_row(pattern.pattern_id, pattern.name, pattern.describe(), outcomes)

    console.print(table)


def main():
    """Main entry point."""
    try:
        config.validate()
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user.[/yellow]")


if __name__ == "__main__":
    main()
