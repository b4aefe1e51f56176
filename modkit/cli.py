"""modkit CLI: moderate text and inspect user risk from the terminal."""

import json
import logging
import sys

import click
import yaml
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from modkit import __version__

console = Console()


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def main(verbose: bool):
    """modkit: content moderation toolkit.

    Classify text for profanity, hate speech, bullying, spam and personal
    information, redact what can be redacted, and score user behavior from
    a data snapshot.
    """
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


def _verdict(result) -> str:
    if result.should_block:
        return "[red]BLOCK[/]"
    if result.should_flag:
        return "[yellow]FLAG[/]"
    if result.is_clean:
        return "[green]CLEAN[/]"
    return "[cyan]ALLOW[/]"


def _load_snapshot(path: str):
    from modkit.stores import SnapshotStore

    try:
        return SnapshotStore.from_file(path)
    except (OSError, ValueError, KeyError, TypeError, yaml.YAMLError) as e:
        console.print(f"[red]Failed to load snapshot:[/] {e}")
        sys.exit(1)


# ── Check ────────────────────────────────────────────────────────────


@main.command()
@click.argument("text")
@click.option("--strict", is_flag=True, help="Always warn the author")
@click.option("--allow-mild", is_flag=True, help="Ignore mild profanity")
@click.option("--no-context", is_flag=True, help="Disable allowed-context exemptions and word gates")
@click.option("--no-pii", is_flag=True, help="Skip personal information checks")
@click.option("--no-spam", is_flag=True, help="Skip spam checks")
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
def check(text: str, strict: bool, allow_mild: bool, no_context: bool, no_pii: bool, no_spam: bool, as_json: bool):
    """Moderate a single piece of TEXT."""
    from modkit.moderation import ModerationConfig, moderate_content

    config = ModerationConfig(
        strict_mode=strict,
        allow_mild_profanity=allow_mild,
        context_aware=not no_context,
        personal_info_check=not no_pii,
        spam_check=not no_spam,
    )
    result = moderate_content(text, config)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    console.print(Panel(
        f"{_verdict(result)}  severity {result.severity}, confidence {result.confidence}%",
        title="Moderation Result",
    ))

    flagged = result.flagged_categories
    if flagged:
        table = Table(title="Flagged Categories")
        table.add_column("Category", style="cyan")
        table.add_column("Severity", justify="right")
        table.add_column("Matches")
        for category in flagged:
            flag = result.flag(category)
            words = ", ".join(sorted({m.word for m in flag.matches})) or "; ".join(flag.notes)
            table.add_row(category.value, str(flag.severity), words[:60])
        console.print(table)

    for issue in result.issues:
        console.print(f"  [yellow]![/] {issue}")
    if result.should_warn:
        console.print("  [yellow]![/] Author should be warned")
    if not result.should_block and result.cleaned_content != text:
        console.print(f"\n[bold]Cleaned:[/] {result.cleaned_content}")


# ── Batch ────────────────────────────────────────────────────────────


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--batch-size", default=50, show_default=True, help="Items in flight per chunk")
@click.option("--json", "as_json", is_flag=True, help="Print results as JSON lines")
def batch(file: str, batch_size: int, as_json: bool):
    """Moderate every non-empty line of FILE."""
    from modkit.moderation import moderate_content_batch, summarize_batch

    with open(file, encoding="utf-8") as f:
        texts = [line.rstrip("\n") for line in f if line.strip()]

    results = moderate_content_batch(texts, batch_size=batch_size)

    if as_json:
        for result in results:
            click.echo(json.dumps(result.to_dict()))
        return

    table = Table(title=f"Batch Results ({len(results)} items)")
    table.add_column("#", style="dim", width=4)
    table.add_column("Verdict")
    table.add_column("Severity", justify="right")
    table.add_column("Categories")
    table.add_column("Text")

    for i, (text, result) in enumerate(zip(texts, results)):
        table.add_row(
            str(i + 1),
            _verdict(result),
            str(result.severity),
            ", ".join(c.value for c in result.flagged_categories),
            text[:50],
        )

    console.print(table)
    console.print(summarize_batch(results).summary())


# ── Redact ───────────────────────────────────────────────────────────


@main.command()
@click.argument("text")
def redact(text: str):
    """Replace phone numbers, emails, SSNs and card numbers in TEXT."""
    from modkit.moderation import filter_personal_info

    click.echo(filter_personal_info(text))


# ── Risk ─────────────────────────────────────────────────────────────


@main.command(name="analyze-user")
@click.argument("user_id")
@click.option("--data", "-d", "data_path", required=True, type=click.Path(exists=True, dir_okay=False),
              help="JSON or YAML snapshot of users, posts and reports")
@click.option("--json", "as_json", is_flag=True, help="Print the profile as JSON")
def analyze_user(user_id: str, data_path: str, as_json: bool):
    """Compute the behavioral risk profile of USER_ID."""
    from modkit.risk import analyze_user_behavior

    store = _load_snapshot(data_path)
    profile = analyze_user_behavior(user_id, store, store, store)

    if profile is None:
        console.print(f"[yellow]No profile for {user_id} (unknown user or data unavailable).[/]")
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(profile.to_dict(), indent=2))
        return

    console.print(Panel(profile.summary(), title="Risk Profile"))

    table = Table(title="Risk Factors")
    table.add_column("Factor", style="cyan")
    table.add_column("Score", justify="right", style="green")
    for name, value in profile.factors.to_dict().items():
        table.add_row(name, f"{value:.1f}")
    console.print(table)

    signals = profile.signals
    console.print(
        f"  duplicates {signals.duplicate_ratio:.0%}, spam {signals.spam_ratio:.0%}, "
        f"quality {signals.content_quality:.1f}/10"
        + (", [red]bot-like timing[/]" if signals.bot_like_timing else "")
    )
    for action in profile.recommendations:
        console.print(f"  [yellow]>[/] {action.value}")
    console.print(f"\nNext review: {profile.next_review_date:%Y-%m-%d}")


# ── Stats ────────────────────────────────────────────────────────────


@main.command()
@click.option("--data", "-d", "data_path", required=True, type=click.Path(exists=True, dir_okay=False),
              help="JSON or YAML snapshot of users, posts and reports")
@click.option("--json", "as_json", is_flag=True, help="Print the snapshot as JSON")
def stats(data_path: str, as_json: bool):
    """Show moderation dashboard statistics."""
    from modkit.errors import DataFetchError
    from modkit.stats import get_moderation_stats

    store = _load_snapshot(data_path)
    try:
        snapshot = get_moderation_stats(store, store, store)
    except DataFetchError as e:
        console.print(f"[red]Stats unavailable:[/] {e}")
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(snapshot.to_dict(), indent=2))
        return

    table = Table(title="Moderation Stats")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Pending reports", str(snapshot.pending_reports))
    table.add_row("Reports today", str(snapshot.reports_today))
    table.add_row("Reports this week", str(snapshot.reports_this_week))
    table.add_row("Reports this month", str(snapshot.reports_this_month))
    table.add_row("Weekly trend", f"{snapshot.trend_pct:+.1f}%")
    table.add_row("Flagged posts", str(snapshot.flagged_posts))
    table.add_row("Approved posts", str(snapshot.approved_posts))
    table.add_row("Banned users", str(snapshot.banned_users))
    table.add_row("Warned users", str(snapshot.warned_users))
    table.add_row("High-risk users", str(snapshot.high_risk_users))
    table.add_row("Moderation load", str(snapshot.moderation_load))
    console.print(table)

    console.print(f"Daily reports (oldest first): {' '.join(map(str, snapshot.daily_reports))}")
    console.print(Panel(snapshot.risk_level.value, title="Overall Risk"))
    for alert in snapshot.alerts:
        color = "red" if alert.type == "error" else "yellow"
        console.print(f"  [{color}]![/] [{alert.priority}] {alert.message}")


# ── Patterns ─────────────────────────────────────────────────────────


@main.command()
def patterns():
    """Show how many rules are loaded and where the config came from."""
    from modkit.moderation.moderator import default_library

    library = default_library()

    table = Table(title=f"Pattern Library ({library.source})")
    table.add_column("Table", style="cyan")
    table.add_column("Rules", justify="right", style="green")
    for name, count in library.counts().items():
        table.add_row(name, str(count))
    console.print(table)

    for name in library.skipped:
        console.print(f"  [yellow]![/] Skipped invalid rule: {name}")


if __name__ == "__main__":
    main()
