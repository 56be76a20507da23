"""
Tickminder CLI

Command-line interface for managing reminders against a simulated host.
Every command loads the session file, acts on it, and writes it back.
"""

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from tickminder import __version__
from tickminder.config import TickminderConfig, get_config
from tickminder.errors import TickminderError
from tickminder.host import NotificationClass
from tickminder.scheduler.reminder import Reminder, create_quest_reminder, create_time_reminder
from tickminder.scheduler.severity import Severity
from tickminder.scheduler.triggers import QuestDeadlineTrigger, TimeTrigger
from tickminder.scheduler.views import ReminderStatistics, SortMode, filtered_reminders, is_urgent
from tickminder.simulation import Notification, RealtimeDriver, SimulatedHost, SimulationState, load_session, save_session
from tickminder.ticks import TICKS_PER_HOUR, TimeUnit, format_duration, format_tick_date

# Setup rich console
console = Console()
app = typer.Typer(
    name="tickminder",
    help="Tickminder - reminders for a tick-driven simulation",
    add_completion=False,
)

SEVERITY_STYLES = {
    Severity.LOW: "dim",
    Severity.MEDIUM: "white",
    Severity.HIGH: "yellow",
    Severity.CRITICAL: "red",
    Severity.URGENT: "bold red",
}

NOTIFICATION_STYLES = {
    NotificationClass.POSITIVE: "green",
    NotificationClass.NEUTRAL: "blue",
    NotificationClass.NEGATIVE: "yellow",
    NotificationClass.THREAT_SMALL: "red",
    NotificationClass.THREAT_BIG: "bold red",
}

SessionOption = typer.Option(None, "--session", "-s", help="Session file (defaults to persistence.save_path)")


def setup_logging(verbose: bool = False) -> None:
    """Configure logging with rich output."""
    level = logging.DEBUG if verbose else get_config().logging.effective_level
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_time=False, show_path=False)],
    )


def _session_path(session: Optional[Path]) -> Path:
    return session if session is not None else get_config().persistence.save_path


def _print_notification(notification: Notification) -> None:
    style = NOTIFICATION_STYLES.get(notification.notification_class, "white")
    body = notification.text or "[dim](no text)[/dim]"
    console.print(Panel.fit(
        f"{body}\n\n[dim]{format_tick_date(notification.tick)}[/dim]",
        title=f"[{style}]{notification.title}[/{style}]",
        border_style=style,
    ))


def _load_host(session: Optional[Path]) -> SimulatedHost:
    config = get_config()
    path = _session_path(session)
    try:
        state = load_session(path, backup_corrupt=config.persistence.backup_corrupt)
    except TickminderError as e:
        console.print(f"[red]{e}[/red]")
        console.print("[dim]Create one with: tickminder new[/dim]")
        raise typer.Exit(1)

    return SimulatedHost.from_state(
        state,
        processing_interval=config.scheduler.processing_interval,
        auto_processing=config.scheduler.enable_auto_processing,
        on_notify=_print_notification,
    )


def _save_host(host: SimulatedHost, session: Optional[Path]) -> None:
    try:
        save_session(_session_path(session), host)
    except TickminderError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)


def _parse_severity(value: str) -> Severity:
    try:
        return Severity.parse(value)
    except ValueError:
        names = ", ".join(s.name.lower() for s in Severity)
        console.print(f"[red]Unknown severity '{value}'. Choose from: {names}[/red]")
        raise typer.Exit(1)


def _trigger_cell(reminder: Reminder, host: SimulatedHost) -> str:
    trigger = reminder.trigger
    if trigger is None:
        return "[dim]none[/dim]"
    if isinstance(trigger, QuestDeadlineTrigger) and reminder.is_active:
        return f"{trigger.description}\n[dim]{trigger.detailed_description(host.ctx)}[/dim]"
    return trigger.description


@app.callback()
def callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose output"),
):
    """Tickminder CLI - reminders for a tick-driven simulation."""
    try:
        get_config()
    except TickminderError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    setup_logging(verbose)


@app.command()
def version():
    """Show Tickminder version."""
    console.print(f"[bold blue]Tickminder[/bold blue] v{__version__}")


@app.command()
def init(
    path: Path = typer.Argument(Path("."), help="Path to initialize project"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite existing config"),
):
    """Write a default config.yaml."""
    config_path = path / "config.yaml"

    if config_path.exists() and not force:
        console.print("[yellow]Config already exists. Use --force to overwrite.[/yellow]")
        raise typer.Exit(1)

    config = TickminderConfig()
    config.to_yaml(config_path)

    console.print(Panel.fit(
        "[green]Tickminder initialized![/green]\n\n"
        f"Config: {config_path}\n"
        f"Session: {config.persistence.save_path}",
        title="Success",
    ))


@app.command()
def new(
    session: Optional[Path] = SessionOption,
    start_tick: Optional[int] = typer.Option(None, "--start-tick", help="Initial host tick"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing session"),
):
    """Start an empty simulation session."""
    path = _session_path(session)
    if path.exists() and not force:
        console.print(f"[yellow]Session {path} already exists. Use --force to overwrite.[/yellow]")
        raise typer.Exit(1)

    tick = start_tick if start_tick is not None else get_config().simulation.start_tick
    host = SimulatedHost.from_state(SimulationState(tick=tick))
    _save_host(host, session)
    console.print(f"[green]New session at {path}[/green] ({format_tick_date(host.now)})")


@app.command()
def add(
    title: str = typer.Argument(..., help="Reminder title"),
    in_: Optional[int] = typer.Option(None, "--in", help="Fire this many units from now"),
    unit: TimeUnit = typer.Option(TimeUnit.DAYS, "--unit", "-u", help="Unit for --in"),
    at: Optional[int] = typer.Option(None, "--at", help="Fire at this absolute tick"),
    description: str = typer.Option("", "--description", "-d", help="Letter text"),
    severity: str = typer.Option("medium", "--severity", help="low, medium, high, critical or urgent"),
    repeat: bool = typer.Option(False, "--repeat", "-r", help="Re-arm after firing"),
    pause: bool = typer.Option(False, "--pause", "-p", help="Pause the host when it fires"),
    session: Optional[Path] = SessionOption,
):
    """Add a time reminder."""
    if (in_ is None) == (at is None):
        console.print("[red]Give exactly one of --in or --at[/red]")
        raise typer.Exit(1)

    host = _load_host(session)
    if in_ is not None:
        trigger = TimeTrigger.relative(in_, unit, now=host.now)
    else:
        trigger = TimeTrigger.at_tick(at, now=host.now)

    reminder = create_time_reminder(
        title,
        trigger,
        description=description,
        severity=_parse_severity(severity),
        repeating=repeat,
        pause_on_fire=pause,
    )
    reminder_id = host.registry.add_reminder(reminder)
    if reminder_id is None:
        console.print("[red]Reminder rejected: title must not be empty[/red]")
        raise typer.Exit(1)

    _save_host(host, session)
    console.print(
        f"[green]Added reminder #{reminder_id}[/green] {title} "
        f"[dim]({format_tick_date(trigger.target_tick)}, in {trigger.time_remaining_description(host.now)})[/dim]"
    )


@app.command("add-quest")
def add_quest(
    name: str = typer.Argument(..., help="Quest name"),
    expires_in_hours: int = typer.Option(72, "--expires-in", "-e", help="Hours until the offer expires"),
    session: Optional[Path] = SessionOption,
):
    """Offer a quest in the simulated host."""
    host = _load_host(session)
    quest = host.offer_quest(name, expires_in_hours * TICKS_PER_HOUR)
    _save_host(host, session)
    console.print(f"[green]Quest #{quest.id}[/green] {name} expires {format_tick_date(quest.expiry_tick)}")


@app.command()
def quests(session: Optional[Path] = SessionOption):
    """List quests in the simulated host."""
    host = _load_host(session)

    table = Table(title="Quests")
    table.add_column("ID", style="cyan", justify="right")
    table.add_column("Name")
    table.add_column("State")
    table.add_column("Expires", style="dim")

    for quest in host.quests.quests:
        remaining = format_duration(quest.expiry_tick - host.now) if quest.awaiting_decision else ""
        table.add_row(str(quest.id), quest.name, quest.state.value, f"{format_tick_date(quest.expiry_tick)} {remaining}")

    console.print(table)


@app.command("remind-quest")
def remind_quest(
    quest_id: int = typer.Argument(..., help="Quest to watch"),
    hours_before: int = typer.Option(24, "--hours-before", help="Lead time before expiry"),
    severity: str = typer.Option("high", "--severity", help="low, medium, high, critical or urgent"),
    pause: bool = typer.Option(False, "--pause", "-p", help="Pause the host when it fires"),
    session: Optional[Path] = SessionOption,
):
    """Add a reminder that fires before a quest offer expires."""
    host = _load_host(session)
    quest = host.quests.find_quest(quest_id)
    if quest is None:
        console.print(f"[red]Quest {quest_id} not found[/red]")
        raise typer.Exit(1)
    if not quest.awaiting_decision:
        console.print(f"[yellow]Quest {quest_id} is {quest.state.value}; nothing to remind about[/yellow]")
        raise typer.Exit(1)

    reminder = create_quest_reminder(
        quest,
        lead_hours=hours_before,
        ctx=host.ctx,
        severity=_parse_severity(severity),
        pause_on_fire=pause,
    )
    reminder_id = host.registry.add_reminder(reminder)
    _save_host(host, session)
    console.print(
        f"[green]Added reminder #{reminder_id}[/green] {reminder.title} "
        f"[dim]({reminder.trigger.detailed_description(host.ctx)})[/dim]"
    )


@app.command("list")
def list_reminders(
    sort: SortMode = typer.Option(SortMode.TRIGGER_TIME, "--sort", help="Sort order"),
    active_only: bool = typer.Option(False, "--active", "-a", help="Hide completed reminders"),
    session: Optional[Path] = SessionOption,
):
    """List reminders."""
    host = _load_host(session)
    window = get_config().scheduler.urgent_window_ticks
    reminders = filtered_reminders(host.registry.all_reminders, show_completed=not active_only, mode=sort)

    table = Table(title=f"Reminders - {format_tick_date(host.now)}")
    table.add_column("ID", style="cyan", justify="right")
    table.add_column("Title")
    table.add_column("Severity")
    table.add_column("Trigger")
    table.add_column("Remaining", justify="right")
    table.add_column("Status")

    for reminder in reminders:
        style = SEVERITY_STYLES.get(reminder.severity, "white")
        remaining = reminder.trigger.time_remaining_description(host.now) if reminder.trigger else ""
        status = reminder.status_label
        if is_urgent(reminder, host.now, window):
            status = "[bold red]Urgent[/bold red]"
        elif not reminder.is_active:
            status = f"[dim]{status}[/dim]"
        title = reminder.title + (" [dim](repeats)[/dim]" if reminder.is_repeating else "")
        table.add_row(
            str(reminder.id),
            title,
            f"[{style}]{reminder.severity.label}[/{style}]",
            _trigger_cell(reminder, host),
            remaining if reminder.is_active else "",
            status,
        )

    console.print(table)
    console.print(f"[dim]{ReminderStatistics.collect(host.registry, host.now, window).summary()}[/dim]")


@app.command()
def stats(session: Optional[Path] = SessionOption):
    """Show reminder statistics."""
    host = _load_host(session)
    statistics = ReminderStatistics.collect(host.registry, host.now, get_config().scheduler.urgent_window_ticks)

    table = Table(title="Reminder Statistics")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Total", str(statistics.total_count))
    table.add_row("Active", str(statistics.active_count))
    table.add_row("Completed", str(statistics.completed_count))
    table.add_row("Urgent", str(statistics.urgent_count))
    for severity, count in statistics.severity_counts.items():
        table.add_row(f"  {severity.label}", str(count))
    table.add_row("Host time", format_tick_date(host.now))

    console.print(table)


@app.command()
def advance(
    amount: int = typer.Argument(1, help="How far to advance"),
    unit: TimeUnit = typer.Option(TimeUnit.HOURS, "--unit", "-u", help="Unit of amount"),
    ignore_pause: bool = typer.Option(False, "--ignore-pause", help="Keep going after a pause request"),
    session: Optional[Path] = SessionOption,
):
    """Advance the simulated host, firing reminders that come due."""
    if amount < 0:
        console.print("[red]Cannot advance backwards[/red]")
        raise typer.Exit(1)

    host = _load_host(session)
    result = host.advance(unit.to_ticks(amount), stop_on_pause=not ignore_pause)
    _save_host(host, session)

    for quest_id in result.expired_quests:
        quest = host.quests.find_quest(quest_id)
        console.print(f"[yellow]Quest expired:[/yellow] {quest.name if quest else quest_id}")

    summary = f"Advanced {format_duration(result.ticks_advanced)} to {format_tick_date(host.now)}"
    summary += f", {len(result.fired)} reminder(s) fired"
    if result.paused:
        summary += " [bold yellow](paused)[/bold yellow]"
    console.print(summary)


@app.command()
def run(
    seconds: Optional[float] = typer.Option(None, "--seconds", "-t", help="Stop after this many seconds"),
    speed: Optional[int] = typer.Option(None, "--speed", help="Ticks per real second"),
    session: Optional[Path] = SessionOption,
):
    """Run the simulated host in real time until interrupted or paused."""
    host = _load_host(session)
    ticks_per_second = speed if speed is not None else get_config().simulation.ticks_per_second
    driver = RealtimeDriver(host, ticks_per_second=ticks_per_second)

    console.print(Panel.fit(
        f"[bold blue]Running at {ticks_per_second} ticks/s[/bold blue]\n\n"
        f"Start: {format_tick_date(host.now)}\n"
        "Press Ctrl+C to stop.",
        title="Realtime",
    ))

    try:
        driver.run(duration_seconds=seconds)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        driver.stop()
    finally:
        _save_host(host, session)

    if driver.paused:
        console.print("[bold yellow]Paused by a reminder[/bold yellow]")
    console.print(f"Stopped at {format_tick_date(host.now)}")


@app.command()
def remove(
    reminder_id: int = typer.Argument(..., help="Reminder to remove"),
    session: Optional[Path] = SessionOption,
):
    """Remove a reminder."""
    host = _load_host(session)
    if not host.registry.remove_reminder(reminder_id):
        console.print(f"[red]Reminder {reminder_id} not found[/red]")
        raise typer.Exit(1)
    _save_host(host, session)
    console.print(f"[green]Removed reminder #{reminder_id}[/green]")


@app.command("clear-completed")
def clear_completed(session: Optional[Path] = SessionOption):
    """Delete all completed reminders."""
    host = _load_host(session)
    count = host.registry.clear_completed_reminders()
    _save_host(host, session)
    console.print(f"[green]Cleared {count} completed reminder(s)[/green]")


@app.command("accept-quest")
def accept_quest(
    quest_id: int = typer.Argument(..., help="Quest to accept"),
    session: Optional[Path] = SessionOption,
):
    """Accept a quest; its deadline reminders are completed."""
    host = _load_host(session)
    quest = host.quests.find_quest(quest_id)
    if quest is None:
        console.print(f"[red]Quest {quest_id} not found[/red]")
        raise typer.Exit(1)

    completed = host.accept_quest(quest_id)
    _save_host(host, session)
    console.print(f"[green]Accepted quest #{quest_id}[/green] {quest.name}, completed {len(completed)} reminder(s)")


def main():
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
