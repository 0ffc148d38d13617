"""CLI commands for the Bottle Plan feeding tracker."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence

import typer
from pydantic import ValidationError

from .config import (
    DEFAULT_CONFIG_NAME,
    copy_config_template,
    load_config,
    resolve_logs_root,
    resolve_storage_config,
    write_config,
)
from .errors import BottlePlanError
from .models import LLMClient, LLMClientError, OfflineLLMClient, ResponsesClient
from .planning.orchestrator import DEFAULT_TIMEOUT, PlanOrchestrator
from .planning.schema import ActualFeeding, FeedingSettings, PlannedEntry
from .service import HISTORY_SIZE, FeedingService
from .storage.store import FeedingStore
from .tools.plan_logs import latest_plan_log

APP_HELP = "Bottle Plan: track baby feedings and generate the next ten."

app = typer.Typer(help=APP_HELP)

LOGGER = logging.getLogger(__name__)

_OFFLINE_MODELS = {"offline", "none"}


def _config_option() -> Any:
    return typer.Option(
        DEFAULT_CONFIG_NAME,
        "--config",
        "-c",
        help="Path to the Bottle Plan configuration file.",
    )


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Track feedings and plan the next ones."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


def _build_client(config: Dict[str, Any], *, use_remote: Optional[bool]) -> LLMClient:
    """Select either the Responses API client or the offline planner."""
    models_cfg = config.get("models") or {}
    model_name = str(models_cfg.get("default") or "offline")
    remote = bool(models_cfg.get("use_remote")) if use_remote is None else use_remote

    if not remote or model_name.lower() in _OFFLINE_MODELS:
        LOGGER.debug("Using offline planner; plans come from the fallback scheduler.")
        return OfflineLLMClient()

    client_kwargs: Dict[str, Any] = {}
    timeout_value = models_cfg.get("timeout")
    if isinstance(timeout_value, (int, float)) and timeout_value > 0:
        client_kwargs["timeout"] = float(timeout_value)
    base_url_value = models_cfg.get("base_url")
    if isinstance(base_url_value, str) and base_url_value.strip():
        client_kwargs["base_url"] = base_url_value.strip()
    api_key_value = models_cfg.get("api_key")
    if isinstance(api_key_value, str) and api_key_value.strip():
        client_kwargs["api_key"] = api_key_value.strip()
    try:
        return ResponsesClient(model=model_name, **client_kwargs)
    except ValueError as error:
        if "api key" in str(error).lower():
            typer.echo(
                "No API key given. Set OPENAI_API_KEY or BOTTLEPLAN_API_KEY, "
                "or re-run with --no-use-remote to use the offline planner."
            )
        else:
            typer.echo(f"Failed to initialise model client: {error}")
        raise typer.Exit(code=1)
    except LLMClientError as error:
        typer.echo(f"Failed to initialise model client: {error}")
        raise typer.Exit(code=1)


@contextmanager
def _open_service(config: str, *, use_remote: Optional[bool] = False) -> Iterator[FeedingService]:
    config_path = Path(config)
    config_data = load_config(config_path)
    models_cfg = config_data.get("models") or {}
    planning_cfg = config_data.get("planning") or {}

    timeout = models_cfg.get("timeout")
    history_size = planning_cfg.get("history_size")
    client = _build_client(config_data, use_remote=use_remote)
    orchestrator = PlanOrchestrator(
        client,
        timeout=float(timeout) if isinstance(timeout, (int, float)) and timeout > 0 else DEFAULT_TIMEOUT,
        logs_root=resolve_logs_root(config_data, config_path),
    )
    try:
        with FeedingStore.from_config(resolve_storage_config(config_data, config_path)) as store:
            yield FeedingService(
                store,
                orchestrator,
                history_size=history_size if isinstance(history_size, int) and history_size >= 0 else HISTORY_SIZE,
            )
    except (BottlePlanError, ValidationError) as error:
        typer.echo(f"Error: {error}")
        raise typer.Exit(code=1) from error


def _unit(settings: Optional[FeedingSettings]) -> str:
    if settings is None:
        return ""
    return "ml" if settings.use_metric else "oz"


def _render_plan(entries: Sequence[PlannedEntry], settings: Optional[FeedingSettings]) -> None:
    if not entries:
        typer.echo("No feeding plan stored. Run 'bottleplan plan' to generate one.")
        return
    unit = _unit(settings)
    for entry in entries:
        flags = []
        if entry.is_locked:
            flags.append("locked")
        if entry.is_completed:
            flags.append("done")
        day = f"{entry.date} " if entry.date else ""
        suffix = f" [{', '.join(flags)}]" if flags else ""
        typer.echo(f"{day}{entry.time}  {entry.amount:g} {unit}".rstrip() + f"{suffix}  ({entry.id})")


def _render_feedings(feedings: Sequence[ActualFeeding], settings: Optional[FeedingSettings]) -> None:
    if not feedings:
        typer.echo("No feedings logged.")
        return
    unit = _unit(settings)
    for feeding in feedings:
        planned = f" (planned {feeding.plan_time})" if feeding.plan_time else ""
        notes = f" - {feeding.notes}" if feeding.notes else ""
        typer.echo(
            f"{feeding.date} {feeding.time}  {feeding.amount:g} {unit}".rstrip()
            + f"{planned}{notes}  ({feeding.id})"
        )


def _render_settings(settings: FeedingSettings) -> None:
    unit = _unit(settings)
    windows = settings.feed_windows
    amounts = settings.feed_amounts
    locked = settings.locked_feedings
    typer.echo(f"Feed windows: min {windows.min:g}h, ideal {windows.ideal:g}h, max {windows.max:g}h")
    typer.echo(
        f"Feed amounts: min {amounts.min:g} {unit}, target {amounts.target:g} {unit}, max {amounts.max:g} {unit}"
    )
    typer.echo(f"Units: {'metric' if settings.use_metric else 'imperial'}")
    state = "enabled" if locked.enabled else "disabled"
    times = ", ".join(locked.times) if locked.times else "none"
    typer.echo(f"Locked feedings ({state}): {times}")


@app.command()
def init(
    config: str = _config_option(),
    reset_settings: bool = typer.Option(
        False,
        "--reset-settings",
        help="Overwrite stored feeding settings with the ones from the config file.",
    ),
) -> None:
    """Create the config file and database, seeding feeding settings."""
    config_path = Path(config)
    if config_path.exists():
        config_data = load_config(config_path)
    else:
        config_data = copy_config_template()
        config_data.setdefault("paths", {})["config"] = config_path.name
        write_config(config_path, config_data)
        typer.echo(f"Wrote default configuration to {config_path}")

    settings_doc = config_data.get("settings") or copy_config_template()["settings"]
    try:
        settings = FeedingSettings.model_validate(settings_doc)
    except ValidationError as error:
        typer.echo(f"Invalid settings in {config_path}: {error}")
        raise typer.Exit(code=1) from error

    with _open_service(config) as service:
        if reset_settings or service.get_settings() is None:
            service.save_settings(settings)
            typer.echo("Stored feeding settings.")
        else:
            typer.echo("Feeding settings already stored; use --reset-settings to replace them.")
    typer.echo("Bottle Plan is ready.")


@app.command()
def plan(
    config: str = _config_option(),
    use_remote: Optional[bool] = typer.Option(
        None,
        "--use-remote/--no-use-remote",
        help="Ask the language model first (requires an API key); defaults to models.use_remote.",
    ),
    now: Optional[str] = typer.Option(
        None,
        "--now",
        help="Plan as if the current time were this ISO timestamp (e.g. 2025-03-23T08:30).",
    ),
) -> None:
    """Generate and store the next ten feedings."""
    moment: Optional[datetime] = None
    if now:
        try:
            moment = datetime.fromisoformat(now)
        except ValueError as error:
            raise typer.BadParameter(f"Invalid timestamp: {now}", param_hint="--now") from error

    with _open_service(config, use_remote=use_remote) as service:
        outcome = service.regenerate_plan(moment)
        typer.echo(f"Generated plan ({outcome.source.value}).")
        if outcome.proposal_error:
            typer.echo(f"Model proposal rejected: {outcome.proposal_error}")
        _render_plan(outcome.entries, service.get_settings())


@app.command()
def show(config: str = _config_option()) -> None:
    """Show the stored feeding plan."""
    with _open_service(config) as service:
        _render_plan(service.get_current_plan(), service.get_settings())


@app.command("last-plan")
def last_plan(config: str = _config_option()) -> None:
    """Summarise the most recent plan generation log."""
    config_path = Path(config)
    config_data = load_config(config_path)
    entry = latest_plan_log(resolve_logs_root(config_data, config_path))
    if entry is None:
        typer.echo("No plan logs found.")
        return

    typer.echo(f"Source: {entry.source or 'unknown'} ({entry.path.name})")
    if entry.proposal_error:
        typer.echo(f"Model proposal rejected: {entry.proposal_error}")
    for item in entry.entries:
        day = item.get("date")
        slot = f"{day} {item.get('time')}" if day else str(item.get("time"))
        suffix = " [locked]" if item.get("isLocked") else ""
        typer.echo(f"{slot}  {item.get('amount')}{suffix}")


@app.command()
def toggle(
    entry_id: str = typer.Argument(..., help="Identifier of the planned feeding."),
    config: str = _config_option(),
) -> None:
    """Flip the completed flag of one planned feeding."""
    with _open_service(config) as service:
        entries = service.toggle_completed(entry_id)
        entry = next(item for item in entries if item.id == entry_id)
        state = "completed" if entry.is_completed else "not completed"
        typer.echo(f"{entry.time} marked {state}.")


@app.command()
def settings(
    config: str = _config_option(),
    min_window: Optional[float] = typer.Option(None, "--min-window", help="Minimum hours between feedings."),
    max_window: Optional[float] = typer.Option(None, "--max-window", help="Maximum hours between feedings."),
    ideal_window: Optional[float] = typer.Option(None, "--ideal-window", help="Ideal hours between feedings."),
    min_amount: Optional[float] = typer.Option(None, "--min-amount", help="Minimum amount per feeding."),
    max_amount: Optional[float] = typer.Option(None, "--max-amount", help="Maximum amount per feeding."),
    target_amount: Optional[float] = typer.Option(None, "--target-amount", help="Default amount per feeding."),
    metric: Optional[bool] = typer.Option(None, "--metric/--imperial", help="Display amounts in ml or oz."),
    locked: Optional[bool] = typer.Option(None, "--locked/--no-locked", help="Enable locked feeding times."),
    locked_time: List[str] = typer.Option(
        None,
        "--locked-time",
        "-l",
        help="Locked feeding time as HH:MM (repeatable; replaces the stored list).",
    ),
) -> None:
    """Show feeding settings, or update the fields given as options."""
    changes: Dict[str, Any] = {}
    windows = {"min": min_window, "max": max_window, "ideal": ideal_window}
    amounts = {"min": min_amount, "max": max_amount, "target": target_amount}
    if any(value is not None for value in windows.values()):
        changes["feed_windows"] = windows
    if any(value is not None for value in amounts.values()):
        changes["feed_amounts"] = amounts
    if metric is not None:
        changes["use_metric"] = metric
    locked_changes: Dict[str, Any] = {}
    if locked is not None:
        locked_changes["enabled"] = locked
    if locked_time:
        locked_changes["times"] = list(locked_time)
    if locked_changes:
        changes["locked_feedings"] = locked_changes

    with _open_service(config) as service:
        if changes:
            current = service.update_settings(**changes)
            typer.echo("Settings updated.")
        else:
            current = service.require_settings()
        _render_settings(current)


@app.command("log-feeding")
def log_feeding(
    time: str = typer.Argument(..., help="Time of the feeding as HH:MM."),
    amount: float = typer.Argument(..., help="Amount taken."),
    day: Optional[str] = typer.Option(None, "--date", "-d", help="Day as YYYY-MM-DD (default: today)."),
    plan_time: Optional[str] = typer.Option(None, "--plan-time", help="Planned time this feeding covers."),
    notes: str = typer.Option("", "--notes", "-n", help="Free-form notes."),
    config: str = _config_option(),
) -> None:
    """Record a feeding that actually happened."""
    with _open_service(config) as service:
        feeding = service.add_actual_feeding(
            date=day or datetime.now().date().isoformat(),
            time=time,
            amount=amount,
            plan_time=plan_time,
            notes=notes,
        )
        typer.echo(f"Logged feeding {feeding.id}.")


@app.command()
def feedings(config: str = _config_option()) -> None:
    """List logged feedings, oldest first."""
    with _open_service(config) as service:
        _render_feedings(service.list_actual_feedings(), service.get_settings())


@app.command("update-feeding")
def update_feeding(
    feeding_id: str = typer.Argument(..., help="Identifier of the logged feeding."),
    day: Optional[str] = typer.Option(None, "--date", "-d", help="New day as YYYY-MM-DD."),
    time: Optional[str] = typer.Option(None, "--time", "-t", help="New time as HH:MM."),
    amount: Optional[float] = typer.Option(None, "--amount", "-a", help="New amount."),
    plan_time: Optional[str] = typer.Option(None, "--plan-time", help="New planned time."),
    notes: Optional[str] = typer.Option(None, "--notes", "-n", help="New notes."),
    config: str = _config_option(),
) -> None:
    """Edit a logged feeding."""
    with _open_service(config) as service:
        feeding = service.update_actual_feeding(
            feeding_id, date=day, time=time, amount=amount, plan_time=plan_time, notes=notes
        )
        typer.echo(f"Updated feeding {feeding.id}.")


@app.command("remove-feeding")
def remove_feeding(
    feeding_id: str = typer.Argument(..., help="Identifier of the logged feeding."),
    config: str = _config_option(),
) -> None:
    """Delete a logged feeding."""
    with _open_service(config) as service:
        service.remove_actual_feeding(feeding_id)
        typer.echo(f"Removed feeding {feeding_id}.")


@app.command()
def profile(
    birth_date: Optional[str] = typer.Option(
        None, "--birth-date", "-b", help="Set the birth date (YYYY-MM-DD)."
    ),
    config: str = _config_option(),
) -> None:
    """Show the newborn profile and today's recommendation."""
    with _open_service(config) as service:
        if birth_date:
            try:
                current = service.set_birth_date(birth_date)
            except ValueError as error:
                raise typer.BadParameter(str(error), param_hint="--birth-date") from error
        else:
            current = service.get_profile()
        if current is None:
            typer.echo("No profile stored. Use --birth-date to create one.")
            return
        rec = current.recommendation
        typer.echo(f"Born {current.birth_date.isoformat()}, {current.age_in_days} day(s) old.")
        typer.echo(
            f"Feed every {rec.feeding_frequency.min_hours:g}-{rec.feeding_frequency.max_hours:g} hours"
        )
        per = rec.amount_per_feeding
        typer.echo(
            f"Per feeding: {per.min_oz:g}-{per.max_oz:g} oz ({per.min_ml:g}-{per.max_ml:g} ml)"
        )
        daily = rec.daily_intake
        typer.echo(
            f"Daily intake: {daily.min_oz:g}-{daily.max_oz:g} oz ({daily.min_ml:g}-{daily.max_ml:g} ml)"
        )


if __name__ == "__main__":
    app()
