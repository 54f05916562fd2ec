"""
Command-line interface for StakeFlow.

This module provides CLI commands for computing statistics and evaluating
goals from JSON exports of activities and goals.
"""

import json
from datetime import datetime, timezone
from typing import Any, List, Optional

import click
from pydantic import ValidationError

from .analytics.formatting import format_distance
from .analytics.normalizer import ActivityNormalizer
from .config import AnalyticsConfig, get_analytics_config
from .exceptions import GoalValidationError, StakeflowError
from .goals.evaluator import GoalEvaluator
from .goals.validation import validate_goal_request
from .models import Activity, Goal
from .providers.strava import parse_strava_activity
from .services.statistics_service import compute_statistics
from .utils import setup_stakeflow_logging


def _read_json_list(path: str) -> List[Any]:
    with open(path, encoding="utf-8") as handle:
        data = json.load(handle)
    if not isinstance(data, list):
        raise click.ClickException(f"{path}: expected a JSON list")
    return data


def _load_activities(path: str) -> List[Activity]:
    """Read activities in either the stored format or the provider's format."""
    activities = []
    for index, item in enumerate(_read_json_list(path)):
        if "source_id" in item:
            try:
                activities.append(Activity.model_validate(item))
            except ValidationError as exc:
                error = exc.errors()[0]
                location = ".".join(str(part) for part in error["loc"])
                raise click.ClickException(f"Activity {index + 1}: {location}: {error['msg']}")
            continue
        activity = parse_strava_activity(item)
        if activity is not None:
            activities.append(activity)
    return activities


def _load_goals(path: str, now: datetime, zone) -> List[Goal]:
    today = now.astimezone(zone).date()
    goals = []
    for index, item in enumerate(_read_json_list(path)):
        try:
            goals.append(validate_goal_request(item, today, goal_id=str(item.get("id", index + 1))))
        except GoalValidationError as exc:
            raise click.ClickException(f"Goal {index + 1}: {exc.message}")
    return goals


def _parse_now(value: Optional[str]) -> datetime:
    if value is None:
        return datetime.now(timezone.utc)
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        raise click.BadParameter(f"not an ISO timestamp: {value}", param_hint="--now")
    if parsed.tzinfo is None:
        raise click.BadParameter("timestamp must include a UTC offset", param_hint="--now")
    return parsed


def _analytics_config(tz: Optional[str]) -> AnalyticsConfig:
    if tz is None:
        return get_analytics_config()
    try:
        return AnalyticsConfig(timezone=tz)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="--tz")


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def cli(debug: bool) -> None:
    """StakeFlow command-line interface."""
    if debug:
        setup_stakeflow_logging(level="DEBUG", force=True)


@cli.command()
@click.argument("activities_json", type=click.Path(exists=True, dir_okay=False))
@click.option("--now", "now_value", help="Reference time (ISO 8601 with offset), defaults to the current time")
@click.option("--tz", help="IANA timezone for local days and weeks")
def stats(activities_json: str, now_value: Optional[str], tz: Optional[str]) -> None:
    """Print the statistics payload for ACTIVITIES_JSON."""
    now = _parse_now(now_value)
    config = _analytics_config(tz)
    try:
        payload = compute_statistics(_load_activities(activities_json), now, config)
    except StakeflowError as exc:
        raise click.ClickException(str(exc))
    click.echo(json.dumps(payload.to_dict(), indent=2, default=str))


@cli.command()
@click.argument("goals_json", type=click.Path(exists=True, dir_okay=False))
@click.argument("activities_json", type=click.Path(exists=True, dir_okay=False))
@click.option("--now", "now_value", help="Reference time (ISO 8601 with offset), defaults to the current time")
@click.option("--tz", help="IANA timezone for goal periods")
def evaluate(goals_json: str, activities_json: str, now_value: Optional[str], tz: Optional[str]) -> None:
    """Show the current-period progress of every goal in GOALS_JSON."""
    now = _parse_now(now_value)
    config = _analytics_config(tz)
    goals = _load_goals(goals_json, now, config.zone)
    activities = ActivityNormalizer(config).normalize(_load_activities(activities_json))
    evaluations = GoalEvaluator(config.zone).evaluate_all(goals, activities, now)

    if not evaluations:
        click.echo("No active goals")
        return

    goals_by_id = {goal.goal_id: goal for goal in goals}
    for evaluation in evaluations:
        goal = goals_by_id[evaluation.goal_id]
        click.echo(
            f"{evaluation.goal_id}  {str(goal.type_filter):<5} {goal.frequency.value:<8} "
            f"{format_distance(evaluation.progress_km * 1000)} / {evaluation.target_km:g} km  "
            f"{evaluation.status.value.upper()}  "
            f"(${goal.penalty_amount:.2f} at stake, period from {evaluation.period_start.date().isoformat()})"
        )


if __name__ == "__main__":
    cli()
