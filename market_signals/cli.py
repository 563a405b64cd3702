import json
import logging
from pathlib import Path

import typer

from market_signals.clients import GeminiGateway
from market_signals.config import Settings
from market_signals.core import get_output_path
from market_signals.errors import (
    ConfigurationError,
    MarketSignalsError,
    ProfileStoreError,
)
from market_signals.evals import report_eval
from market_signals.loggy import setup_logging
from market_signals.models import resolve_model
from market_signals.pipeline.orchestrator import RunState, run_pipeline
from market_signals.profiles import ProfileStore, can_start_run, credits_remaining
from market_signals.prompts import registry
from market_signals.schemas import CliArgs
from market_signals.utils.writer import render_report_markdown

logger = logging.getLogger(__name__)

app = typer.Typer()


def _log_stage(state: RunState, message: str) -> None:
    if state == RunState.FAILED:
        typer.secho(f"[{state.value}] {message}", fg=typer.colors.RED, err=True)
    else:
        typer.echo(f"[{state.value}] {message}")


@app.command()
def research(
    market: str = typer.Argument(..., help="Description of the target market"),
    model: str | None = typer.Option(
        None, "--model", "-m", help="Gemini model name to use"
    ),
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Output directory (defaults to outputs/<market>/<run id>)",
    ),
    user_id: str | None = typer.Option(
        None,
        "--user-id",
        "-u",
        help="Profile store user id for credit checks and usage tracking",
    ),
    timeout: float | None = typer.Option(
        None, "--timeout", help="Per-call backend timeout in seconds"
    ),
):
    """Run plan -> research -> analyze for a market and write the report."""
    settings = Settings.from_env()
    setup_logging(settings.log_level)

    try:
        cli_args = CliArgs(
            market=market, model=model, output=output, user_id=user_id, timeout=timeout
        )
    except ValueError as exc:
        typer.secho(f"Invalid arguments: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2) from exc

    updates: dict[str, object] = {}
    if cli_args.model:
        updates["gemini_model"] = resolve_model(cli_args.model)
    if cli_args.timeout:
        updates["request_timeout_s"] = cli_args.timeout
    settings = settings.model_copy(update=updates)

    profile_store = None
    if cli_args.user_id:
        try:
            profile_store = ProfileStore(settings)
        except ConfigurationError as exc:
            typer.secho(str(exc), fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1) from exc

    try:
        _run_research(cli_args, settings, profile_store)
    finally:
        if profile_store is not None:
            profile_store.close()


def _run_research(
    cli_args: CliArgs, settings: Settings, profile_store: ProfileStore | None
) -> None:
    if profile_store is not None:
        try:
            profile = profile_store.get_profile(cli_args.user_id)
        except ProfileStoreError as exc:
            typer.secho(str(exc), fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1) from exc
        if not can_start_run(profile, settings.free_tier_credit_limit):
            typer.secho(
                "Free credit limit reached. Please upgrade to Pro.",
                fg=typer.colors.RED,
                err=True,
            )
            raise typer.Exit(code=1)

    logger.info(
        "Starting market research with model: %s", settings.gemini_model.value
    )
    try:
        result = run_pipeline(
            cli_args.market,
            gateway=GeminiGateway(settings),
            on_stage=_log_stage,
        )
    except MarketSignalsError as exc:
        logger.debug("Research run failed", exc_info=True)
        raise typer.Exit(code=1) from exc

    output_dir = cli_args.output or get_output_path(cli_args.market)
    output_dir.mkdir(parents=True, exist_ok=True)

    report_json = output_dir / "report.json"
    report_json.write_text(
        json.dumps(
            {
                "market": result.market,
                "plan": result.plan.to_wire(),
                "report": result.report.to_wire(),
            },
            indent=2,
        )
    )
    report_md = output_dir / "report.md"
    report_md.write_text(
        render_report_markdown(result.market, result.report, result.plan)
    )
    evals_file = output_dir / "report_evals.json"
    evals_file.write_text(json.dumps(report_eval(result.report), indent=2))
    logger.info("Saved report to: %s", output_dir)
    typer.echo(f"Report written to {report_md}")

    if profile_store is not None:
        profile_store.increment_credits(cli_args.user_id)


@app.command("config-check")
def config_check():
    """Report which required secrets are missing."""
    settings = Settings.from_env()
    missing = settings.missing_secrets()
    if missing:
        typer.secho(
            f"Not configured. Missing: {', '.join(missing)}",
            fg=typer.colors.YELLOW,
        )
        raise typer.Exit(code=1)
    typer.echo("All required secrets are configured.")


@app.command()
def profile(user_id: str = typer.Argument(..., help="Profile store user id")):
    """Show a user's plan and remaining free credits."""
    settings = Settings.from_env()
    setup_logging(settings.log_level)
    try:
        with ProfileStore(settings) as store:
            user_profile = store.get_profile(user_id)
    except (ConfigurationError, ProfileStoreError) as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc

    if user_profile is None:
        typer.echo(f"No profile yet for {user_id}.")
        return
    remaining = credits_remaining(user_profile, settings.free_tier_credit_limit)
    plan_label = "Pro" if user_profile.is_pro else "Free"
    credits_label = "Unlimited" if remaining is None else f"{remaining} left"
    typer.echo(f"{user_profile.email} ({plan_label}): {credits_label}")


@app.command("list-prompts")
def list_prompts_cmd():
    """List all available prompts."""
    for name in registry.list_all():
        typer.echo(name)


if __name__ == "__main__":
    app()
