"""CLI entrypoint for ecs-deploy."""

import json
import logging
import sys
from pathlib import Path

import click
from botocore.exceptions import BotoCoreError, ClientError
from dotenv import load_dotenv
from pydantic import ValidationError

from ecs_deploy.cli.configuration import (
    CliConfig,
    ConfigError,
    get_value,
    load_config,
    save_config,
    set_value,
)
from ecs_deploy.cli.errors import report_deploy_error
from ecs_deploy.cli.ui import confirm, console, print_status_table, print_summary, report_step
from ecs_deploy.config.paths import env_path
from ecs_deploy.core.deployments.aws_ecs import (
    DeploymentError,
    DeploymentRequest,
    ExecutionContext,
    build_request,
    check_deployment,
    create_session,
    run_deployment,
)
from ecs_deploy.core.settings import DeploySettings, get_settings

logger = logging.getLogger(__name__)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose logging.")
@click.option("--dry-run", is_flag=True, help="Show what would be done without executing.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, dry_run: bool) -> None:
    """Build, push and deploy containers to AWS ECS.

    Args:
        ctx: Click context for the command invocation.
        verbose: Whether to enable debug logging.
        dry_run: Whether to skip every AWS change.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if not verbose:
        logging.getLogger("botocore").setLevel(logging.WARNING)
    ctx.obj = ExecutionContext(reporter=report_step, verbose=verbose, dry_run=dry_run)
    if dry_run:
        console.print("[yellow]Dry run mode - no changes will be made[/yellow]")


@cli.command()
@click.argument(
    "project_path",
    default=".",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
)
@click.option("-e", "--env", "environment", default=None, help="Deployment environment.")
@click.option("--region", default=None, help="AWS region.")
@click.option("--cluster", default=None, help="ECS cluster name.")
@click.option("--service", default=None, help="ECS service name.")
@click.option("-y", "--yes", is_flag=True, help="Deploy without asking for confirmation.")
@click.pass_obj
def deploy(
    run_ctx: ExecutionContext,
    project_path: Path,
    environment: str | None,
    region: str | None,
    cluster: str | None,
    service: str | None,
    yes: bool,
) -> None:
    """Build, push and deploy PROJECT_PATH to AWS ECS."""
    config, settings = _load_configuration()
    request = _resolve_request(
        config, settings, project_path, environment, region, cluster, service
    )

    console.print(f"[bold cyan]Deploy to {request.environment.upper()}[/bold cyan]")
    console.print(f"[dim]Project: {request.project_dir}  Region: {request.region}[/dim]")
    if not run_ctx.dry_run and not yes:
        if not confirm(f"Deploy {request.service_name} to {request.cluster_name}?"):
            console.print("Deployment cancelled.")
            return

    try:
        session = create_session(request.region, request.aws_profile)
        summary = run_deployment(
            session,
            request,
            run_ctx,
            poll_interval=settings.rollout.poll_interval_seconds,
            timeout=settings.rollout.timeout_seconds,
        )
    except (DeploymentError, ClientError, BotoCoreError) as exc:
        logger.debug("Deployment failed", exc_info=True)
        report_deploy_error(exc)
        sys.exit(1)

    if summary.dry_run:
        console.print("[yellow]Dry run complete.[/yellow]")
    else:
        console.print("[green]Deployment completed successfully.[/green]")
    print_summary(summary)


@cli.command()
@click.argument(
    "project_path",
    default=".",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
)
@click.option("-e", "--env", "environment", default=None, help="Deployment environment.")
@click.option("--region", default=None, help="AWS region.")
@click.option("--cluster", default=None, help="ECS cluster name.")
@click.option("--service", default=None, help="ECS service name.")
def status(
    project_path: Path,
    environment: str | None,
    region: str | None,
    cluster: str | None,
    service: str | None,
) -> None:
    """Check the deployment resources of PROJECT_PATH."""
    config, settings = _load_configuration()
    request = _resolve_request(
        config, settings, project_path, environment, region, cluster, service
    )

    try:
        session = create_session(request.region, request.aws_profile)
        results = check_deployment(session, request)
    except (ClientError, BotoCoreError) as exc:
        report_deploy_error(exc)
        sys.exit(1)
    print_status_table(results)


@cli.group("config")
def config_group() -> None:
    """Read and write saved defaults."""


@config_group.command("set")
@click.argument("key")
@click.argument("value")
def config_set(key: str, value: str) -> None:
    """Set KEY (for example aws.region) to VALUE."""
    try:
        updated = set_value(load_config(), key, value)
        path = save_config(updated)
    except ConfigError as exc:
        console.print(f"[red]{exc}[/red]")
        sys.exit(1)
    console.print(f"[green]Set {key} = {get_value(updated, key)}[/green]")
    console.print(f"[dim]Saved to {path}[/dim]")


@config_group.command("get")
@click.argument("key", required=False)
def config_get(key: str | None) -> None:
    """Print KEY, or the whole configuration when KEY is omitted."""
    try:
        config = load_config()
        if key is None:
            console.print_json(json.dumps(config.model_dump(mode="json")))
            return
        value = get_value(config, key)
    except ConfigError as exc:
        console.print(f"[red]{exc}[/red]")
        sys.exit(1)

    if value is None:
        console.print(f"[yellow]No value set for {key}[/yellow]")
    else:
        console.print(f"{key} = {value}")


def _load_configuration() -> tuple[CliConfig, DeploySettings]:
    """Load saved defaults and runtime settings, exiting on invalid files."""
    try:
        return load_config(), get_settings()
    except (ConfigError, ValidationError) as exc:
        console.print(f"[red]{exc}[/red]")
        sys.exit(1)


def _resolve_request(
    config: CliConfig,
    settings: DeploySettings,
    project_path: Path,
    environment: str | None,
    region: str | None,
    cluster: str | None,
    service: str | None,
) -> DeploymentRequest:
    """Merge command options over settings and saved defaults."""
    return build_request(
        project_path,
        environment or config.deploy.environment,
        region or settings.aws.region or config.aws.region,
        cluster_name=cluster,
        service_name=service,
        aws_profile=settings.aws.profile or config.aws.profile,
        container_port=config.deploy.container_port,
        task_cpu=config.deploy.task_cpu,
        task_memory=config.deploy.task_memory,
        image_tag=config.deploy.image_tag,
    )


def main() -> None:
    """Run the CLI."""
    load_dotenv(env_path())
    cli()
