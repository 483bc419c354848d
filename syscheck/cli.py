"""
Command-line interface for SysCheck.

Collects the run context (flags, environment, YAML file or interactive
prompts), runs the preflight checks in order and prints the summary.
Exits 1 if any check reported a FAIL line.
"""

import logging
import os
import signal
import sys
from typing import List, Optional, Tuple

import click
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.table import Table

from . import __version__
from .config import ConfigError, ConfigLoader, EnvironmentKind, RunContext
from .logging_config import configure_logging
from .preflight import (
    CheckDescriptor,
    CheckId,
    PreflightChecker,
    default_checks,
    discover_external_checks,
    render_summary,
)
from .tools import CommandError, Kubectl, ToolNotFoundError

logger = logging.getLogger(__name__)

console = Console()

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}

ENVIRONMENT_CHOICES = {
    "1": (EnvironmentKind.AKS, "AKS (Azure Kubernetes Service)"),
    "2": (EnvironmentKind.EKS, "EKS (Amazon EKS)"),
    "3": (EnvironmentKind.K3S, "K3s (on-prem)"),
}

LOGO = r"""
 ____                   ___ ___
|  _ \ _ __ _   ___   _|_ _/ _ \
| | | | '__| | | \ \ / /| | | | |
| |_| | |  | |_| |\ V / | | |_| |
|____/|_|   \__, | \_/ |___\__\_\
            |___/"""


def _stdin_is_tty() -> bool:
    return sys.stdin.isatty()


def _on_sigterm(signum, frame):
    # SystemExit unwinds through the probe context managers, so temporary
    # cluster resources are released before the process exits.
    raise SystemExit(128 + signum)


# ============================================================
# Interactive prompts
# ============================================================

def _print_header() -> None:
    console.print(f"[bold blue]{LOGO}[/bold blue]")
    console.print(Panel.fit(
        "[bold blue]Welcome to the DryvIQ SysCheck![/bold blue]",
        border_style="blue",
    ))


def _prompt_environment() -> EnvironmentKind:
    console.print("\nWhich environment are you checking?")
    for number, (_, description) in ENVIRONMENT_CHOICES.items():
        console.print(f"  {number}) {description}")

    answer = Prompt.ask("Enter 1, 2, or 3", console=console).strip()
    if answer not in ENVIRONMENT_CHOICES:
        console.print("[red]Unknown option. Exiting.[/red]")
        sys.exit(1)
    return ENVIRONMENT_CHOICES[answer][0]


def _select_context(kubectl: Kubectl) -> Optional[str]:
    """
    Confirm the current kube context or switch to another one.

    Returns:
        The context every check will be pinned to
    """
    current = kubectl.current_context()
    console.print(f"\nCurrent kubectl context: [bold blue]{current or '<none>'}[/bold blue]")

    contexts = kubectl.list_contexts()
    console.print("\nAvailable kube contexts:")
    for number, name in enumerate(contexts, start=1):
        console.print(f"  {number}) {name}")
    console.print()

    if current and Confirm.ask(rf"Use current context \[{current}]?", default=True, console=console):
        console.print(f"Using current context: [bold blue]{current}[/bold blue]")
        return current

    choice = IntPrompt.ask("Enter number of context to use", console=console)
    if not 1 <= choice <= len(contexts):
        console.print("[bold red]Invalid selection. Exiting.[/bold red]")
        sys.exit(1)

    selected = contexts[choice - 1]
    kubectl.use_context(selected)
    console.print(f"Switched to context: [bold blue]{selected}[/bold blue]")
    return selected


def _prompt_cloud_details(
    environment: EnvironmentKind,
    resource_group: Optional[str],
    cluster_name: Optional[str],
    db_endpoints: Optional[str],
) -> Tuple[Optional[str], Optional[str], Optional[str]]:
    """Ask for whatever cloud details were not supplied up front."""
    if not environment.is_cloud:
        return resource_group, cluster_name, db_endpoints

    provider = environment.value.upper()
    console.print()
    if environment == EnvironmentKind.AKS and not resource_group:
        resource_group = Prompt.ask("Enter your AKS Resource Group", console=console)
    if not cluster_name:
        cluster_name = Prompt.ask(f"Enter your {provider} Cluster Name", console=console)

    if not db_endpoints:
        engine = "Postgres" if environment == EnvironmentKind.AKS else "Postgres/Aurora"
        console.print()
        db_endpoints = Prompt.ask(
            f"Optional: Enter {engine} endpoints (host[:port], space/comma separated) "
            "for in-cluster reachability test",
            default="",
            show_default=False,
            console=console,
        ) or None

    return resource_group, cluster_name, db_endpoints


# ============================================================
# Output helpers
# ============================================================

def _print_check_list(checks: List[CheckDescriptor]) -> None:
    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Id")
    table.add_column("Check")
    table.add_column("Target", style="dim")
    for descriptor in checks:
        table.add_row(descriptor.id, f"{descriptor.icon}  {descriptor.label}", str(descriptor.target))
    console.print(table)


def _announce_step(step: int, total: int, descriptor: CheckDescriptor) -> None:
    console.print(f"\n[bold yellow]Step {step}/{total}:[/bold yellow] {descriptor.label}")


def _collect_checks(only: Tuple[str, ...], checks_dir: Optional[str]) -> List[CheckDescriptor]:
    checks = default_checks(list(only) or None)
    if checks_dir:
        checks += discover_external_checks(checks_dir)
    return checks


def _log_run_context(context: RunContext, checks: List[CheckDescriptor]) -> None:
    logger.debug("Current working dir: %s", os.getcwd())
    logger.debug("Environment: %s", context.to_env())
    logger.debug("Kube context: %s", context.kube_context or "<current>")
    for descriptor in checks:
        logger.debug("Check %s -> %s", descriptor.id, descriptor.target)


# ============================================================
# Main command
# ============================================================

@click.command(context_settings=CONTEXT_SETTINGS)
@click.version_option(version=__version__, prog_name="syscheck")
@click.option("--verbose", "-v", is_flag=True, help="Stream raw check output while it runs")
@click.option("--debug", "-d", is_flag=True, help="Log diagnostics (timestamps, targets, environment) to stderr")
@click.option(
    "--environment",
    type=click.Choice([e.value for e in EnvironmentKind], case_sensitive=False),
    envvar="ENVIRONMENT",
    help="Target platform (or set ENVIRONMENT)",
)
@click.option("--resource-group", type=str, envvar="RESOURCE_GROUP", help="AKS resource group (or set RESOURCE_GROUP)")
@click.option("--cluster-name", type=str, envvar="CLUSTER_NAME", help="AKS/EKS cluster name (or set CLUSTER_NAME)")
@click.option(
    "--db-endpoints",
    type=str,
    envvar="DB_ENDPOINTS",
    help="DB endpoints, host[:port] separated by spaces or commas (or set DB_ENDPOINTS)",
)
@click.option("--context", "kube_context", type=str, help="kubectl context to check")
@click.option("--config", "-c", "config_path", type=click.Path(exists=True, dir_okay=False), help="YAML run context file")
@click.option(
    "--checks-dir",
    type=click.Path(exists=True, file_okay=False),
    help="Directory of additional check_* executables",
)
@click.option(
    "--only",
    type=click.Choice([c.value for c in CheckId]),
    multiple=True,
    help="Run only this check (repeatable)",
)
@click.option("--list-checks", is_flag=True, help="List the checks and exit")
@click.option("--no-input", is_flag=True, help="Never prompt; take everything from flags, env and config")
def main(
    verbose: bool,
    debug: bool,
    environment: Optional[str],
    resource_group: Optional[str],
    cluster_name: Optional[str],
    db_endpoints: Optional[str],
    kube_context: Optional[str],
    config_path: Optional[str],
    checks_dir: Optional[str],
    only: Tuple[str, ...],
    list_checks: bool,
    no_input: bool,
):
    """
    DryvIQ SysCheck

    Preflight validation for Kubernetes platform deployments on AKS,
    EKS and on-prem K3s.
    """
    configure_logging(debug)

    if list_checks:
        _print_check_list(_collect_checks(only, checks_dir))
        return

    signal.signal(signal.SIGTERM, _on_sigterm)
    interactive = not no_input and _stdin_is_tty()

    try:
        loader = ConfigLoader(config_path).with_environ()
    except ConfigError as e:
        raise click.UsageError(str(e))

    if interactive:
        _print_header()

    environment = environment or loader.get("environment")
    if environment:
        try:
            kind = EnvironmentKind(str(environment).lower())
        except ValueError:
            expected = ", ".join(e.value for e in EnvironmentKind)
            raise click.UsageError(f"Invalid environment '{environment}' (expected one of: {expected}).")
    elif interactive:
        kind = _prompt_environment()
    else:
        raise click.UsageError("No environment given. Use --environment or set ENVIRONMENT.")

    kube_context = kube_context or loader.get("kube_context")
    if interactive and not kube_context:
        try:
            kube_context = _select_context(Kubectl())
        except ToolNotFoundError as e:
            # the versions check reports the missing kubectl as a FAIL
            console.print(f"[yellow]Skipping context selection: {e}[/yellow]")
        except CommandError as e:
            console.print(f"[bold red]Cannot read kube contexts: {e}[/bold red]")
            sys.exit(1)

    resource_group = resource_group or loader.get("resource_group")
    cluster_name = cluster_name or loader.get("cluster_name")
    db_endpoints = db_endpoints or loader.get("db_endpoints")
    if interactive:
        resource_group, cluster_name, db_endpoints = _prompt_cloud_details(
            kind, resource_group, cluster_name, db_endpoints
        )
    if not db_endpoints:
        loader.with_endpoints_file()

    try:
        context = loader.build(
            environment=kind,
            resource_group=resource_group,
            cluster_name=cluster_name,
            kube_context=kube_context,
            db_endpoints=db_endpoints,
        )
    except ConfigError as e:
        raise click.UsageError(str(e))

    checks = _collect_checks(only, checks_dir)
    _log_run_context(context, checks)

    checker = PreflightChecker(context, checks=checks, verbose=verbose, console=console)
    try:
        result = checker.run_all(on_start=_announce_step)
    except KeyboardInterrupt:
        console.print("\n[red]Interrupted. Temporary probe resources were released.[/red]")
        sys.exit(130)

    render_summary(result, console)
    logger.debug(result.summary())
    sys.exit(result.exit_code)


if __name__ == "__main__":
    main()
