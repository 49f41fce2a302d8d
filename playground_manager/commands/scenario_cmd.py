# /*
# Copyright 2026 The DevOpsBeerer Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# */

"""Scenario commands (list, start, stop, status, cleanup)."""

from __future__ import annotations

import typer
from rich.panel import Panel
from rich.table import Table

from playground_manager import console
from playground_manager.commands.common import cli_errors, print_infra_status
from playground_manager.config import ClusterConfig
from playground_manager.constants import SCENARIO_DOMAIN
from playground_manager.errors import NoActiveScenario
from playground_manager.infra import check_infrastructure
from playground_manager.models import ReleaseStatus, ScenarioDefinition, ScenarioStatus
from playground_manager.orchestrator import build_controller, load_catalog, run_cleanup
from playground_manager.utils import parse_set_values


def list_scenarios(ctx: typer.Context) -> None:
    """List the scenarios available in the catalog."""
    with cli_errors(ctx):
        scenarios = load_catalog().list()

    if not scenarios:
        console.print("[yellow]No scenarios found[/yellow]")
        return

    table = Table(title="Available scenarios")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name", style="bold")
    table.add_column("Description")
    table.add_column("Tags", style="magenta")
    for scenario in scenarios:
        table.add_row(scenario.id, scenario.name, scenario.description, ", ".join(scenario.tags))
    console.print(table)
    console.print("\nUse [bold]dbeerer start <id>[/bold] to deploy a scenario.")


def start(
    ctx: typer.Context,
    scenario_id: str = typer.Argument(..., help="Id of the scenario to deploy"),
    set_values: list[str] | None = typer.Option(
        None, "--set", help="Helm value override as key=value (repeatable)"),
    force: bool = typer.Option(
        False, "--force", help="Clear an unfinished record left by an interrupted start"),
) -> None:
    """Deploy a scenario, replacing the active one."""
    try:
        values = parse_set_values(set_values or [])
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="--set") from e

    with cli_errors(ctx):
        controller = build_controller()
        scenario = controller.install(scenario_id, values=values, force=force)
        _print_scenario_info(scenario, controller.release_name(scenario.id), controller.namespace(scenario.id))


def stop(ctx: typer.Context) -> None:
    """Uninstall the active scenario."""
    with cli_errors(ctx):
        try:
            removed = build_controller().uninstall()
        except NoActiveScenario:
            console.print("[yellow]\u2139\ufe0f  No active scenario to stop[/yellow]")
            return
    console.print(f"[green]\U0001f389 Scenario '{removed.scenario_id}' stopped[/green]")


def status(ctx: typer.Context) -> None:
    """Show infrastructure health and the active scenario."""
    with cli_errors(ctx):
        print_infra_status(check_infrastructure(ClusterConfig()))
        scenario_status = build_controller().status()
    _print_scenario_status(scenario_status)


def cleanup(
    ctx: typer.Context,
    keep_infra: bool = typer.Option(False, "--keep-infra", help="Keep K3s and shared components installed"),
) -> None:
    """Stop the active scenario, remove leftover releases, and uninstall K3s."""
    with cli_errors(ctx):
        run_cleanup(keep_infra=keep_infra)


# ============================================================================
# Output helpers
# ============================================================================

def _print_scenario_info(scenario: ScenarioDefinition, release: str, namespace: str) -> None:
    lines = [
        f"[bold]Name:[/bold] {scenario.name or scenario.id}",
        f"[bold]ID:[/bold] {scenario.id}",
    ]
    if scenario.description:
        lines.append(f"[bold]Description:[/bold] {scenario.description}")
    if scenario.features:
        lines.append("[bold]Features:[/bold]")
        lines.extend(f"  \u2022 {feature}" for feature in scenario.features)
    lines.extend([
        f"[bold]Helm release:[/bold] {release}",
        f"[bold]Namespace:[/bold] {namespace}",
        "",
        "[bold]Tips:[/bold]",
        f"  kubectl get pods -n {namespace}",
        f"  helm status {release} -n {namespace}",
        "",
        f"[bold]Access URL:[/bold] https://{scenario.id}.{SCENARIO_DOMAIN}",
    ])
    console.print(Panel.fit("\n".join(lines), title="Scenario information", style="bold blue"))


def _print_scenario_status(scenario_status: ScenarioStatus | None) -> None:
    if scenario_status is None:
        console.print("[yellow]\u2139\ufe0f  No active scenario[/yellow]")
        return

    record = scenario_status.record
    helm_style = "green" if scenario_status.release_status is ReleaseStatus.DEPLOYED else "red"
    table = Table(title="Active scenario", show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("ID", record.scenario_id)
    table.add_row("Name", record.scenario_name or "-")
    table.add_row("Phase", record.phase.value)
    table.add_row("Release", scenario_status.release_name)
    table.add_row("Namespace", scenario_status.namespace)
    table.add_row("Started", record.start_time or "-")
    table.add_row("Helm status", f"[{helm_style}]{scenario_status.release_status.value}[/{helm_style}]")
    if record.message:
        table.add_row("Message", record.message)
    console.print(table)
