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

"""
cli.py - DevOpsBeerer playground manager.

Commands:
    list       List available scenarios
    start      Deploy a scenario (replaces the active one)
    stop       Uninstall the active scenario
    status     Show infrastructure health and the active scenario
    cleanup    Stop everything and uninstall K3s
    infra      Deploy or inspect the K3s infrastructure

Environment Variables:
    - KUBECONFIG / DBEERER_KUBECONFIG (default: /etc/rancher/k3s/k3s.yaml when present)
    - HELM_DRIVER / DBEERER_HELM_DRIVER (Helm release storage driver)
    - DBEERER_CATALOG_SOURCE (cluster or metadata, default: cluster)
    - DBEERER_CHART_STRATEGY (auto, git, tarball or files, default: auto)
    - And more (see config classes for full list)

Examples:
    # Bootstrap the playground
    dbeerer infra deploy

    # Deploy a scenario with a value override
    dbeerer start oauth2-basics --set replicaCount=2

    # Tear everything down but keep K3s
    dbeerer cleanup --keep-infra
"""

from __future__ import annotations

import logging

import typer

from playground_manager import __version__, console
from playground_manager.commands import infra_cmd, scenario_cmd
from playground_manager.commands.common import CliState

app = typer.Typer(
    help="DevOpsBeerer playground manager.",
    no_args_is_help=True,
    pretty_exceptions_enable=False,
)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"dbeerer {__version__}")
        raise typer.Exit()


@app.callback()
def _main_callback(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    debug: bool = typer.Option(False, "--debug", help="Show tracebacks for internal errors"),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show the version and exit"),
) -> None:
    """Initialize logging for all subcommands."""
    logging.basicConfig(
        level=logging.DEBUG if verbose or debug else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )
    ctx.obj = CliState(debug=debug)


app.command("list")(scenario_cmd.list_scenarios)
app.command("start")(scenario_cmd.start)
app.command("stop")(scenario_cmd.stop)
app.command("status")(scenario_cmd.status)
app.command("cleanup")(scenario_cmd.cleanup)
app.add_typer(infra_cmd.app, name="infra")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
