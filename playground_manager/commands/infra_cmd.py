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

"""Infrastructure subcommands (deploy, status)."""

from __future__ import annotations

import typer

from playground_manager import console
from playground_manager.commands.common import cli_errors, print_infra_status
from playground_manager.config import ClusterConfig, InfraConfig
from playground_manager.infra import check_infrastructure, deploy_infrastructure

app = typer.Typer(help="Manage the K3s playground infrastructure.", no_args_is_help=True)


@app.command()
def deploy(
    ctx: typer.Context,
    repo_url: str | None = typer.Option(None, "--repo-url", help="Git URL of the playground setup repository"),
) -> None:
    """Install K3s, cert-manager, ingress-nginx, and Keycloak."""
    with cli_errors(ctx):
        infra_cfg = InfraConfig()
        if repo_url is not None:
            infra_cfg = infra_cfg.model_copy(update={"playground_repo_url": repo_url})
        deploy_infrastructure(infra_cfg, ClusterConfig())


@app.command()
def status(ctx: typer.Context) -> None:
    """Show the health of the shared infrastructure components."""
    with cli_errors(ctx):
        infra_status = check_infrastructure(ClusterConfig())
        print_infra_status(infra_status)
        if infra_status.healthy:
            console.print("[green]\u2705 Infrastructure is healthy[/green]")
        else:
            console.print("[yellow]\u26a0\ufe0f  Infrastructure is not fully healthy, run 'dbeerer infra deploy'[/yellow]")
