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

"""Helpers shared by the CLI subcommands."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

import typer
from rich.markup import escape
from rich.table import Table

from playground_manager import console, err_console, logger
from playground_manager.errors import PlaygroundError
from playground_manager.infra import InfrastructureStatus

EXIT_USER_ERROR = 1
EXIT_INTERNAL_ERROR = 2


@dataclass
class CliState:
    """Options set by the root callback, stored on ``ctx.obj``."""

    debug: bool = False


def _debug_enabled(ctx: typer.Context | None) -> bool:
    state = ctx.obj if ctx is not None else None
    return isinstance(state, CliState) and state.debug


@contextmanager
def cli_errors(ctx: typer.Context | None = None) -> Iterator[None]:
    """Turn exceptions into a one-line message and an exit code.

    ``PlaygroundError`` exits with 1. Anything else is an internal error and
    exits with 2; its traceback is printed only with ``--debug``.
    """
    try:
        yield
    except PlaygroundError as e:
        err_console.print(f"[red]\u274c {escape(str(e))}[/red]")
        raise typer.Exit(EXIT_USER_ERROR) from e
    except Exception as e:
        logger.debug("Unhandled error", exc_info=True)
        if _debug_enabled(ctx):
            err_console.print_exception()
        err_console.print(f"[red]\U0001f4a5 Internal error: {escape(str(e))}[/red]")
        raise typer.Exit(EXIT_INTERNAL_ERROR) from e


def print_infra_status(status: InfrastructureStatus) -> None:
    """Render infrastructure health as a table."""
    if not status.kubectl_available:
        console.print("[red]\u274c kubectl not found on PATH[/red]")
        return
    if not status.cluster_reachable:
        console.print("[red]\u274c Cluster not reachable[/red]")
        return

    table = Table(title="Infrastructure")
    table.add_column("Component", style="cyan")
    table.add_column("Namespace")
    table.add_column("Helm release")
    table.add_column("Pods ready", justify="right")
    table.add_column("Health")
    for component in status.components:
        health = "[green]healthy[/green]" if component.healthy else "[red]unhealthy[/red]"
        table.add_row(
            component.name,
            component.namespace,
            f"{component.release} ({component.release_status.value})",
            f"{component.pods_ready}/{component.pods_total}",
            health,
        )
    console.print(table)
