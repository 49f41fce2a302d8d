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

"""Exceptions raised by the playground manager.

Everything derived from :class:`PlaygroundError` is a user-facing failure and
is printed without a traceback by the CLI.
"""

from __future__ import annotations

__all__ = [
    "PlaygroundError",
    "ScenarioNotFound",
    "InvalidScenarioId",
    "CatalogError",
    "ResolutionFailed",
    "ChartNotFound",
    "InstallFailed",
    "UninstallFailed",
    "AlreadyActiveSameScenario",
    "StaleActiveScenario",
    "NoActiveScenario",
    "ConcurrentModification",
    "InvalidPhaseTransition",
    "InfrastructureError",
]


class PlaygroundError(Exception):
    """Generic base exception used for this tool."""


class ScenarioNotFound(PlaygroundError):
    """Raised when a scenario id is not present in the catalog."""

    def __init__(self, scenario_id: str, detail: str | None = None) -> None:
        super().__init__(detail or f"Scenario '{scenario_id}' not found")
        self.scenario_id = scenario_id


class InvalidScenarioId(ScenarioNotFound):
    """Raised when a scenario id cannot be used as a namespace or release name."""

    def __init__(self, scenario_id: str, reason: str) -> None:
        super().__init__(scenario_id, f"Invalid scenario id '{scenario_id}': {reason}")


class CatalogError(PlaygroundError):
    """Raised when the scenario catalog as a whole cannot be fetched."""


class ResolutionFailed(PlaygroundError):
    """Raised when a chart could not be downloaded or extracted."""


class ChartNotFound(ResolutionFailed):
    """Raised when resolution finished but produced no chart content."""


class InstallFailed(PlaygroundError):
    """Raised when helm reports a failed install or upgrade."""


class UninstallFailed(PlaygroundError):
    """Raised when helm reports a failed uninstall."""


class AlreadyActiveSameScenario(PlaygroundError):
    """Raised when the requested scenario is already the active one.

    This is an idempotent no-op rather than a failure; callers treat it as success.
    """

    def __init__(self, scenario_id: str) -> None:
        super().__init__(f"Scenario '{scenario_id}' is already active")
        self.scenario_id = scenario_id


class StaleActiveScenario(PlaygroundError):
    """Raised when the active record was left behind by an interrupted attempt."""

    def __init__(self, scenario_id: str, phase: str) -> None:
        super().__init__(
            f"Scenario '{scenario_id}' has an unfinished record in phase '{phase}'. "
            "Run 'dbeerer stop' or retry with '--force' to clean it up."
        )
        self.scenario_id = scenario_id
        self.phase = phase


class NoActiveScenario(PlaygroundError):
    """Raised when an operation needs an active scenario and none exists."""

    def __init__(self) -> None:
        super().__init__("No active scenario found")


class ConcurrentModification(PlaygroundError):
    """Raised when the active record changed between read and write."""


class InvalidPhaseTransition(PlaygroundError):
    """Raised when a phase update would move the lifecycle backwards."""

    def __init__(self, current: str, requested: str) -> None:
        super().__init__(f"Cannot transition active scenario from '{current}' to '{requested}'")
        self.current = current
        self.requested = requested


class InfrastructureError(PlaygroundError):
    """Raised when infrastructure deployment or removal fails."""
