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

"""Scenario definitions, the active-scenario record, and release status."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import PurePosixPath
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from playground_manager.constants import (
    ACTIVE_SCENARIO_NAME,
    CRD_API_VERSION,
    KIND_ACTIVE_SCENARIO,
    SCENARIO_ID_PATTERN,
)


# ============================================================================
# Scenario definitions
# ============================================================================

class ChartSource(BaseModel):
    """Where a scenario chart lives (``helmChart`` on the wire).

    Attributes:
        link: Git repository URL, or None to use the configured chart repository.
        dir: Chart directory inside the repository, or None for the scenario id.
    """

    model_config = ConfigDict(extra="ignore")

    link: str | None = None
    dir: str | None = None

    @field_validator("dir")
    @classmethod
    def _relative_dir(cls, value: str | None) -> str | None:
        if value is None:
            return value
        path = PurePosixPath(value)
        if path.is_absolute() or ".." in path.parts:
            raise ValueError(f"chart directory must be relative to the repository root: {value!r}")
        return value


class ScenarioDefinition(BaseModel):
    """A named, installable scenario as published by the catalog.

    Attributes:
        id: Stable identifier reused for the namespace and Helm release name.
        name: Display name.
        description: Display description.
        tags: Descriptive tags.
        features: Descriptive feature list.
        chart_source: Chart location.
    """

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    id: str = Field(pattern=SCENARIO_ID_PATTERN)
    name: str = ""
    description: str = ""
    tags: list[str] = Field(default_factory=list)
    features: list[str] = Field(default_factory=list)
    chart_source: ChartSource = Field(default_factory=ChartSource, alias="helmChart")

    @property
    def chart_dir(self) -> str:
        """Chart directory name, defaulting to the scenario id."""
        return self.chart_source.dir or self.id


# ============================================================================
# Active scenario record
# ============================================================================

class Phase(str, Enum):
    """Lifecycle phase of the active scenario."""

    PENDING = "Pending"
    DEPLOYING = "Deploying"
    RUNNING = "Running"
    FAILED = "Failed"
    TERMINATING = "Terminating"

    @property
    def rank(self) -> int | None:
        """Position in the forward-only ordering, or None for terminal side exits."""
        return _PHASE_RANK.get(self)


_PHASE_RANK = {Phase.PENDING: 0, Phase.DEPLOYING: 1, Phase.RUNNING: 2}


@dataclass(frozen=True)
class ActiveScenarioRecord:
    """Snapshot of the cluster-wide ActiveScenario singleton.

    Attributes:
        scenario_id: Id of the installed scenario.
        phase: Current lifecycle phase.
        helm_release_name: Release the scenario was installed as.
        scenario_name: Display name, denormalized for status output.
        start_time: RFC 3339 timestamp of record creation.
        last_transition_time: RFC 3339 timestamp of the last phase change.
        message: Free-form status message.
        resource_version: Optimistic-concurrency token of the stored object.
    """

    scenario_id: str
    phase: Phase = Phase.PENDING
    helm_release_name: str = ""
    scenario_name: str = ""
    start_time: str = ""
    last_transition_time: str = ""
    message: str = ""
    resource_version: str | None = None

    @classmethod
    def from_resource(cls, obj: dict[str, Any]) -> ActiveScenarioRecord:
        """Build a record from an ActiveScenario custom object.

        A missing or unknown phase is read as Pending: the object exists, so an
        install attempt started, but its first status write never landed.
        """
        spec = obj.get("spec") or {}
        status = obj.get("status") or {}
        metadata = obj.get("metadata") or {}
        try:
            phase = Phase(status.get("phase", Phase.PENDING.value))
        except ValueError:
            phase = Phase.PENDING
        return cls(
            scenario_id=spec.get("scenarioId", ""),
            phase=phase,
            helm_release_name=status.get("helmReleaseName", ""),
            scenario_name=status.get("scenarioName", ""),
            start_time=status.get("startTime", ""),
            last_transition_time=status.get("lastTransitionTime", ""),
            message=status.get("message", ""),
            resource_version=metadata.get("resourceVersion"),
        )

    def status_body(self) -> dict[str, str]:
        """Render the ``status`` stanza of the custom object."""
        status = {
            "phase": self.phase.value,
            "helmReleaseName": self.helm_release_name,
            "startTime": self.start_time,
            "lastTransitionTime": self.last_transition_time,
        }
        if self.scenario_name:
            status["scenarioName"] = self.scenario_name
        if self.message:
            status["message"] = self.message
        return status

    def to_resource(self) -> dict[str, Any]:
        """Render the full custom object, including the concurrency token when known."""
        metadata: dict[str, Any] = {"name": ACTIVE_SCENARIO_NAME}
        if self.resource_version:
            metadata["resourceVersion"] = self.resource_version
        return {
            "apiVersion": CRD_API_VERSION,
            "kind": KIND_ACTIVE_SCENARIO,
            "metadata": metadata,
            "spec": {"scenarioId": self.scenario_id},
            "status": self.status_body(),
        }


# ============================================================================
# Release status
# ============================================================================

class ReleaseStatus(str, Enum):
    """Coarse Helm release state as seen by the lifecycle controller."""

    DEPLOYED = "deployed"
    NOT_FOUND = "not-found"
    OTHER = "other"


@dataclass(frozen=True)
class ScenarioStatus:
    """Active record joined with the live Helm release state."""

    record: ActiveScenarioRecord
    release_name: str
    namespace: str
    release_status: ReleaseStatus
