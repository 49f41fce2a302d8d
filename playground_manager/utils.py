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

"""Utility functions for naming, value overrides, kubectl, and command checks."""

from __future__ import annotations

import re
import subprocess
from pathlib import Path

import sh

from playground_manager.constants import (
    DEFAULT_RELEASE_PREFIX,
    MAX_RELEASE_NAME_LENGTH,
    SCENARIO_ID_PATTERN,
)
from playground_manager.errors import InvalidScenarioId

_SCENARIO_ID_RE = re.compile(SCENARIO_ID_PATTERN)


def validate_scenario_id(scenario_id: str, prefix: str = DEFAULT_RELEASE_PREFIX) -> str:
    """Check that a scenario id can be used as a namespace and release name.

    Args:
        scenario_id: Candidate scenario identifier.
        prefix: Release prefix that will be prepended to the id.

    Returns:
        The unchanged scenario id.

    Raises:
        InvalidScenarioId: If the id has forbidden characters or is too long.
    """
    if not _SCENARIO_ID_RE.match(scenario_id):
        raise InvalidScenarioId(scenario_id, "only lowercase letters, digits and '-' are allowed")
    if len(f"{prefix}-{scenario_id}") > MAX_RELEASE_NAME_LENGTH:
        raise InvalidScenarioId(
            scenario_id, f"derived release name exceeds {MAX_RELEASE_NAME_LENGTH} characters")
    return scenario_id


def release_name(scenario_id: str, prefix: str = DEFAULT_RELEASE_PREFIX) -> str:
    """Helm release name for a scenario."""
    return f"{prefix}-{scenario_id}"


def scenario_namespace(scenario_id: str, prefix: str = DEFAULT_RELEASE_PREFIX) -> str:
    """Kubernetes namespace for a scenario."""
    return f"{prefix}-{scenario_id}"


def parse_set_values(values: list[str]) -> dict[str, str]:
    """Parse ``key=value`` strings from ``--set`` options.

    Args:
        values: Raw option values.

    Returns:
        Ordered mapping of key to value; later keys override earlier ones.

    Raises:
        ValueError: If an entry has no ``=`` or an empty key.
    """
    parsed: dict[str, str] = {}
    for item in values:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"Invalid value override '{item}', expected key=value")
        parsed[key.strip()] = value
    return parsed


def require_command(cmd: str) -> None:
    """Check if a command exists on the system PATH.

    Args:
        cmd: Name of the CLI command to check.

    Raises:
        RuntimeError: If the command is not found.
    """
    try:
        sh.which(cmd)
    except sh.ErrorReturnCode as err:
        raise RuntimeError(f"Required command '{cmd}' not found. Please install it first.") from err


def kube_args(kubeconfig: Path | None) -> list[str]:
    """``--kubeconfig`` arguments shared by kubectl and helm, empty for the default."""
    return ["--kubeconfig", str(kubeconfig)] if kubeconfig else []


def run_kubectl(args: list[str], kubeconfig: Path | None = None, timeout: int = 30) -> tuple[bool, str, str]:
    """Run a kubectl command via subprocess and return (success, stdout, stderr).

    Never raises; a missing binary or a timeout is reported as a failure.

    Args:
        args: kubectl arguments (e.g. ``["get", "pods", "-n", "default"]``).
        kubeconfig: Kubeconfig path, or None for the kubectl default.
        timeout: Maximum seconds to wait for the command to complete.

    Returns:
        Tuple of (success, stdout, stderr).
    """
    try:
        result = subprocess.run(
            ["kubectl", *kube_args(kubeconfig), *args],
            capture_output=True,
            text=True,
            timeout=timeout,
        )
        return result.returncode == 0, result.stdout, result.stderr
    except (subprocess.SubprocessError, OSError) as exc:
        return False, "", str(exc)


def error_output(err: sh.ErrorReturnCode) -> str:
    """Decode the most useful output of a failed ``sh`` command."""
    for stream in (err.stderr, err.stdout):
        text = stream.decode(errors="replace").strip() if stream else ""
        if text:
            return text
    return str(err)
