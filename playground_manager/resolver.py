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

"""Chart acquisition: git clone, repository tarball, and per-file download."""

from __future__ import annotations

import shutil
import tarfile
import zlib
from pathlib import Path, PurePosixPath
from typing import BinaryIO, Protocol

import requests
import sh

from playground_manager import console, logger
from playground_manager.config import ScenarioConfig
from playground_manager.constants import (
    CHART_MANIFEST,
    CHART_REQUIRED_FILES,
    CHART_TEMPLATES_DIR,
    GITHUB_ARCHIVE_URL,
    GITHUB_CONTENTS_URL,
)
from playground_manager.errors import ChartNotFound, ResolutionFailed
from playground_manager.models import ScenarioDefinition
from playground_manager.utils import error_output

GIT_CLONE_TIMEOUT_SECONDS = 300
_COPY_CHUNK_SIZE = 64 * 1024


class ChartStrategy(Protocol):
    """Materializes one scenario chart below a work directory."""

    name: str

    def fetch(self, scenario: ScenarioDefinition, workdir: Path) -> Path:
        ...


# ============================================================================
# Git clone
# ============================================================================

class GitCloneStrategy:
    """Shallow-clones the scenario's repository and selects the chart directory."""

    name = "git"

    def __init__(self, timeout: int = GIT_CLONE_TIMEOUT_SECONDS) -> None:
        self._timeout = timeout

    def fetch(self, scenario: ScenarioDefinition, workdir: Path) -> Path:
        """Clone ``chart_source.link`` with depth 1 into *workdir*.

        Args:
            scenario: Scenario whose chart source names the repository.
            workdir: Empty directory owned by the caller.

        Returns:
            Path of the chart directory inside the clone.

        Raises:
            ResolutionFailed: If the clone fails or times out.
            ChartNotFound: If the chart directory is absent from the clone.
        """
        link = scenario.chart_source.link
        if not link:
            raise ResolutionFailed(f"Scenario '{scenario.id}' does not declare a chart repository link")
        clone_dir = workdir / "repo"
        console.print(f"[yellow]\U0001f4c2 Cloning repository: {link}[/yellow]")
        try:
            sh.git("clone", "--depth", "1", link, str(clone_dir), _timeout=self._timeout)
        except sh.ErrorReturnCode as e:
            raise ResolutionFailed(f"Failed to clone {link}: {error_output(e)}") from e
        except sh.TimeoutException as e:
            raise ResolutionFailed(f"Timed out cloning {link} after {self._timeout}s") from e

        chart_dir = clone_dir / scenario.chart_dir
        if not chart_dir.resolve().is_relative_to(clone_dir.resolve()) or not chart_dir.is_dir():
            raise ChartNotFound(f"Chart directory '{scenario.chart_dir}' not found in repository {link}")
        return chart_dir


# ============================================================================
# Repository tarball
# ============================================================================

def extract_chart_from_tarball(stream: BinaryIO, prefix: str, dest: Path) -> int:
    """Extract the entries below *prefix* from a gzip tar stream into *dest*.

    Entries are re-rooted so ``<prefix>templates/x.yaml`` lands at
    ``<dest>/templates/x.yaml``. Directories and regular files keep their
    permission bits; links, devices and entries outside the prefix are skipped.

    Args:
        stream: Readable binary file object positioned at the start of the archive.
        prefix: Archive path prefix ending with ``/``.
        dest: Destination directory, created if missing.

    Returns:
        Number of entries that matched the prefix.

    Raises:
        ResolutionFailed: If the stream is not a readable gzip tar archive or
            an entry would escape *dest*.
    """
    dest.mkdir(parents=True, exist_ok=True)
    matched = 0
    try:
        with tarfile.open(fileobj=stream, mode="r|gz") as archive:
            for member in archive:
                if not member.name.startswith(prefix):
                    continue
                relative = PurePosixPath(member.name[len(prefix):])
                if not relative.parts:
                    continue
                if relative.is_absolute() or ".." in relative.parts:
                    raise ResolutionFailed(f"Refusing to extract unsafe archive entry '{member.name}'")
                target = dest.joinpath(*relative.parts)
                mode = member.mode & 0o777
                if member.isdir():
                    target.mkdir(parents=True, exist_ok=True)
                    target.chmod(mode | 0o700)
                    matched += 1
                elif member.isfile():
                    target.parent.mkdir(parents=True, exist_ok=True)
                    source = archive.extractfile(member)
                    with open(target, "wb") as out:
                        shutil.copyfileobj(source, out, _COPY_CHUNK_SIZE)
                    target.chmod(mode)
                    matched += 1
                    logger.debug("Extracted %s", relative)
    except (tarfile.TarError, zlib.error, EOFError, OSError) as e:
        raise ResolutionFailed(f"Failed to extract chart archive: {e}") from e
    return matched


class TarballStrategy:
    """Downloads the default-branch tarball and keeps only the chart directory.

    Args:
        repository: ``owner/name`` of the GitHub repository.
        branch: Branch whose archive is downloaded.
        session: HTTP session used for the download.
        timeout: Seconds before the download is abandoned.
    """

    name = "tarball"

    def __init__(self, repository: str, branch: str, session: requests.Session, timeout: int) -> None:
        self.repository = repository
        self.branch = branch
        self._session = session
        self._timeout = timeout

    @property
    def url(self) -> str:
        return GITHUB_ARCHIVE_URL.format(repository=self.repository, branch=self.branch)

    def archive_prefix(self, chart_dir: str) -> str:
        """Archive path prefix GitHub uses for *chart_dir* (``<repo>-<branch>/<dir>/``)."""
        repo_name = self.repository.split("/")[-1]
        return f"{repo_name}-{self.branch}/{chart_dir.strip('/')}/"

    def fetch(self, scenario: ScenarioDefinition, workdir: Path) -> Path:
        dest = workdir / scenario.chart_dir
        console.print(f"[yellow]\U0001f4e5 Downloading {self.repository}@{self.branch} archive...[/yellow]")
        try:
            with self._session.get(self.url, stream=True, timeout=self._timeout) as response:
                response.raise_for_status()
                response.raw.decode_content = True
                matched = extract_chart_from_tarball(
                    response.raw, self.archive_prefix(scenario.chart_dir), dest)
        except requests.RequestException as e:
            raise ResolutionFailed(f"Failed to download {self.url}: {e}") from e

        if matched == 0:
            raise ChartNotFound(
                f"Chart directory '{scenario.chart_dir}' not found in {self.repository}@{self.branch}")
        return dest


# ============================================================================
# Per-file download (deprecated)
# ============================================================================

class FileFetchStrategy:
    """Fetches the well-known chart files one by one from a raw file host.

    Deprecated: it cannot enumerate ``templates/``, so it only works for
    charts made of the required files. Charts with templates are refused.

    Args:
        base_url: Raw file base URL; ``<base_url>/<dir>/<file>`` is fetched.
        repository: ``owner/name`` used to probe the templates directory, or None.
        branch: Branch used for the probe.
        session: HTTP session used for the downloads.
        timeout: Seconds before each request is abandoned.
    """

    name = "files"

    def __init__(
        self,
        base_url: str,
        repository: str | None,
        branch: str,
        session: requests.Session,
        timeout: int,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.repository = repository
        self.branch = branch
        self._session = session
        self._timeout = timeout

    def fetch(self, scenario: ScenarioDefinition, workdir: Path) -> Path:
        logger.warning(
            "Per-file chart download is deprecated and only supports charts made of %s",
            ", ".join(CHART_REQUIRED_FILES),
        )
        dest = workdir / scenario.chart_dir
        dest.mkdir(parents=True, exist_ok=True)
        for filename in CHART_REQUIRED_FILES:
            content = self._get(f"{self.base_url}/{scenario.chart_dir}/{filename}")
            if content is None:
                if filename == CHART_MANIFEST:
                    raise ChartNotFound(
                        f"{CHART_MANIFEST} not found for chart '{scenario.chart_dir}' at {self.base_url}")
                logger.warning("%s not found for chart '%s', continuing without it", filename, scenario.chart_dir)
                continue
            (dest / filename).write_bytes(content)
            console.print(f"[green]\U0001f4c4 Fetched: {filename}[/green]")

        self._ensure_no_templates(scenario.chart_dir)
        return dest

    def _get(self, url: str) -> bytes | None:
        try:
            response = self._session.get(url, timeout=self._timeout)
        except requests.RequestException as e:
            raise ResolutionFailed(f"Failed to download {url}: {e}") from e
        if response.status_code == 404:
            return None
        if response.status_code != 200:
            raise ResolutionFailed(f"Failed to download {url}: HTTP {response.status_code}")
        return response.content

    def _ensure_no_templates(self, chart_dir: str) -> None:
        """Refuse charts whose templates directory is not empty.

        Raises:
            ResolutionFailed: If templates exist or their presence cannot be checked.
        """
        if not self.repository:
            raise ResolutionFailed(
                "Per-file chart download needs a charts repository to verify the chart has no templates")
        url = GITHUB_CONTENTS_URL.format(
            repository=self.repository, path=f"{chart_dir}/{CHART_TEMPLATES_DIR}")
        try:
            response = self._session.get(url, params={"ref": self.branch}, timeout=self._timeout)
        except requests.RequestException as e:
            raise ResolutionFailed(f"Failed to inspect chart templates at {url}: {e}") from e
        if response.status_code == 404:
            return
        if response.status_code != 200:
            raise ResolutionFailed(f"Failed to inspect chart templates at {url}: HTTP {response.status_code}")
        try:
            listing = response.json()
        except ValueError as e:
            raise ResolutionFailed(f"Unexpected response while inspecting chart templates at {url}") from e
        if listing:
            raise ResolutionFailed(
                f"Chart '{chart_dir}' has {len(listing)} entries under {CHART_TEMPLATES_DIR}/; "
                "the per-file strategy cannot fetch templates, use the git or tarball strategy instead")


# ============================================================================
# Resolver
# ============================================================================

class ChartResolver:
    """Selects a chart strategy per scenario and runs it.

    Args:
        strategy: ``auto``, or the name of a strategy to force.
        git: Git clone strategy.
        tarball: Tarball strategy, or None when no chart repository is configured.
        files: Per-file strategy, or None when no raw base URL is configured.
    """

    def __init__(
        self,
        strategy: str = "auto",
        *,
        git: GitCloneStrategy | None = None,
        tarball: TarballStrategy | None = None,
        files: FileFetchStrategy | None = None,
    ) -> None:
        self.strategy = strategy
        self._strategies: dict[str, ChartStrategy | None] = {
            "git": git or GitCloneStrategy(),
            "tarball": tarball,
            "files": files,
        }

    @classmethod
    def from_config(cls, scenario_cfg: ScenarioConfig, session: requests.Session) -> ChartResolver:
        """Build a resolver with every strategy the configuration allows."""
        tarball = None
        if scenario_cfg.charts_repository:
            tarball = TarballStrategy(
                scenario_cfg.charts_repository, scenario_cfg.charts_branch,
                session, scenario_cfg.download_timeout,
            )
        files = None
        if scenario_cfg.files_base_url:
            files = FileFetchStrategy(
                scenario_cfg.files_base_url, scenario_cfg.charts_repository,
                scenario_cfg.charts_branch, session, scenario_cfg.download_timeout,
            )
        return cls(scenario_cfg.chart_strategy, tarball=tarball, files=files)

    def select(self, scenario: ScenarioDefinition) -> ChartStrategy:
        """Pick the strategy for *scenario*.

        Raises:
            ResolutionFailed: If the requested strategy is not configured.
        """
        if self.strategy != "auto":
            selected = self._strategies.get(self.strategy)
            if selected is None:
                raise ResolutionFailed(f"Chart strategy '{self.strategy}' is not configured")
            return selected
        if scenario.chart_source.link:
            return self._strategies["git"]
        for name in ("tarball", "files"):
            if self._strategies[name] is not None:
                return self._strategies[name]
        raise ResolutionFailed(f"No chart source available for scenario '{scenario.id}'")

    def resolve(self, scenario: ScenarioDefinition, workdir: Path) -> Path:
        """Materialize the chart of *scenario* below *workdir*.

        The caller owns *workdir* and removes it afterwards.

        Returns:
            Path of a directory that helm can load as a chart.
        """
        strategy = self.select(scenario)
        logger.info("Resolving chart for '%s' with the %s strategy", scenario.id, strategy.name)
        chart_dir = strategy.fetch(scenario, workdir)
        console.print(f"[green]\u2705 Chart ready at {chart_dir}[/green]")
        return chart_dir
