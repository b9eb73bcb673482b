"""Dependency Installer.

The Dependency Set is static data: one group per logical tool, each tagged
as a runtime or development dependency and optionally gated on a context
feature flag. :func:`plan_installs` picks the groups that apply and
:class:`DependencyInstaller` runs the package manager once per group.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from libscaffold.context import Context
from libscaffold.utils import ensure_dir, run_command

logger = logging.getLogger(__name__)


class DependencyKind(str, Enum):
    RUNTIME = "runtime"
    DEVELOPMENT = "development"


class DependencyGroup(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    packages: tuple[str, ...]
    kind: DependencyKind = DependencyKind.DEVELOPMENT
    feature: str | None = None
    needs_hooks: bool = False


_RUNTIME = DependencyKind.RUNTIME

DEPENDENCY_GROUPS: tuple[DependencyGroup, ...] = (
    DependencyGroup(name="promises", packages=("bluebird",), kind=_RUNTIME, feature="promises"),
    DependencyGroup(name="istanbul", packages=("istanbul",)),
    DependencyGroup(name="mocha", packages=("mocha",)),
    DependencyGroup(name="chai", packages=("chai",)),
    DependencyGroup(name="chai-as-promised", packages=("chai-as-promised",), feature="promises"),
    DependencyGroup(name="jshint", packages=("jshint", "jshint-stylish")),
    DependencyGroup(name="jscs", packages=("jscs",)),
    DependencyGroup(name="pre-commit", packages=("pre-commit",), needs_hooks=True),
    DependencyGroup(
        name="gulp",
        packages=("gulp", "gulp-jshint", "gulp-jscs"),
        feature="gulpfile",
    ),
    DependencyGroup(
        name="karma",
        packages=(
            "karma",
            "yargs",
            "karma-browserify",
            "browserify-istanbul",
            "brfs",
            "karma-coverage@0.2.6",
            "karma-mocha",
            "karma-mocha-reporter",
            "karma-phantomjs-launcher",
            "karma-phantomjs-shim",
        ),
        feature="browser",
    ),
)


class InstallRequest(BaseModel):
    """One package-manager invocation."""

    group: str
    packages: list[str]
    kind: DependencyKind
    needs_hooks: bool = False


class InstallOutcome(BaseModel):
    group: str
    returncode: int
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def plan_installs(
    ctx: Context, groups: tuple[DependencyGroup, ...] = DEPENDENCY_GROUPS
) -> list[InstallRequest]:
    """The install requests that apply to *ctx*'s feature flags, in order."""
    requests: list[InstallRequest] = []
    for group in groups:
        if group.feature is not None and not getattr(ctx, group.feature):
            continue
        requests.append(
            InstallRequest(
                group=group.name,
                packages=list(group.packages),
                kind=group.kind,
                needs_hooks=group.needs_hooks,
            )
        )
    return requests


async def ensure_hooks_dir(hooks_dir: Path) -> bool:
    """Create *hooks_dir* if missing; a failure is logged, not raised."""
    try:
        await asyncio.to_thread(ensure_dir, hooks_dir)
    except OSError as exc:
        logger.warning("Could not create %s: %s", hooks_dir, exc)
        return False
    return True


class DependencyInstaller:
    """Runs ``<package_manager> install`` for each request, in order."""

    def __init__(
        self,
        destination: str | Path,
        package_manager: str = "npm",
        timeout: int = 600,
        hooks_dir: str | Path | None = None,
    ) -> None:
        self.destination = Path(destination)
        self.package_manager = package_manager
        self.timeout = timeout
        self.hooks_dir = Path(hooks_dir) if hooks_dir else self.destination / ".git" / "hooks"

    def command_for(self, request: InstallRequest) -> list[str]:
        flag = "--save" if request.kind is DependencyKind.RUNTIME else "--save-dev"
        return [self.package_manager, "install", flag, *request.packages]

    async def run(self, requests: list[InstallRequest]) -> list[InstallOutcome]:
        """Install every request; a failing group does not stop the rest."""
        outcomes: list[InstallOutcome] = []
        for request in requests:
            if request.needs_hooks:
                await ensure_hooks_dir(self.hooks_dir)
            returncode, _stdout, stderr = await run_command(
                self.command_for(request),
                cwd=self.destination,
                timeout=self.timeout,
            )
            error = None
            if returncode != 0:
                error = stderr or f"exit {returncode}"
                logger.warning("Installing %s failed: %s", request.group, error)
            outcomes.append(InstallOutcome(group=request.group, returncode=returncode, error=error))
        return outcomes
