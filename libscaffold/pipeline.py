"""libscaffold pipeline orchestrator.

Runs the five scaffolding stages in a fixed order, each one taking the
context produced by the previous stage:

Stage 1: RESOLVE     -- defaults from the directory, git, npm config and package.json.
Stage 2: PROMPT      -- ask the questions, derive names, store the answers.
Stage 3: PROVISION   -- encrypt the npm credential for Travis CI.
Stage 4: MATERIALIZE -- write the template files.
Stage 5: INSTALL     -- install the runtime and development dependencies.

Usage::

    libscaffold ./my-lib
    python -m libscaffold.pipeline ./my-lib --skip-install
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

from pydantic import BaseModel, Field
from rich.panel import Panel

from libscaffold import __version__
from libscaffold.config import ScaffoldConfig
from libscaffold.context import Context
from libscaffold.installer import DependencyInstaller, InstallOutcome, plan_installs
from libscaffold.prefs import PreferenceStore
from libscaffold.prompts import Asker, PromptSequencer
from libscaffold.provisioner import SecretProvisioner, TravisKeyClient
from libscaffold.resolver import resolve_context
from libscaffold.scaffolder import MaterializeReport, Materializer
from libscaffold.utils import (
    STAGE_NAMES,
    configure_logging,
    console,
    print_error,
    print_stage_header,
    print_success,
    print_summary_table,
    print_warning,
)

# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ScaffoldError(Exception):
    """Base class for libscaffold errors."""


class StageError(ScaffoldError):
    """Raised when a stage cannot run at all."""

    def __init__(self, stage: int, message: str) -> None:
        self.stage = stage
        super().__init__(f"Stage {stage} ({STAGE_NAMES.get(stage, '?')}): {message}")


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------


class PipelineResult(BaseModel):
    context: Context
    files: MaterializeReport = Field(default_factory=MaterializeReport)
    installs: list[InstallOutcome] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Pipeline Orchestrator
# ---------------------------------------------------------------------------


class Pipeline:
    """Drives the five scaffolding stages for one destination directory.

    Collaborators are injectable so tests can run the whole pipeline with a
    scripted asker, a fake CI key client and no package manager.
    """

    def __init__(
        self,
        config: ScaffoldConfig,
        asker: Asker | None = None,
        key_client: TravisKeyClient | None = None,
        materializer: Materializer | None = None,
        installer: DependencyInstaller | None = None,
    ) -> None:
        self.config = config
        self.prefs = PreferenceStore.load(config.prefs_path, config.prefs_namespace)
        self.sequencer = PromptSequencer(self.prefs, asker)
        self.provisioner = SecretProvisioner(
            self.prefs,
            key_client or TravisKeyClient(config.travis_api_url, config.http_timeout),
            org=config.org,
        )
        self.materializer = materializer or Materializer(
            config.destination,
            test_dir=config.test_dir,
            json_indent=config.json_indent,
        )
        self.installer = installer or DependencyInstaller(
            config.destination,
            package_manager=config.package_manager,
            timeout=config.install_timeout,
            hooks_dir=config.hooks_dir,
        )

    async def run(self) -> PipelineResult:
        destination = self.config.destination
        if destination.exists() and not destination.is_dir():
            raise StageError(1, f"{destination} is not a directory")

        console.print(
            Panel(
                f"[bold bright_cyan]libscaffold {__version__}[/bold bright_cyan]\n"
                f"Destination : {destination.resolve()}\n"
                f"Org         : {self.config.org}",
                title="[bold]Scaffold[/bold]",
                border_style="bright_cyan",
            )
        )

        print_stage_header(1, STAGE_NAMES[1])
        ctx = await self.resolve()

        print_stage_header(2, STAGE_NAMES[2])
        ctx, answers = await self.prompt(ctx)

        print_stage_header(3, STAGE_NAMES[3])
        ctx = await self.provision(ctx, answers.get("npmApiKey"))

        print_stage_header(4, STAGE_NAMES[4])
        files = await self.materialize(ctx)

        result = PipelineResult(context=ctx, files=files)
        if self.config.skip_install:
            print_warning("Skipping dependency installation.")
        else:
            print_stage_header(5, STAGE_NAMES[5])
            result.installs = await self.install(ctx)

        self._print_final_summary(result)
        return result

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def resolve(self) -> Context:
        ctx = await resolve_context(self.config)
        console.print(
            f"  [green]+[/green] Library [bold]{ctx.lib_name}[/bold], "
            f"author {ctx.author_name or '(unknown)'}"
        )
        return ctx

    async def prompt(self, ctx: Context) -> tuple[Context, dict]:
        # Blocks on the terminal; nothing else is in flight while asking.
        return self.sequencer.run(ctx)

    async def provision(self, ctx: Context, credential: str | None) -> Context:
        ctx = await self.provisioner.provision(ctx, credential)
        if ctx.travis_npm_key:
            console.print("  [green]+[/green] Travis npm key available")
        else:
            print_warning("  No Travis npm key; the deploy block is left out of .travis.yml.")
        return ctx

    async def materialize(self, ctx: Context) -> MaterializeReport:
        writes = self.materializer.plan(ctx)
        report = await self.materializer.apply(writes)
        for path in report.written:
            console.print(f"  [green]+[/green] {path.relative_to(self.config.destination)}")
        for path in report.skipped:
            console.print(f"  [dim]=[/dim] {path.relative_to(self.config.destination)} (kept)")
        return report

    async def install(self, ctx: Context) -> list[InstallOutcome]:
        requests = plan_installs(ctx)
        outcomes = await self.installer.run(requests)
        for outcome in outcomes:
            mark = "[green]+[/green]" if outcome.ok else "[red]x[/red]"
            console.print(f"  {mark} {outcome.group}")
        return outcomes

    # ------------------------------------------------------------------
    # Summary
    # ------------------------------------------------------------------

    def _print_final_summary(self, result: PipelineResult) -> None:
        ctx = result.context
        failed = [o.group for o in result.installs if not o.ok]
        summary = {
            "Package": ctx.package_name or "",
            "Variable": ctx.var_name or "",
            "Author": ctx.author_str or "",
            "Files written": str(len(result.files.written)),
            "Files kept": str(len(result.files.skipped)),
            "Install groups": str(len(result.installs)),
        }
        if failed:
            summary["Install failures"] = ", ".join(failed)
        console.print()
        print_summary_table(summary, title="Scaffold Summary")


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for ``libscaffold`` / ``python -m libscaffold.pipeline``."""
    import argparse

    parser = argparse.ArgumentParser(
        prog="libscaffold",
        description="Scaffold a JavaScript library: manifest, license, tests and CI config",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  libscaffold\n"
            "  libscaffold ./oada-error-js --skip-install\n"
            "  libscaffold ./my-lib --org my-org --verbose\n"
        ),
    )
    parser.add_argument(
        "destination",
        nargs="?",
        default=".",
        help="Directory to scaffold (default: current directory)",
    )
    parser.add_argument("--org", default=None, help="CI / GitHub organisation (default: OADA)")
    parser.add_argument(
        "--skip-install",
        action="store_true",
        default=None,
        help="Write the files but do not run the package manager",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Show debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    destination = Path(args.destination)
    if destination.exists() and not destination.is_dir():
        print_error(f"Error: {destination} is not a directory")
        sys.exit(1)
    destination.mkdir(parents=True, exist_ok=True)

    config = ScaffoldConfig.from_env(
        destination=destination,
        org=args.org,
        skip_install=args.skip_install,
        verbose=args.verbose,
    )

    try:
        asyncio.run(Pipeline(config).run())
    except (KeyboardInterrupt, EOFError):
        console.print()
        print_error("Aborted.")
        sys.exit(130)
    except ScaffoldError as exc:
        print_error(f"Error: {exc}")
        sys.exit(1)

    print_success("Scaffolding complete!")


if __name__ == "__main__":
    main()
