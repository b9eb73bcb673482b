"""Template Materializer.

Turns a finalised ``Context`` into the list of files to write (``plan``) and
writes them (``apply``). Planning only reads templates; ``apply`` is the one
place that touches the destination tree, and it is where the
``skip-if-exists`` policy is enforced so operator edits to README, AUTHORS,
the main entry and the tests survive a repeated run.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from libscaffold.context import Context
from libscaffold.scaffolder.catalog import (
    TEMPLATE_CATALOG,
    RenderMode,
    TemplateEntry,
    WritePolicy,
)
from libscaffold.scaffolder.templates import TemplateRenderer

logger = logging.getLogger(__name__)


class FileWrite(BaseModel):
    """A requested write into the destination tree."""

    path: Path
    content: str
    policy: WritePolicy = WritePolicy.ALWAYS_OVERWRITE
    template: str = ""


class MaterializeReport(BaseModel):
    written: list[Path] = Field(default_factory=list)
    skipped: list[Path] = Field(default_factory=list)


class Materializer:
    """Plans and applies the Template Catalog for one destination."""

    def __init__(
        self,
        destination: str | Path,
        renderer: TemplateRenderer | None = None,
        catalog: tuple[TemplateEntry, ...] = TEMPLATE_CATALOG,
        test_dir: str = "test",
        json_indent: int = 4,
    ) -> None:
        self.destination = Path(destination)
        self.renderer = renderer or TemplateRenderer()
        self.catalog = catalog
        self.test_dir = test_dir
        self.json_indent = json_indent

    # -- Planning ----------------------------------------------------------

    def plan(self, ctx: Context) -> list[FileWrite]:
        """Produce one ``FileWrite`` per catalog entry enabled for *ctx*."""
        variables = {**ctx.template_vars(), "testDir": self.test_dir}
        writes: list[FileWrite] = []
        for entry in self.catalog:
            if not entry.enabled_for(variables):
                continue
            writes.append(
                FileWrite(
                    path=self.destination / entry.destination_for(variables),
                    content=self._content(entry, variables),
                    policy=entry.policy,
                    template=entry.template,
                )
            )
        return writes

    def _content(self, entry: TemplateEntry, variables: dict[str, Any]) -> str:
        if entry.mode is RenderMode.RENDER:
            return self.renderer.render(entry.template, variables)
        if entry.mode is RenderMode.MERGE_JSON:
            merged = json.loads(self.renderer.read(entry.template))
            if entry.overlay:
                merged.update(json.loads(self.renderer.read(entry.overlay)))
            return json.dumps(merged, indent=self.json_indent) + "\n"
        return self.renderer.read(entry.template)

    # -- Applying ----------------------------------------------------------

    async def apply(self, writes: list[FileWrite]) -> MaterializeReport:
        """Write every planned file, honouring each write policy."""
        report = MaterializeReport()
        for write in writes:
            if write.policy is WritePolicy.SKIP_IF_EXISTS and write.path.exists():
                logger.debug("Keeping existing %s", write.path)
                report.skipped.append(write.path)
                continue
            await asyncio.to_thread(_write_file, write.path, write.content)
            report.written.append(write.path)
        return report

    async def materialize(self, ctx: Context) -> MaterializeReport:
        return await self.apply(self.plan(ctx))


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _write_file(path: Path, content: str) -> None:
    """Synchronous helper: create parent dirs and write content."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
