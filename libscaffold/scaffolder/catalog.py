"""The Template Catalog -- every file the scaffolder knows how to produce."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict


class WritePolicy(str, Enum):
    ALWAYS_OVERWRITE = "always-overwrite"
    SKIP_IF_EXISTS = "skip-if-exists"


class RenderMode(str, Enum):
    COPY = "copy"
    RENDER = "render"
    MERGE_JSON = "merge-json"


class TemplateEntry(BaseModel):
    """One catalog row.

    ``destination`` may reference ``{main}``, ``{packageName}`` and
    ``{testDir}``. ``feature`` names a boolean context flag that must be true
    for the entry to be produced. ``overlay`` is the second template of a
    ``MERGE_JSON`` entry.
    """

    model_config = ConfigDict(frozen=True)

    template: str
    destination: str
    policy: WritePolicy = WritePolicy.ALWAYS_OVERWRITE
    mode: RenderMode = RenderMode.COPY
    feature: str | None = None
    overlay: str | None = None

    def destination_for(self, variables: dict[str, Any]) -> str:
        return self.destination.format(
            main=variables.get("main", "index.js"),
            packageName=variables.get("packageName", ""),
            testDir=variables.get("testDir", "test"),
        )

    def enabled_for(self, variables: dict[str, Any]) -> bool:
        return self.feature is None or bool(variables.get(self.feature))


_ALWAYS = WritePolicy.ALWAYS_OVERWRITE
_SKIP = WritePolicy.SKIP_IF_EXISTS

TEMPLATE_CATALOG: tuple[TemplateEntry, ...] = (
    TemplateEntry(template="LICENSE", destination="LICENSE"),
    TemplateEntry(template="NOTICE.j2", destination="NOTICE", mode=RenderMode.RENDER),
    TemplateEntry(template="editorconfig", destination=".editorconfig"),
    TemplateEntry(template="ackrc", destination=".ackrc"),
    TemplateEntry(template="jshintrc", destination=".jshintrc"),
    TemplateEntry(template="jshintignore", destination=".jshintignore"),
    TemplateEntry(template="jscsrc", destination=".jscsrc"),
    TemplateEntry(
        template="gulpfile.js.j2",
        destination="gulpfile.js",
        mode=RenderMode.RENDER,
        feature="gulpfile",
    ),
    TemplateEntry(
        template="karma.conf.js.j2",
        destination="karma.conf.js",
        mode=RenderMode.RENDER,
        feature="browser",
    ),
    TemplateEntry(
        template="test/mocha.opts.j2",
        destination="{testDir}/mocha.opts",
        mode=RenderMode.RENDER,
    ),
    TemplateEntry(
        template="jshintrc",
        destination="{testDir}/.jshintrc",
        mode=RenderMode.MERGE_JSON,
        overlay="test/jshintrc-mocha",
    ),
    TemplateEntry(template="istanbul.yml", destination=".istanbul.yml"),
    TemplateEntry(template="package.json.j2", destination="package.json", mode=RenderMode.RENDER),
    TemplateEntry(template="gitignore", destination=".gitignore"),
    TemplateEntry(template="travis.yml.j2", destination=".travis.yml", mode=RenderMode.RENDER),
    TemplateEntry(
        template="README.md.j2",
        destination="README.md",
        policy=_SKIP,
        mode=RenderMode.RENDER,
    ),
    TemplateEntry(
        template="AUTHORS.j2",
        destination="AUTHORS",
        policy=_SKIP,
        mode=RenderMode.RENDER,
    ),
    TemplateEntry(
        template="index.js.j2",
        destination="{main}",
        policy=_SKIP,
        mode=RenderMode.RENDER,
    ),
    TemplateEntry(
        template="test/test.js.j2",
        destination="{testDir}/{packageName}.test.js",
        policy=_SKIP,
        mode=RenderMode.RENDER,
    ),
    TemplateEntry(
        template="test/setup.js.j2",
        destination="{testDir}/setup.js",
        policy=_SKIP,
        mode=RenderMode.RENDER,
    ),
)
