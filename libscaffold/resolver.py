"""Context Resolver -- gathers defaults before any question is asked.

Sources are merged in increasing priority:

1. Hard-coded defaults (``main``, ``version``) and configured org/holder.
2. The destination directory's base name as the library name.
3. The local git identity (``user.name`` / ``user.email``).
4. The npm user config (name, email, url and the ``_auth`` token).
5. An existing ``package.json`` in the destination.

Every source may fail on its own; a failure is logged and leaves the fields
it would have set untouched.
"""

from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Any

from libscaffold.config import ScaffoldConfig
from libscaffold.context import Context
from libscaffold.utils import load_json, run_command

logger = logging.getLogger(__name__)

# npm keys that may carry the author identity, most specific first.
_NPM_IDENTITY_KEYS: dict[str, tuple[str, ...]] = {
    "author_name": ("init-author-name", "init.author.name", "name"),
    "author_email": ("init-author-email", "init.author.email", "email"),
    "author_url": ("init-author-url", "init.author.url", "url"),
    "npm_key": ("_auth",),
}

_PERSON_RE = re.compile(
    r"^\s*(?P<name>[^<(]*?)\s*(?:<(?P<email>[^>]*)>)?\s*(?:\((?P<url>[^)]*)\))?\s*$"
)
_REPO_SEGMENT_RE = re.compile(r"/([^/]+)\.git$")


async def resolve_context(config: ScaffoldConfig) -> Context:
    """Produce the initial ``Context`` for *config.destination*.

    Always completes; the returned context holds whatever survived.
    """
    ctx = _defaults(config)
    ctx = _from_directory(ctx, config.destination)
    ctx = await _from_git(ctx, config.destination)
    ctx = _from_npm_config(ctx, config.resolved_npmrc)
    ctx = _from_manifest(ctx, config.manifest_path)
    return ctx


# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------


def _defaults(config: ScaffoldConfig) -> Context:
    return Context(
        main="index.js",
        version="0.0.0",
        org_name=config.org,
        copyright_holder=config.copyright_holder,
    )


def _from_directory(ctx: Context, destination: Path) -> Context:
    name = Path(destination).resolve().name
    return ctx.evolve(lib_name=name or ctx.lib_name)


async def _from_git(ctx: Context, destination: Path) -> Context:
    """Read ``user.name`` and ``user.email`` as git sees them in *destination*."""
    found: dict[str, str] = {}
    for key, field in (("user.name", "author_name"), ("user.email", "author_email")):
        returncode, stdout, stderr = await run_command(
            ["git", "config", "--get", key], cwd=destination, timeout=15
        )
        if returncode == 0 and stdout:
            found[field] = stdout
        elif returncode not in (0, 1):
            # 1 just means the key is unset.
            logger.warning("Could not read git %s: %s", key, stderr or f"exit {returncode}")
            return ctx.evolve(**found)
    return ctx.evolve(**found)


def _from_npm_config(ctx: Context, npmrc: Path) -> Context:
    """Apply identity and auth token from the npm user config."""
    try:
        conf = read_npmrc(npmrc)
    except OSError as exc:
        logger.warning("Could not read npm config %s: %s", npmrc, exc)
        conf = {}
    conf.update(_npm_env_config())

    found: dict[str, str] = {}
    for field, keys in _NPM_IDENTITY_KEYS.items():
        for key in keys:
            if conf.get(key):
                found[field] = conf[key]
                break
    return ctx.evolve(**found)


def _from_manifest(ctx: Context, manifest: Path) -> Context:
    """Apply fields parsed from an existing ``package.json``."""
    if not manifest.exists():
        logger.debug("No manifest at %s", manifest)
        return ctx
    try:
        data = load_json(manifest)
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Ignoring unreadable manifest %s: %s", manifest, exc)
        return ctx

    found: dict[str, Any] = {}

    author = data.get("author")
    if isinstance(author, str):
        author = parse_person(author)
    if isinstance(author, dict):
        for src, field in (("name", "author_name"), ("email", "author_email"), ("url", "author_url")):
            if author.get(src):
                found[field] = author[src]

    repository = data.get("repository")
    repo_url = repository.get("url") if isinstance(repository, dict) else repository
    lib_name = repo_name_from_url(repo_url) if isinstance(repo_url, str) else None
    lib_name = lib_name or data.get("name")
    if lib_name:
        found["lib_name"] = lib_name

    for src, field in (("version", "version"), ("main", "main"), ("description", "lib_desc")):
        if data.get(src):
            found[field] = data[src]

    return ctx.evolve(**found)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def parse_person(text: str) -> dict[str, str]:
    """Split an npm person string ``"Name <email> (url)"`` into its parts.

    Missing parts are omitted from the result.
    """
    match = _PERSON_RE.match(text)
    if not match:
        return {}
    return {key: value.strip() for key, value in match.groupdict().items() if value and value.strip()}


def repo_name_from_url(url: str) -> str | None:
    """Return the trailing ``<segment>`` of ``.../<segment>.git``, else ``None``."""
    match = _REPO_SEGMENT_RE.search(url.strip())
    return match.group(1) if match else None


def read_npmrc(path: Path) -> dict[str, str]:
    """Parse an ``.npmrc`` file into a flat dict.

    A missing file is an empty config. Comment lines start with ``;`` or
    ``#``; values may be quoted.
    """
    if not path.exists():
        return {}
    conf: dict[str, str] = {}
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line[0] in ";#" or "=" not in line:
            continue
        key, _, value = line.partition("=")
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
            value = value[1:-1]
        conf[key.strip()] = value
    return conf


def _npm_env_config() -> dict[str, str]:
    """``npm_config_*`` environment variables, keyed the way npm names them."""
    conf: dict[str, str] = {}
    for name, value in os.environ.items():
        if name.lower().startswith("npm_config_") and value:
            key = name[len("npm_config_"):].lower()
            conf[key if key.startswith("_") else key.replace("_", "-")] = value
    return conf
