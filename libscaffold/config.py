"""libscaffold configuration.

Typed configuration for a scaffolding run. Settings use a Pydantic v2 model so
they are validated at construction time and can be built from environment
variables without boiler-plate.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

_TRUTHY = {"1", "true", "yes", "on"}


class ScaffoldConfig(BaseModel):
    """Global libscaffold configuration.

    Holds every tuneable parameter and derived path used by the pipeline.
    Instances are created once by the CLI entry point and passed through
    every stage.
    """

    destination: Path = Field(default=Path("."), description="Directory being scaffolded")
    org: str = Field(default="OADA", description="CI / GitHub organisation")
    copyright_holder: str = Field(default="Open Ag Data Alliance")
    travis_api_url: str = Field(default="https://api.travis-ci.com")
    package_manager: str = Field(default="npm")
    prefs_file: str = Field(default=".libscaffold.json")
    prefs_namespace: str = Field(default="libscaffold")
    test_dir: str = Field(default="test")
    json_indent: int = Field(default=4, ge=0)
    install_timeout: int = Field(default=600, ge=10, description="Per-install timeout in seconds")
    http_timeout: int = Field(default=30, ge=1, description="CI key request timeout in seconds")
    npmrc_path: Path | None = Field(default=None)
    skip_install: bool = Field(default=False)
    verbose: bool = Field(default=False)

    # ------------------------------------------------------------------
    # Derived paths (read-only properties)
    # ------------------------------------------------------------------

    @property
    def prefs_path(self) -> Path:
        """Path to the directory-local stored preferences file."""
        return self.destination / self.prefs_file

    @property
    def manifest_path(self) -> Path:
        """Path to the destination's ``package.json``."""
        return self.destination / "package.json"

    @property
    def hooks_dir(self) -> Path:
        """Version-control hooks directory the pre-commit manager installs into."""
        return self.destination / ".git" / "hooks"

    @property
    def resolved_npmrc(self) -> Path:
        """The npm user config file to read identity from.

        Honours ``npmrc_path`` first, then ``$NPM_CONFIG_USERCONFIG``, then
        ``~/.npmrc``.
        """
        if self.npmrc_path is not None:
            return self.npmrc_path
        env_path = os.environ.get("NPM_CONFIG_USERCONFIG")
        if env_path:
            return Path(env_path)
        return Path.home() / ".npmrc"

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_env(cls, **overrides: Any) -> "ScaffoldConfig":
        """Build a ``ScaffoldConfig`` from environment variables.

        Recognised variables (all optional):
            LIBSCAFFOLD_ORG, LIBSCAFFOLD_COPYRIGHT_HOLDER,
            LIBSCAFFOLD_TRAVIS_API_URL, LIBSCAFFOLD_PACKAGE_MANAGER,
            LIBSCAFFOLD_SKIP_INSTALL, LIBSCAFFOLD_HTTP_TIMEOUT.

        Keyword *overrides* win over the environment (the CLI passes its
        parsed flags this way).
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("LIBSCAFFOLD_ORG"):
            kwargs["org"] = os.environ["LIBSCAFFOLD_ORG"]
        if os.environ.get("LIBSCAFFOLD_COPYRIGHT_HOLDER"):
            kwargs["copyright_holder"] = os.environ["LIBSCAFFOLD_COPYRIGHT_HOLDER"]
        if os.environ.get("LIBSCAFFOLD_TRAVIS_API_URL"):
            kwargs["travis_api_url"] = os.environ["LIBSCAFFOLD_TRAVIS_API_URL"]
        if os.environ.get("LIBSCAFFOLD_PACKAGE_MANAGER"):
            kwargs["package_manager"] = os.environ["LIBSCAFFOLD_PACKAGE_MANAGER"]
        if os.environ.get("LIBSCAFFOLD_SKIP_INSTALL"):
            kwargs["skip_install"] = (
                os.environ["LIBSCAFFOLD_SKIP_INSTALL"].strip().lower() in _TRUTHY
            )
        if os.environ.get("LIBSCAFFOLD_HTTP_TIMEOUT"):
            kwargs["http_timeout"] = int(os.environ["LIBSCAFFOLD_HTTP_TIMEOUT"])

        kwargs.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**kwargs)
