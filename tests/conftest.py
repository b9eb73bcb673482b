"""Shared pytest fixtures for the libscaffold test suite.

Provides reusable fixtures for:
- Temporary destination directories and configs
- A scripted stand-in for the terminal prompts
- RSA key pairs and mocked Travis key responses
- Mock subprocess helpers
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from libscaffold.config import ScaffoldConfig
from libscaffold.context import Context


# ---------------------------------------------------------------------------
# Environment isolation
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's npm / libscaffold environment out of every test."""
    for name in list(os.environ):
        if name.lower().startswith("npm_config_") or name.startswith("LIBSCAFFOLD_"):
            monkeypatch.delenv(name, raising=False)


# ---------------------------------------------------------------------------
# Paths & Directories
# ---------------------------------------------------------------------------

@pytest.fixture
def tmp_dest(tmp_path: Path) -> Path:
    """Empty destination directory named like a typical OADA library repo."""
    dest = tmp_path / "oada-error-js"
    dest.mkdir()
    return dest


@pytest.fixture
def npmrc(tmp_path: Path) -> Path:
    """Path for a per-test ``.npmrc`` (not created)."""
    return tmp_path / "home" / ".npmrc"


@pytest.fixture
def scaffold_config(tmp_dest: Path, npmrc: Path) -> ScaffoldConfig:
    """Config pointing at the temporary destination, with installs disabled."""
    return ScaffoldConfig(destination=tmp_dest, npmrc_path=npmrc, skip_install=True)


@pytest.fixture
def final_context() -> Context:
    """A finalised context as the prompt stage would produce it."""
    return Context(
        lib_name="oada-error-js",
        lib_desc="Standard errors for OADA libraries",
        author_name="Jane Doe",
        author_email="jane@example.com",
        author_url="https://example.com",
        copyright_year="2015",
        copyright_holder="Open Ag Data Alliance",
        org_name="OADA",
        gulpfile=False,
        browser=True,
        promises=True,
    ).finalize()


# ---------------------------------------------------------------------------
# Scripted prompts
# ---------------------------------------------------------------------------

class ScriptedAsker:
    """Answers prompts from a script instead of the terminal.

    *script* maps a fragment of the question text to a list of replies,
    consumed in order. Questions with no matching or remaining reply take
    their default, as if the operator pressed enter. Every question asked is
    recorded in ``calls`` as ``(message, default)``.
    """

    def __init__(self, script: dict[str, list[Any]] | None = None) -> None:
        self.script = {key: list(values) for key, values in (script or {}).items()}
        self.calls: list[tuple[str, Any]] = []

    def _reply(self, message: str, default: Any) -> Any:
        self.calls.append((message, default))
        for fragment, replies in self.script.items():
            if fragment in message and replies:
                return replies.pop(0)
        return default

    def ask_text(self, message: str, default: str | None, secret: bool = False) -> str:
        reply = self._reply(message, default)
        return "" if reply is None else reply

    def ask_confirm(self, message: str, default: bool) -> bool:
        return bool(self._reply(message, default))

    def asked(self, fragment: str) -> bool:
        return any(fragment in message for message, _ in self.calls)


@pytest.fixture
def make_asker():
    """Factory for ``ScriptedAsker`` instances."""
    return ScriptedAsker


# ---------------------------------------------------------------------------
# Crypto / Travis
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session")
def rsa_private_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def public_key_pem(rsa_private_key: rsa.RSAPrivateKey) -> str:
    """PEM (SubjectPublicKeyInfo) form of the session key."""
    return rsa_private_key.public_key().public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("ascii")


@pytest.fixture
def mock_travis(public_key_pem: str):
    """Patch ``httpx.AsyncClient`` so the Travis key endpoint returns our key.

    Usage:
        def test_something(mock_travis):
            with mock_travis as client:
                ...
                client.get.assert_awaited()
    """
    mock_response = MagicMock()
    mock_response.status_code = 200
    mock_response.json.return_value = {
        "key": public_key_pem,
        "fingerprint": "aa:bb:cc",
    }
    mock_response.raise_for_status = MagicMock()

    mock_client = AsyncMock()
    mock_client.get = AsyncMock(return_value=mock_response)
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)

    class _Patch:
        def __enter__(self) -> AsyncMock:
            self._patcher = patch("httpx.AsyncClient", return_value=mock_client)
            self._patcher.start()
            return mock_client

        def __exit__(self, *exc: Any) -> None:
            self._patcher.stop()

    return _Patch()


# ---------------------------------------------------------------------------
# Mock Subprocess (generic)
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_subprocess():
    """Mock asyncio subprocess for testing command execution.

    Returns a factory that creates mock subprocess instances with configurable
    stdout, stderr, and return codes.

    Usage:
        def test_command(mock_subprocess):
            proc = mock_subprocess(stdout="output", returncode=0)
            with patch("asyncio.create_subprocess_exec", return_value=proc):
                ...
    """
    def factory(
        stdout: str = "",
        stderr: str = "",
        returncode: int = 0,
    ) -> AsyncMock:
        mock_proc = AsyncMock()
        mock_proc.communicate = AsyncMock(
            return_value=(stdout.encode("utf-8"), stderr.encode("utf-8"))
        )
        mock_proc.returncode = returncode
        mock_proc.pid = 99999
        mock_proc.kill = MagicMock()
        mock_proc.wait = AsyncMock(return_value=returncode)
        return mock_proc

    return factory


@pytest.fixture
def no_git():
    """Patch the resolver's git lookups to report unset keys."""
    return patch(
        "libscaffold.resolver.run_command",
        AsyncMock(return_value=(1, "", "")),
    )


def write_manifest(dest: Path, data: dict[str, Any]) -> Path:
    path = dest / "package.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


@pytest.fixture
def manifest_writer():
    """Factory that writes a ``package.json`` into a directory."""
    return write_manifest
