"""Integration tests for the full scaffolding pipeline.

These tests run every stage for real against a temporary directory: the
resolver reads a real ``package.json`` and ``.npmrc``, templates are rendered
from the shipped template directory, and the installer spawns a stand-in
package manager script. Only the terminal and the Travis HTTP endpoint are
replaced.

No network access or Node.js toolchain is required.
"""

from __future__ import annotations

import base64
import json
import stat
from pathlib import Path

import pytest
from cryptography.hazmat.primitives.asymmetric import padding

from libscaffold.config import ScaffoldConfig
from libscaffold.pipeline import Pipeline
from libscaffold.prefs import PreferenceStore


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _fake_package_manager(directory: Path) -> tuple[Path, Path]:
    """Write an executable that records its arguments, one call per line."""
    log = directory / "pm.log"
    script = directory / "fake-npm"
    script.write_text(f'#!/bin/sh\necho "$@" >> "{log}"\n')
    script.chmod(script.stat().st_mode | stat.S_IEXEC)
    return script, log


def _answers(**extra) -> dict:
    script = {
        "Author's name": ["Jane Doe"],
        "email": ["jane@example.com"],
        "Author's URL": [""],
    }
    script.update(extra)
    return script


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

@pytest.mark.integration
class TestScaffoldEndToEnd:
    """Scaffold a library directory and check the generated tree."""

    async def test_existing_manifest_drives_names(
        self, scaffold_config, npmrc, manifest_writer, make_asker, mock_travis, rsa_private_key
    ):
        dest = scaffold_config.destination
        manifest_writer(
            dest,
            {
                "name": "oada-error",
                "version": "1.0.3",
                "description": "Standard OADA errors",
                "repository": {"type": "git", "url": "git://github.com/OADA/oada-error-js.git"},
            },
        )
        npmrc.parent.mkdir(parents=True)
        npmrc.write_text("_auth=bnBtLXRva2Vu\n")

        with mock_travis as client:
            result = await Pipeline(scaffold_config, asker=make_asker(_answers())).run()

        ctx = result.context
        assert ctx.lib_name == "oada-error-js"
        assert ctx.version == "1.0.3"
        client.get.assert_awaited_once_with("/repos/OADA/oada-error-js/key")

        # The npm token from .npmrc is the default credential and gets encrypted.
        secret = base64.b64decode(ctx.travis_npm_key)
        assert rsa_private_key.decrypt(secret, padding.PKCS1v15()) == b"bnBtLXRva2Vu"

        manifest = json.loads((dest / "package.json").read_text())
        assert manifest["name"] == "oada-error"
        assert manifest["version"] == "1.0.3"
        assert manifest["description"] == "Standard OADA errors"
        assert manifest["homepage"] == "https://github.com/OADA/oada-error-js"

        travis = (dest / ".travis.yml").read_text()
        assert f"secure: {ctx.travis_npm_key}" in travis

        test_jshintrc = json.loads((dest / "test" / ".jshintrc").read_text())
        assert test_jshintrc["mocha"] is True
        assert test_jshintrc["node"] is True
        assert (dest / "AUTHORS").read_text() == "Jane Doe <jane@example.com>\n"

    async def test_rerun_is_stable(self, scaffold_config, make_asker, mock_travis):
        dest = scaffold_config.destination
        with mock_travis:
            await Pipeline(scaffold_config, asker=make_asker(_answers())).run()

        generated = {
            p.relative_to(dest).as_posix(): p.read_text()
            for p in dest.rglob("*")
            if p.is_file() and p.name != ".libscaffold.json"
        }
        (dest / "index.js").write_text("module.exports = 'mine';\n")

        with mock_travis:
            second = await Pipeline(scaffold_config, asker=make_asker()).run()

        assert (dest / "index.js").read_text() == "module.exports = 'mine';\n"
        for relative, content in generated.items():
            if relative == "index.js":
                continue
            assert (dest / relative).read_text() == content, relative

        assert dest / "index.js" in second.files.skipped
        stored = PreferenceStore.load(dest / ".libscaffold.json").as_dict()
        assert stored["authorName"] == "Jane Doe"
        assert "npmApiKey" not in stored

    async def test_installs_run_through_package_manager(
        self, tmp_dest, npmrc, tmp_path, make_asker, mock_travis
    ):
        script, log = _fake_package_manager(tmp_path)
        config = ScaffoldConfig(
            destination=tmp_dest,
            npmrc_path=npmrc,
            package_manager=str(script),
        )

        with mock_travis:
            result = await Pipeline(
                config, asker=make_asker(_answers(**{"Use gulp": [True]}))
            ).run()

        assert all(o.ok for o in result.installs)
        calls = log.read_text().splitlines()
        assert calls[0] == "install --save bluebird"
        assert "install --save-dev pre-commit" in calls
        assert "install --save-dev gulp gulp-jshint gulp-jscs" in calls
        assert len(calls) == len(result.installs)
        assert (tmp_dest / ".git" / "hooks").is_dir()
