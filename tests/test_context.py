"""Tests for the scaffolding context and its derivations."""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from libscaffold.context import (
    Context,
    derive_package_name,
    derive_var_name,
    format_author_json,
    format_author_str,
)

pytestmark = pytest.mark.unit


class TestDerivePackageName:
    @pytest.mark.parametrize(
        "lib_name, expected",
        [
            ("node-foo", "foo"),
            ("foo.js", "foo"),
            ("foo-js", "foo"),
            ("node-foo.js", "foo"),
            ("node-foo-js", "foo"),
            ("oada-error-js", "oada-error"),
            ("plain", "plain"),
        ],
    )
    def test_strips_prefix_and_suffix(self, lib_name, expected):
        assert derive_package_name(lib_name) == expected

    def test_strips_only_one_prefix(self):
        assert derive_package_name("node-node-foo") == "node-foo"

    def test_strips_only_one_suffix(self):
        assert derive_package_name("foo.js.js") == "foo.js"

    def test_prefix_must_lead(self):
        assert derive_package_name("my-node-foo") == "my-node-foo"

    def test_empty(self):
        assert derive_package_name("") == ""


class TestDeriveVarName:
    @pytest.mark.parametrize(
        "package_name, expected",
        [
            ("foo-bar.baz", "fooBarBaz"),
            ("oada-error", "oadaError"),
            ("snake_case_name", "snakeCaseName"),
            ("single", "single"),
        ],
    )
    def test_camel_cases(self, package_name, expected):
        assert derive_var_name(package_name) == expected

    def test_trailing_separator_kept(self):
        assert derive_var_name("foo-") == "foo-"


class TestAuthorFormatting:
    def test_json_with_url(self):
        text = format_author_json("Jane", "jane@example.com", "https://jane.dev")
        assert json.loads(text) == {
            "name": "Jane",
            "email": "jane@example.com",
            "url": "https://jane.dev",
        }
        # Continuation lines nest under the manifest's top-level key.
        assert "\n    \"name\"" in text
        assert text.endswith("\n  }")

    def test_json_omits_empty_url(self):
        text = format_author_json("Jane", "jane@example.com", "")
        assert "url" not in json.loads(text)

    def test_str_with_url(self):
        assert (
            format_author_str("Jane", "jane@example.com", "https://jane.dev")
            == "Jane <jane@example.com> (https://jane.dev)"
        )

    def test_str_without_url(self):
        assert format_author_str("Jane", "jane@example.com", None) == "Jane <jane@example.com>"


class TestContext:
    def test_defaults(self):
        ctx = Context()
        assert ctx.main == "index.js"
        assert ctx.version == "0.0.0"
        assert ctx.lib_name is None
        assert ctx.browser is True
        assert ctx.promises is True
        assert ctx.gulpfile is False

    def test_frozen(self):
        ctx = Context()
        with pytest.raises(ValidationError):
            ctx.lib_name = "nope"

    def test_evolve_returns_new_copy(self):
        ctx = Context()
        updated = ctx.evolve(lib_name="foo")
        assert updated.lib_name == "foo"
        assert ctx.lib_name is None

    def test_evolve_accepts_camel_case(self):
        ctx = Context().evolve(libName="foo", authorJSON="{}", copyrightYear="2015")
        assert ctx.lib_name == "foo"
        assert ctx.author_json == "{}"
        assert ctx.copyright_year == "2015"

    def test_evolve_rejects_unknown_field(self):
        with pytest.raises(KeyError):
            Context().evolve(notAField=1)

    def test_finalize_derives_everything(self):
        ctx = Context(
            lib_name="node-foo-bar.js",
            author_name="Jane",
            author_email="jane@example.com",
        ).finalize()
        assert ctx.repo_name == "node-foo-bar.js"
        assert ctx.package_name == "foo-bar"
        assert ctx.var_name == "fooBar"
        assert ctx.author_str == "Jane <jane@example.com>"
        assert json.loads(ctx.author_json)["name"] == "Jane"

    def test_template_vars_are_camel_case(self, final_context):
        variables = final_context.template_vars()
        assert variables["libName"] == "oada-error-js"
        assert variables["packageName"] == "oada-error"
        assert variables["varName"] == "oadaError"
        assert "authorJSON" in variables
        assert variables["copyrightYear"] == "2015"

    def test_template_vars_hide_npm_key_and_unset_fields(self):
        variables = Context(npm_key="secret").template_vars()
        assert "npmKey" not in variables
        assert "travisNpmKey" not in variables
        assert "libName" not in variables
