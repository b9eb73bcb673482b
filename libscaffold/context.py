"""The scaffolding context.

``Context`` is the record every stage receives and returns. It is frozen:
stages produce an updated copy with :meth:`Context.evolve` instead of
mutating a shared object. Field names are snake_case in Python and
camelCase inside templates and the preferences file (``libName``,
``authorEmail``, ...).
"""

from __future__ import annotations

import json
import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Context(BaseModel):
    """Accumulated description of the project being scaffolded."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    main: str = "index.js"
    version: str = "0.0.0"
    lib_name: str | None = None
    lib_desc: str | None = None
    repo_name: str | None = None
    package_name: str | None = None
    var_name: str | None = None

    author_name: str | None = None
    author_email: str | None = None
    author_url: str | None = None
    author_json: str | None = Field(default=None, alias="authorJSON")
    author_str: str | None = None

    copyright_year: str | None = None
    copyright_holder: str | None = None
    org_name: str | None = None

    gulpfile: bool = False
    browser: bool = True
    promises: bool = True

    # Raw npm auth token from the user's npm config, offered as the default
    # credential; never rendered.
    npm_key: str | None = Field(default=None, exclude=True)
    travis_npm_key: str | None = None

    def evolve(self, **changes: Any) -> "Context":
        """Return a copy with *changes* applied (snake_case or camelCase keys)."""
        by_alias = {
            field.alias: name
            for name, field in type(self).model_fields.items()
            if field.alias
        }
        update = {by_alias.get(key, key): value for key, value in changes.items()}
        unknown = set(update) - set(type(self).model_fields)
        if unknown:
            raise KeyError(f"Unknown context field(s): {', '.join(sorted(unknown))}")
        return self.model_copy(update=update)

    def finalize(self) -> "Context":
        """Fill in every derived field from the raw answers."""
        lib_name = self.lib_name or ""
        package_name = derive_package_name(lib_name)
        return self.evolve(
            repo_name=lib_name,
            package_name=package_name,
            var_name=derive_var_name(package_name),
            author_json=format_author_json(
                self.author_name, self.author_email, self.author_url
            ),
            author_str=format_author_str(
                self.author_name, self.author_email, self.author_url
            ),
        )

    def template_vars(self) -> dict[str, Any]:
        """Variables exposed to templates, keyed by camelCase name.

        Unset fields are left out so templates see them as undefined and
        render them empty.
        """
        return self.model_dump(by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------------
# Derivations
# ---------------------------------------------------------------------------

_NODE_PREFIX = re.compile(r"^node-")
_JS_SUFFIX = re.compile(r"[.-]js$")
_SEPARATOR = re.compile(r"[-_.](.)")


def derive_package_name(lib_name: str) -> str:
    """Strip one leading ``node-`` and one trailing ``.js``/``-js``.

    ``node-foo.js`` -> ``foo``; ``oada-error-js`` -> ``oada-error``.
    """
    return _JS_SUFFIX.sub("", _NODE_PREFIX.sub("", lib_name))


def derive_var_name(package_name: str) -> str:
    """Camel-case a package name: ``foo-bar.baz`` -> ``fooBarBaz``."""
    return _SEPARATOR.sub(lambda m: m.group(1).upper(), package_name)


def format_author_json(
    name: str | None, email: str | None, url: str | None
) -> str:
    """Serialise the author record for embedding in ``package.json``.

    Continuation lines are indented by two spaces so the object nests under
    the top-level ``"author"`` key. An empty URL is omitted.
    """
    record: dict[str, str | None] = {"name": name, "email": email}
    if url:
        record["url"] = url
    return json.dumps(record, indent=2).replace("\n", "\n  ")


def format_author_str(
    name: str | None, email: str | None, url: str | None
) -> str:
    """Human-readable ``Name <email> (url)``; the URL part only when set."""
    text = f"{name or ''} <{email or ''}>"
    if url:
        text += f" ({url})"
    return text
