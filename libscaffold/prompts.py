"""Prompt Sequencer -- the ordered interactive questions.

Each question is a :class:`Question` descriptor carrying its default, an
optional validator, an optional filter and an optional ``when`` predicate
over the answers collected so far. Defaults come from stored preferences
first and from the resolved context otherwise, so a repeated run offers the
previous answers.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Annotated, Any, Callable, Protocol

from email_validator import EmailNotValidError, validate_email
from pydantic import AnyUrl, TypeAdapter, UrlConstraints, ValidationError
from rich.prompt import Confirm, Prompt

from libscaffold.context import Context
from libscaffold.prefs import PreferenceStore
from libscaffold.utils import console, print_error

logger = logging.getLogger(__name__)

Answers = dict[str, Any]

_URL = TypeAdapter(
    Annotated[AnyUrl, UrlConstraints(allowed_schemes=["http", "https", "ftp"])]
)


# ---------------------------------------------------------------------------
# Validators
# ---------------------------------------------------------------------------


def is_email(value: str) -> bool:
    """Syntactic e-mail check (no DNS lookups).

    Only a bare address is accepted; the ``Name <addr>`` display form is
    rejected because the answer is stored and rendered as-is.
    """
    try:
        validate_email(value, check_deliverability=False, allow_display_name=False)
    except EmailNotValidError:
        return False
    return True


def is_optional_url(value: str) -> bool:
    """Empty is accepted; otherwise an http(s) or ftp URL with a dotted host.

    The scheme may be left off (``example.com/about``), in which case
    ``http://`` is assumed for the check.
    """
    if not value:
        return True
    candidate = value if "://" in value else f"http://{value}"
    try:
        url = _URL.validate_python(candidate)
    except ValidationError:
        return False
    return "." in (url.host or "")


def is_number(value: str) -> bool:
    try:
        return math.isfinite(float(value))
    except (TypeError, ValueError):
        return False


# ---------------------------------------------------------------------------
# Question descriptors
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Question:
    """One interactive question.

    Attributes:
        name: Answer key; camelCase context field name when ``to_context``.
        message: Text shown to the operator.
        kind: ``"input"`` or ``"confirm"``.
        default: Value offered when the operator just presses enter.
        validate: Returns ``False`` to reject an answer and re-ask.
        filter: Transforms an accepted answer.
        when: Predicate over previous answers; ``False`` skips the question.
        store: Persist the answer in the preferences store.
        to_context: Copy the answer into the context.
        secret: Hide the typed input.
        invalid_message: Shown when ``validate`` rejects an answer.
    """

    name: str
    message: str
    kind: str = "input"
    default: Any = None
    validate: Callable[[str], bool] | None = None
    filter: Callable[[Any], Any] | None = None
    when: Callable[[Answers], bool] | None = None
    store: bool = True
    to_context: bool = True
    secret: bool = False
    invalid_message: str = "Invalid answer, please try again."


def build_questions(ctx: Context, prefs: PreferenceStore) -> list[Question]:
    """The fixed question list, seeded from *prefs* and *ctx*."""

    def seeded(name: str, fallback: Any) -> Any:
        stored = prefs.get(name)
        return fallback if stored is None else stored

    has_key = bool(prefs.get("travisNpmKey"))

    return [
        Question(
            name="authorName",
            message="What is the Author's name?",
            default=seeded("authorName", ctx.author_name),
        ),
        Question(
            name="authorEmail",
            message="What is the Author's email?",
            default=seeded("authorEmail", ctx.author_email),
            validate=is_email,
            invalid_message="Please enter a valid email address.",
        ),
        Question(
            name="authorUrl",
            message="What is the Author's URL (optional)?",
            default=seeded("authorUrl", ctx.author_url),
            validate=is_optional_url,
            invalid_message="Please enter a valid URL or leave it empty.",
        ),
        Question(
            name="libName",
            message="What do you want to call your lib?",
            default=seeded("libName", ctx.lib_name),
            filter=str.strip,
        ),
        Question(
            name="libDesc",
            message="Describe your library:",
            default=seeded("libDesc", ctx.lib_desc),
        ),
        Question(
            name="copyrightYear",
            message="What year is the copyright?",
            default=str(seeded("copyrightYear", datetime.now().year)),
            validate=is_number,
            filter=str.strip,
            invalid_message="Please enter a year.",
        ),
        Question(
            name="gulpfile",
            kind="confirm",
            message="Use gulp?",
            default=seeded("gulpfile", False),
        ),
        Question(
            name="browser",
            kind="confirm",
            message="Test your code in browser (browserify)?",
            default=seeded("browser", True),
        ),
        Question(
            name="promises",
            kind="confirm",
            message="Use promises (bluebird)?",
            default=seeded("promises", True),
        ),
        Question(
            name="genNpmKey",
            kind="confirm",
            message="Regenerate Travis NPM API key?",
            default=False,
            when=lambda answers: has_key,
            store=False,
            to_context=False,
        ),
        Question(
            name="npmApiKey",
            message="Enter NPM API key, or username:password.",
            default=ctx.npm_key,
            when=lambda answers: bool(answers.get("genNpmKey")) or not has_key,
            store=False,
            to_context=False,
            secret=True,
        ),
    ]


# ---------------------------------------------------------------------------
# Askers
# ---------------------------------------------------------------------------


class Asker(Protocol):
    def ask_text(self, message: str, default: str | None, secret: bool = False) -> str: ...

    def ask_confirm(self, message: str, default: bool) -> bool: ...


class RichAsker:
    """Asks questions on the terminal through ``rich.prompt``."""

    def ask_text(self, message: str, default: str | None, secret: bool = False) -> str:
        if default is None or default == "":
            return Prompt.ask(message, console=console, password=secret)
        return Prompt.ask(
            message,
            console=console,
            default=default,
            password=secret,
            show_default=not secret,
        )

    def ask_confirm(self, message: str, default: bool) -> bool:
        return Confirm.ask(message, console=console, default=bool(default))


# ---------------------------------------------------------------------------
# Sequencer
# ---------------------------------------------------------------------------


class PromptSequencer:
    """Runs the question list and folds the answers into the context."""

    def __init__(self, prefs: PreferenceStore, asker: Asker | None = None) -> None:
        self.prefs = prefs
        self.asker = asker or RichAsker()

    def ask_all(self, questions: list[Question]) -> Answers:
        answers: Answers = {}
        for question in questions:
            if question.when is not None and not question.when(answers):
                continue
            answers[question.name] = self._ask(question)
        return answers

    def run(self, ctx: Context) -> tuple[Context, Answers]:
        """Ask every applicable question.

        Returns the finalised context (derived names and author strings
        filled in) and the raw answers. Stored answers are written back for
        every ``store`` question whose value changed.
        """
        questions = build_questions(ctx, self.prefs)
        answers = self.ask_all(questions)

        updates = {
            q.name: answers[q.name]
            for q in questions
            if q.to_context and q.name in answers
        }
        ctx = ctx.evolve(**updates).finalize()

        to_store = {
            q.name: answers[q.name]
            for q in questions
            if q.store
            and q.name in answers
            and (q.name not in self.prefs or self.prefs.get(q.name) != answers[q.name])
        }
        self.prefs.update(to_store)
        logger.debug("Stored answers: %s", ", ".join(sorted(to_store)) or "(none)")

        return ctx, answers

    def _ask(self, question: Question) -> Any:
        if question.kind == "confirm":
            value: Any = self.asker.ask_confirm(question.message, bool(question.default))
        else:
            default = None if question.default is None else str(question.default)
            while True:
                value = self.asker.ask_text(question.message, default, question.secret)
                if question.validate is None or question.validate(value):
                    break
                print_error(question.invalid_message)
        if question.filter is not None:
            value = question.filter(value)
        return value
