"""Naming heuristics for runs and worktree branches.

Everything here is pure.  Randomness is only used for the slug fallback and
run ids, and always comes from an injectable ``random.Random`` so callers
(and tests) can make it deterministic.
"""

from __future__ import annotations

import random
import re
import string

from runfleet.workspace_home.models.enums import SlugIntent
from runfleet.workspace_home.models.workspace import ModelOption

MAX_TITLE_LENGTH = 56
TITLE_ELLIPSIS = "..."
FALLBACK_TITLE = "New run"

FIX_KEYWORDS = ("fix", "bug", "error", "issue", "broken", "regression")
SLUG_TOKEN_LIMIT = 4

_BASE36 = string.digits + string.ascii_lowercase
# Whitespace as browsers see it.  Unlike str.isspace this includes U+FEFF
# (byte order mark) and excludes the C0 separators and U+0085.
_WS = "\t\n\v\f\r \u00a0\u1680\u2000-\u200a\u2028\u2029\u202f\u205f\u3000\ufeff"
_WS_RUN_RE = re.compile(f"[{_WS}]+")
_TRIM_RE = re.compile(rf"^[{_WS}]+|[{_WS}]+\Z")
_SLUG_STRIP_RE = re.compile(r"[^a-z0-9\s-]")
_PREFIXES = tuple(f"{intent}/" for intent in SlugIntent)


def _random_token(rng: random.Random, length: int) -> str:
    return "".join(rng.choice(_BASE36) for _ in range(length))


def trim_whitespace(text: str) -> str:
    """Strip leading and trailing whitespace, BOMs included."""
    return _TRIM_RE.sub("", text)


# ---------------------------------------------------------------------------
# Titles
# ---------------------------------------------------------------------------


def build_run_title(prompt: str) -> str:
    """Derive a display title from the first line of *prompt*.

    Whitespace runs collapse to single spaces.  Titles longer than
    ``MAX_TITLE_LENGTH`` code points are cut and suffixed with an ellipsis.
    """
    first_line = trim_whitespace(prompt).split("\n", 1)[0]
    normalized = trim_whitespace(_WS_RUN_RE.sub(" ", first_line))
    if not normalized:
        return FALLBACK_TITLE
    if len(normalized) > MAX_TITLE_LENGTH:
        return f"{normalized[:MAX_TITLE_LENGTH]}{TITLE_ELLIPSIS}"
    return normalized


# ---------------------------------------------------------------------------
# Slugs
# ---------------------------------------------------------------------------


def classify_intent(prompt: str) -> SlugIntent:
    lower = prompt.lower()
    if any(keyword in lower for keyword in FIX_KEYWORDS):
        return SlugIntent.FIX
    return SlugIntent.FEAT


def build_worktree_slug(prompt: str, rng: random.Random | None = None) -> str:
    """Build a branch-like slug such as ``fix/login-page-crash``.

    Only the first ``SLUG_TOKEN_LIMIT`` tokens survive.  When nothing usable
    is left (e.g. an emoji-only prompt) a ``run-xxxx`` token is drawn from
    *rng*.  The result is not guaranteed unique; callers disambiguate.
    """
    intent = classify_intent(prompt)
    cleaned = _SLUG_STRIP_RE.sub(" ", prompt.lower()).strip()
    base = "-".join(cleaned.split()[:SLUG_TOKEN_LIMIT])
    if not base:
        base = f"run-{_random_token(rng or random.Random(), 4)}"
    return f"{intent}/{base}"


def normalize_slug(value: str | None) -> str | None:
    """Bring an externally suggested worktree name into ``fix/`` / ``feat/`` form.

    Returns ``None`` when there is nothing usable, signalling the caller to
    fall back to :func:`build_worktree_slug`.
    """
    if not value:
        return None
    trimmed = trim_whitespace(value).lower()
    if not trimmed:
        return None

    if trimmed.startswith(_PREFIXES):
        slug = trimmed
    elif trimmed.startswith("fix-"):
        slug = f"{SlugIntent.FIX}/{trimmed[4:]}"
    elif trimmed.startswith("feat-"):
        slug = f"{SlugIntent.FEAT}/{trimmed[5:]}"
    else:
        slug = f"{SlugIntent.FEAT}/{trimmed.removeprefix('/')}"

    # A bare prefix is not a usable branch name.
    if slug in _PREFIXES:
        return None
    return slug


def branch_for(base_slug: str, counter: int) -> str:
    """Branch name for the *counter*-th worktree of a run (1-based)."""
    if counter == 1:
        return base_slug
    return f"{base_slug}-{counter}"


# ---------------------------------------------------------------------------
# Identifiers and labels
# ---------------------------------------------------------------------------


def create_run_id(now_ms: int, rng: random.Random | None = None) -> str:
    return f"{now_ms}-{_random_token(rng or random.Random(), 6)}"


def resolve_model_label(model: ModelOption | None, fallback: str) -> str:
    if model is None:
        return fallback
    return trim_whitespace(model.display_name) or trim_whitespace(model.model) or fallback
