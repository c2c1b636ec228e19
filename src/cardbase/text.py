"""Text normalisation: markdown → plain text → stemmed tokens → term vector.

The pipeline runs in four steps:

1. :func:`strip_markdown` drops formatting.  Front matter values, prose and
   code survive; math is dropped.  Unparseable input raises
   :class:`~cardbase.errors.FormatStripError`.
2. :func:`expand_contractions` rewrites ``don't`` as ``do not``.
3. :func:`tokenize_and_stem` case-folds, splits on word boundaries, drops stop
   words and Porter-stems what is left.
4. :func:`term_vector` counts tokens, optionally dividing by the total.

:func:`features` chains all four.
"""

from __future__ import annotations

import re
from collections import Counter
from collections.abc import Iterable
from enum import Enum
from typing import Any

import contractions
import yaml
from markdown_it import MarkdownIt
from markdown_it.token import Token
from mdit_py_plugins.dollarmath import dollarmath_plugin
from nltk.stem.porter import PorterStemmer

from cardbase.errors import FormatStripError


class Weighting(str, Enum):
    #: frequency / total tokens in the document
    NORMALIZED = "normalized"
    #: raw term frequency
    RAW = "raw"


# YAML front-matter block
_FRONTMATTER_RE = re.compile(r"^---[ \t]*\n(.*?)\n?---[ \t]*(?:\n|$)", re.DOTALL)
# Runs of letters/digits; underscores split words
_WORD_RE = re.compile(r"[^\W_]+")

_MD = MarkdownIt("commonmark").enable(["table", "strikethrough"]).use(dollarmath_plugin)
_STEMMER = PorterStemmer()

# Block tokens whose ``content`` is kept verbatim
_VERBATIM_BLOCKS = {"fence", "code_block"}
_INLINE_TEXT = {"text", "code_inline"}
_INLINE_BREAKS = {"softbreak", "hardbreak"}

STOP_WORDS = frozenset(
    """
    about above after again all also am an and another any are as at be because
    been before being below between both but by came can cannot come could did
    do does doing during each few for from further get got has had he have her
    here him himself his how if in into is it its itself like make many me
    might more most much must my myself never now of on only or other our ours
    ourselves out over own said same see should since so some still such take
    than that the their theirs them themselves then there these they this those
    through to too under until up very was way we well were what where when
    which while who whom with would why you your yours yourself
    a b c d e f g h i j k l m n o p q r s t u v w x y z
    """.split()
)


# ---------------------------------------------------------------------------
# Step 1: markdown stripping
# ---------------------------------------------------------------------------


def parse_frontmatter(content: str, *, strict: bool = False) -> tuple[dict[str, Any], str]:
    """Split YAML front-matter from body text.

    Returns ``(metadata_dict, body)``; ``metadata_dict`` is empty when there
    is no front-matter block.  A block that loads as something other than a
    mapping (``---`` / ``Heading`` / ``---`` is a rule plus a setext heading)
    is left in the body as markdown.  With ``strict=True`` malformed YAML
    raises :class:`FormatStripError` instead of being ignored.
    """
    match = _FRONTMATTER_RE.match(content)
    if not match:
        return {}, content
    try:
        meta = yaml.safe_load(match.group(1))
    except yaml.YAMLError as exc:
        if strict:
            raise FormatStripError(f"malformed front matter: {exc}") from exc
        return {}, content[match.end() :]
    if meta is None:
        return {}, content[match.end() :]
    if not isinstance(meta, dict):
        return {}, content
    return meta, content[match.end() :]


def _scalar_text(value: Any) -> Iterable[str]:
    if isinstance(value, str):
        yield value
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from _scalar_text(item)


def _inline_text(children: list[Token] | None) -> str:
    parts: list[str] = []
    for child in children or []:
        if child.type in _INLINE_TEXT:
            parts.append(child.content)
        elif child.type in _INLINE_BREAKS:
            parts.append(" ")
        elif child.type == "image":
            parts.append(_inline_text(child.children))
    return "".join(parts)


def strip_markdown(text: str) -> str:
    """Return *text* with markdown formatting removed."""
    if not isinstance(text, str):
        raise FormatStripError(f"expected markdown text, got {type(text).__name__}")

    meta, body = parse_frontmatter(text, strict=True)
    try:
        tokens = _MD.parse(body)
    except Exception as exc:  # noqa: BLE001
        raise FormatStripError(f"could not parse markdown: {exc}") from exc

    parts: list[str] = [value for key in sorted(meta, key=str) for value in _scalar_text(meta[key])]
    for token in tokens:
        if token.type == "inline":
            parts.append(_inline_text(token.children))
        elif token.type in _VERBATIM_BLOCKS:
            parts.append(token.content)
    return "\n".join(p.strip() for p in parts if p.strip())


# ---------------------------------------------------------------------------
# Steps 2-4: contractions, tokens, vectors
# ---------------------------------------------------------------------------


def expand_contractions(text: str) -> str:
    return contractions.fix(text)


def tokenize_and_stem(text: str) -> list[str]:
    """Case-fold, split, drop stop words and stem, preserving token order."""
    words = _WORD_RE.findall(text.casefold())
    return [_STEMMER.stem(w) for w in words if w not in STOP_WORDS]


def term_vector(tokens: Iterable[str], *, normalize: bool = True) -> dict[str, float]:
    counts = Counter(tokens)
    if not normalize:
        return {token: float(n) for token, n in counts.items()}
    total = sum(counts.values())
    return {token: n / total for token, n in counts.items()}


def features(text: str, weighting: Weighting | str = Weighting.NORMALIZED) -> dict[str, float]:
    """Run the whole pipeline over a markdown string."""
    plain = strip_markdown(text)
    tokens = tokenize_and_stem(expand_contractions(plain))
    return term_vector(tokens, normalize=Weighting(weighting) is Weighting.NORMALIZED)
