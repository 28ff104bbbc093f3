"""Text analysis shared by the index builder and the query engine.

The builder and the runtime query path must tokenize identically, otherwise a
query token can never meet the index entry it was meant to hit. Everything
that turns raw text into index keys therefore lives here:

* ``tokenize`` - lowercase, drop punctuation, split on whitespace.
* ``prefixes_for`` / ``build_prefix_index`` - the 2-4 character prefix map that
  is derived from the word index vocabulary.
* ``canonical_identifier`` / ``lookup_keys`` - normalization of lexical
  identifiers (tag family letter + number) for the concordance.
"""

from __future__ import annotations

from collections.abc import Iterable
import re


_PUNCTUATION_PATTERN = re.compile(r"[^\w\s]")
_IDENTIFIER_PATTERN = re.compile(r"^\s*([A-Za-z])?\s*0*(\d+)")
_LOOKUP_PATTERN = re.compile(r"^([A-Z])?0*(\d+)$")

MIN_PREFIX_LENGTH = 2
MAX_PREFIX_LENGTH = 4

FIRST_FAMILY = "H"
SECOND_FAMILY = "G"
TAG_FAMILIES = (FIRST_FAMILY, SECOND_FAMILY)


def tokenize(text: str) -> list[str]:
    """Split ``text`` into lowercase tokens with punctuation removed.

    Characters that are neither word characters (letters, digits, underscore)
    nor whitespace are deleted before splitting, so ``"God's"`` becomes
    ``"gods"`` rather than two tokens.
    """

    if not text:
        return []
    stripped = _PUNCTUATION_PATTERN.sub("", text.lower())
    return [token for token in stripped.split() if token]


def normalize_query(query: str) -> str:
    """Lowercased, trimmed query used for full-string containment checks."""
    return query.lower().strip()


def prefixes_for(token: str) -> list[str]:
    upper = min(MAX_PREFIX_LENGTH, len(token))
    return [token[:length] for length in range(MIN_PREFIX_LENGTH, upper + 1)]


def build_prefix_index(vocabulary: Iterable[str]) -> dict[str, list[str]]:
    """Map every 2-4 character prefix to the tokens that start with it.

    Tokens are listed in first-seen order of ``vocabulary`` and never repeated.
    """

    prefix_index: dict[str, list[str]] = {}
    for token in dict.fromkeys(vocabulary):
        for prefix in prefixes_for(token):
            prefix_index.setdefault(prefix, []).append(token)
    return prefix_index


def family_for_document(document_id: int, first_family_last_document: int) -> str:
    """Tag family implied by a document's position in the corpus."""
    return FIRST_FAMILY if document_id <= first_family_last_document else SECOND_FAMILY


def canonical_identifier(raw: str, default_family: str) -> str | None:
    """Return ``<family><number>`` for a tagged span identifier.

    An explicit ``H``/``G`` prefix wins over ``default_family``; leading zeros
    are dropped so ``"H0430"`` and ``"430"`` (in a first-family document)
    produce the same key. Identifiers without a number yield ``None``.
    """

    match = _IDENTIFIER_PATTERN.match(raw or "")
    if not match:
        return None
    letter, number = match.groups()
    family = letter.upper() if letter and letter.upper() in TAG_FAMILIES else default_family
    return f"{family}{int(number)}"


def lookup_keys(identifier: str) -> list[str]:
    """Concordance keys to consult for a user supplied identifier.

    A recognised family letter selects exactly one key. A bare number is
    ambiguous between the two families, so both keys are returned. Anything
    else (empty input, unknown letter, no digits) has no keys.
    """

    match = _LOOKUP_PATTERN.match((identifier or "").strip().upper())
    if not match:
        return []
    letter, number = match.groups()
    if letter is None:
        return [f"{family}{int(number)}" for family in TAG_FAMILIES]
    if letter in TAG_FAMILIES:
        return [f"{letter}{int(number)}"]
    return []
