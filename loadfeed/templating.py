"""Placeholder substitution: {ColumnName} -> record value."""

from __future__ import annotations

import re
from collections.abc import Mapping

# {ColumnName}: anything but braces between one pair of braces
TOKEN_PATTERN = re.compile(r"\{([^{}]+)\}")


def substitute(text: str, record: Mapping[str, str]) -> str:
    """Replace every {Name} whose Name is a key of record; unknown tokens stay verbatim.

    Single pass: values inserted here are never re-scanned for further tokens.
    Key matching follows the record's own lookup (case-insensitive for Record).
    """
    if "{" not in text:
        return text

    def repl(match: re.Match[str]) -> str:
        name = match.group(1)
        if name in record:
            return record[name]
        return match.group(0)

    return TOKEN_PATTERN.sub(repl, text)


def substitute_headers(headers: Mapping[str, str], record: Mapping[str, str]) -> dict[str, str]:
    """Substitute header values only; names are never rewritten."""
    return {name: substitute(value, record) for name, value in headers.items()}
