"""
Metadata directive scanner.

Field metadata is free-form text (typically a docblock) carrying directives of the
form ``@Api\\Name(args)``. This module finds every directive, checks that its
argument list is balanced, splits the arguments, and returns typed ``Directive``
values for the schema registry to fold into descriptors.

Responsibilities
- Define the closed set of directive kinds (DirectiveKind) and their accepted names.
- Scan metadata text for the directive prefix with quote- and paren-aware balancing.
- Split argument lists into a leading positional value plus ``key="value"`` pairs.
- Build the same Directive values from a plain mapping (YAML declarations).

Argument grammar
----------------
    args      = [ argument { "," argument } ]
    argument  = value | key "=" value
    value     = '"' chars '"' | "'" chars "'" | bare
    key       = letter { letter | digit | "_" }

Inside quotes a backslash escapes the enclosing quote character; every other
backslash is kept verbatim so regular expressions such as ``[0-9]+\\d`` survive.
Parentheses and commas inside quotes are literal.

Examples
--------
>>> from entapi.core.directives import parse_directives, DirectiveKind
>>> found = parse_directives('@Api\\\\Table("user") @Api\\\\Column(name="uid", type="int")')
>>> [d.kind for d in found] == [DirectiveKind.TABLE, DirectiveKind.COLUMN]
True
>>> found[1].get("type")
'int'
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .constants import DIRECTIVE_PREFIX
from .errors import SchemaParseError

__all__ = [
    "DirectiveKind",
    "Directive",
    "directive_kind_from_name",
    "parse_directives",
    "split_arguments",
    "directives_from_mapping",
]

logger = logging.getLogger(__name__)


class DirectiveKind(Enum):
    """
    Recognized metadata instructions.

    Serialized values are lower_snake; accepted spellings in metadata text are
    listed in ``_KIND_BY_NAME`` (names are case-insensitive).
    """

    TABLE = "table"
    COLUMN = "column"
    VALIDATE = "validate"
    GROUP = "group"
    CONTEXTUAL = "contextual"


_KIND_BY_NAME: dict[str, DirectiveKind] = {
    "table": DirectiveKind.TABLE,
    "column": DirectiveKind.COLUMN,
    "validate": DirectiveKind.VALIDATE,
    "oneingroup": DirectiveKind.GROUP,
    "group": DirectiveKind.GROUP,
    "contextual": DirectiveKind.CONTEXTUAL,
}

_NAME_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_KEYED_RE = re.compile(r"([A-Za-z_][A-Za-z0-9_]*)\s*=\s*(.*)", re.DOTALL)
_QUOTES = ("'", '"')


@dataclass(frozen=True, slots=True)
class Directive:
    """
    One parsed directive.

    Attributes:
        kind (DirectiveKind): Directive kind.
        name (str): Spelling found in the source (e.g. "OneInGroup").
        positional (str | None): Leading positional value, if any.
        options (tuple[tuple[str, str], ...]): Keyed arguments in source order; keys lower-cased.
    """

    kind: DirectiveKind
    name: str
    positional: str | None = None
    options: tuple[tuple[str, str], ...] = ()

    def get(self, key: str, default: str | None = None) -> str | None:
        for k, v in self.options:
            if k == key:
                return v
        return default

    def keys(self) -> tuple[str, ...]:
        return tuple(k for k, _ in self.options)

    def value(self, key: str = "name") -> str | None:
        """Positional value, falling back to the keyed argument ``key``."""
        if self.positional is not None:
            return self.positional
        return self.get(key)


def directive_kind_from_name(name: str) -> DirectiveKind | None:
    """
    Map a directive spelling onto its kind.

    Args:
        name (str): Directive name as written (case-insensitive).

    Returns:
        DirectiveKind | None: The kind, or None if the name is not recognized.
    """
    return _KIND_BY_NAME.get(name.lower())


def _scan_argument_list(text: str, open_at: int) -> tuple[str, int]:
    # Return (inner text, index just past the closing paren) for the "(" at open_at.
    depth = 0
    quote: str | None = None
    i = open_at
    while i < len(text):
        ch = text[i]
        if quote is not None:
            if ch == "\\" and i + 1 < len(text):
                i += 2
                continue
            if ch == quote:
                quote = None
        elif ch in _QUOTES:
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return text[open_at + 1 : i], i + 1
        i += 1
    if quote is not None:
        raise SchemaParseError(f"unterminated {quote} quote in argument list at offset {open_at}")
    raise SchemaParseError(f"unbalanced parentheses in argument list at offset {open_at}")


def split_arguments(body: str) -> list[str]:
    """
    Split an argument list on top-level commas.

    Args:
        body (str): Text between the directive's parentheses.

    Returns:
        list[str]: Stripped argument strings (empty list for an empty body).

    Raises:
        SchemaParseError: On an empty argument (e.g. ``a="1",,b="2"``).
    """
    if not body.strip():
        return []
    parts: list[str] = []
    buffer: list[str] = []
    depth = 0
    quote: str | None = None
    i = 0
    while i < len(body):
        ch = body[i]
        if quote is not None:
            buffer.append(ch)
            if ch == "\\" and i + 1 < len(body):
                i += 1
                buffer.append(body[i])
            elif ch == quote:
                quote = None
            i += 1
            continue
        if ch in _QUOTES:
            quote = ch
            buffer.append(ch)
        elif ch in "([{":
            depth += 1
            buffer.append(ch)
        elif ch in ")]}":
            depth = max(0, depth - 1)
            buffer.append(ch)
        elif ch == "," and depth == 0:
            parts.append("".join(buffer).strip())
            buffer = []
        else:
            buffer.append(ch)
        i += 1
    parts.append("".join(buffer).strip())
    if any(not part for part in parts):
        raise SchemaParseError(f"empty argument in {body!r}")
    return parts


def _unquote(raw: str) -> str:
    if not raw or raw[0] not in _QUOTES:
        return raw
    quote = raw[0]
    if len(raw) < 2 or raw[-1] != quote:
        raise SchemaParseError(f"malformed quoted value {raw!r}")
    out: list[str] = []
    inner = raw[1:-1]
    i = 0
    while i < len(inner):
        ch = inner[i]
        if ch == "\\" and i + 1 < len(inner) and inner[i + 1] == quote:
            out.append(quote)
            i += 2
            continue
        if ch == quote:
            raise SchemaParseError(f"stray {quote} inside quoted value {raw!r}")
        out.append(ch)
        i += 1
    return "".join(out)


def _parse_arguments(name: str, body: str) -> tuple[str | None, tuple[tuple[str, str], ...]]:
    positional: str | None = None
    options: dict[str, str] = {}
    for index, part in enumerate(split_arguments(body)):
        match = _KEYED_RE.fullmatch(part)
        if match is not None:
            key = match.group(1).lower()
            if key in options:
                raise SchemaParseError(f"directive {name!r} repeats argument {key!r}")
            options[key] = _unquote(match.group(2).strip())
        elif index == 0:
            positional = _unquote(part)
        else:
            raise SchemaParseError(
                f"directive {name!r}: positional argument {part!r} must come first"
            )
    return positional, tuple(options.items())


def parse_directives(
    text: str | None,
    *,
    prefix: str = DIRECTIVE_PREFIX,
    strict: bool = False,
) -> tuple[Directive, ...]:
    """
    Extract every recognized directive from a metadata block.

    Args:
        text (str | None): Free-form metadata text.
        prefix (str): Directive prefix to scan for (default ``@Api\\``).
        strict (bool): Raise on unrecognized directive names instead of skipping them.

    Returns:
        tuple[Directive, ...]: Directives in source order.

    Raises:
        SchemaParseError: If a directive has no name, a recognized directive has no
            argument list, parentheses or quotes are unbalanced, or (strict mode) a
            name is unrecognized.

    Notes:
        An unrecognized directive may omit its argument list (``@Api\\Deprecated``).
        When it has one, the list is still scanned for balance, so a malformed
        unknown directive is an error in both modes.
    """
    if not text:
        return ()
    found: list[Directive] = []
    pos = 0
    while True:
        start = text.find(prefix, pos)
        if start < 0:
            break
        match = _NAME_RE.match(text, start + len(prefix))
        if match is None:
            raise SchemaParseError(f"directive name expected after {prefix!r} at offset {start}")
        name = match.group(0)
        open_at = match.end()
        kind = directive_kind_from_name(name)
        if kind is None and strict:
            raise SchemaParseError(f"unrecognized directive {name!r}")
        has_args = open_at < len(text) and text[open_at] == "("
        if kind is None:
            logger.debug("Ignoring unrecognized directive %r", name)
            pos = _scan_argument_list(text, open_at)[1] if has_args else open_at
            continue
        if not has_args:
            raise SchemaParseError(f"directive {name!r} is missing its argument list")
        body, pos = _scan_argument_list(text, open_at)
        positional, options = _parse_arguments(name, body)
        found.append(Directive(kind=kind, name=name, positional=positional, options=options))
    return tuple(found)


def _as_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _option_key(key: Any) -> str:
    # YAML 1.1 loads a bare `on:` key as True.
    if key is True:
        return "on"
    return str(key).lower()


def _options(mapping: Mapping[str, Any]) -> tuple[tuple[str, str], ...]:
    return tuple((_option_key(k), _as_text(v)) for k, v in mapping.items() if v is not None)


def directives_from_mapping(entry: Mapping[str, Any]) -> tuple[Directive, ...]:
    """
    Build directives from a structured field description.

    Args:
        entry (Mapping[str, Any]): Mapping with any of the keys ``table`` (str),
            ``column`` (mapping), ``validate`` (mapping), ``group``/``one_in_group``
            (str, mapping, or list of those), and ``contextual`` (bool).

    Returns:
        tuple[Directive, ...]: Directives equivalent to the text form.

    Raises:
        SchemaParseError: On an unrecognized key or a value of the wrong shape.

    Examples:
        >>> d = directives_from_mapping({"table": "user", "contextual": True})
        >>> [x.kind.value for x in d]
        ['table', 'contextual']
    """
    found: list[Directive] = []
    for key, value in entry.items():
        kind = directive_kind_from_name(str(key).replace("_", ""))
        if kind is None:
            raise SchemaParseError(f"unrecognized directive key {key!r}")
        if kind is DirectiveKind.CONTEXTUAL:
            if value:
                found.append(Directive(kind=kind, name=str(key)))
            continue
        items = value if isinstance(value, list) else [value]
        for item in items:
            if isinstance(item, Mapping):
                found.append(Directive(kind=kind, name=str(key), options=_options(item)))
            elif isinstance(item, (str, int)) and not isinstance(item, bool):
                found.append(Directive(kind=kind, name=str(key), positional=str(item)))
            else:
                raise SchemaParseError(f"directive {key!r} has an unsupported value {item!r}")
    return tuple(found)
