from __future__ import annotations

import argparse
import logging
import sys

from dotenv import load_dotenv

from . import objects  # noqa: F401  (registers the bundled entity types)
from .core.binder import EntityState, bind
from .core.config import ApiSettings
from .core.constants import VERBS
from .core.errors import (
    SchemaParseError,
    UnknownEntityTypeError,
    UnknownPropertyError,
    UnknownValidatorError,
)
from .core.hashing import json_dumps_canonical, schema_fingerprint
from .core.loaders import load_entity_type
from .core.registry import get_entity_type, get_schema, list_entity_types
from .core.validation import check
from .logging_utils import configure_cli_logging

logger = logging.getLogger(__name__)

# Lookup and declaration problems exit with 2; failed validation exits with 1.
_USAGE_ERRORS = (
    UnknownEntityTypeError,
    UnknownPropertyError,
    UnknownValidatorError,
    SchemaParseError,
)


def _key_value(raw: str) -> tuple[str, str]:
    """Parse a ``key=value`` command-line pair."""
    key, sep, value = raw.partition("=")
    if not sep or not key.strip():
        raise argparse.ArgumentTypeError(f"expected key=value, got {raw!r}")
    return key.strip(), value


def _entity_type(args: argparse.Namespace) -> type:
    """Registered type named on the command line, or one built from --declarations."""
    if args.declarations:
        return load_entity_type(args.declarations)
    return get_entity_type(args.entity_type)


def _cmd_types(args: argparse.Namespace, settings: ApiSettings) -> int:
    for name in list_entity_types():
        print(name)
    return 0


def _cmd_schema(args: argparse.Namespace, settings: ApiSettings) -> int:
    schema = get_schema(_entity_type(args), settings)
    print(json_dumps_canonical(schema.to_dict()))
    print(f"fingerprint: {schema_fingerprint(schema)}")
    return 0


def _cmd_check(args: argparse.Namespace, settings: ApiSettings) -> int:
    schema = get_schema(_entity_type(args), settings)
    state = EntityState(allowed=schema.field_names)
    for key, value in args.values:
        bind(state, key, value, separator=settings.property_separator)
    for key, value in args.context:
        bind(state, key, value, to_context=True, separator=settings.property_separator)

    error = check(schema, state, verb=args.verb).failure()
    if error is None:
        print("ok")
        return 0
    print(f"{type(error).__name__}: {error}")
    return 1


def _add_entity_arguments(p: argparse.ArgumentParser) -> None:
    p.add_argument("entity_type", nargs="?", help="Registered entity type name.")
    p.add_argument(
        "--declarations",
        type=str,
        default=None,
        metavar="FILE.yaml",
        help="Read field declarations from a YAML document instead of a registered type.",
    )


def build_argparser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="entapi", description="Inspect entity schemas and check values against them."
    )
    p.add_argument("--config", type=str, default=None, help="Path to an entapi TOML file.")
    p.add_argument("-v", "--verbose", action="store_true", help="Log at DEBUG level.")
    sub = p.add_subparsers(dest="cmd", required=True)

    types = sub.add_parser("types", help="List registered entity types.")
    types.set_defaults(func=_cmd_types)

    schema = sub.add_parser("schema", help="Print a parsed schema as canonical JSON.")
    _add_entity_arguments(schema)
    schema.set_defaults(func=_cmd_schema)

    chk = sub.add_parser("check", help="Validate values without dispatching.")
    _add_entity_arguments(chk)
    chk.add_argument("--verb", choices=VERBS, default=None, help="Verb to validate for.")
    chk.add_argument(
        "--set",
        dest="values",
        type=_key_value,
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Value to bind with set(); repeatable.",
    )
    chk.add_argument(
        "--context",
        dest="context",
        type=_key_value,
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Value to bind with context(); repeatable.",
    )
    chk.set_defaults(func=_cmd_check)
    return p


def main(argv: list[str] | None = None) -> None:
    argv = list(sys.argv[1:] if argv is None else argv)
    if not argv:
        build_argparser().print_help()
        return
    parser = build_argparser()
    args = parser.parse_args(argv)
    if args.cmd in ("schema", "check") and not (args.entity_type or args.declarations):
        parser.error(f"{args.cmd}: give an entity type or --declarations FILE.yaml")

    load_dotenv()
    settings = ApiSettings.load(args.config)
    configure_cli_logging(logging.DEBUG if args.verbose else settings.log_level_value)

    try:
        code = args.func(args, settings)
    except _USAGE_ERRORS as exc:
        logger.error("%s", exc)
        code = 2
    raise SystemExit(code)


if __name__ == "__main__":
    main()
