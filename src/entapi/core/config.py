"""
Configuration for entapi.

Defines ApiSettings, a frozen dataclass carrying runtime configuration for schema
parsing, property binding and the CLI. Defaults are sourced from
entapi.core.constants.

Source of truth
- entapi.core.constants.DIRECTIVE_PREFIX, PROPERTY_SEPARATOR

Notes
- Precedence: env > TOML > defaults.
- ApiSettings is hashable and is part of the schema cache key, so schemas parsed
  under different prefixes or strictness never share a cache entry.
"""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from .constants import DIRECTIVE_PREFIX, PROPERTY_SEPARATOR

__all__ = ["ApiSettings"]

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _bool(v: Any) -> bool:
    if isinstance(v, bool):
        return v
    if isinstance(v, (int, float)):
        return bool(v)
    if isinstance(v, str):
        return v.strip().lower() in {"1", "true", "t", "yes", "y", "on"}
    return False


@dataclass(frozen=True)
class ApiSettings:
    """
    Runtime settings for entapi.

    Attributes:
        directive_prefix (str): Prefix that introduces a metadata directive (default ``@Api\\``).
        strict_directives (bool): Raise SchemaParseError on unrecognized directive names
            and attribute keys instead of ignoring them.
        property_separator (str): Separator inserted before upper-case letters by the
            compound-word fallback (``lastName`` -> ``last_name``).
        log_level (str): Logging level used by the CLI.

    Examples:
        >>> from entapi.core.config import ApiSettings
        >>> ApiSettings(strict_directives=True).strict_directives
        True
    """

    directive_prefix: str = DIRECTIVE_PREFIX
    strict_directives: bool = False
    property_separator: str = PROPERTY_SEPARATOR
    log_level: str = "WARNING"

    @property
    def log_level_value(self) -> int:
        return getattr(logging, self.log_level, logging.WARNING)

    @classmethod
    def _apply_mapping(cls, base: ApiSettings, cfg: dict[str, Any] | None) -> ApiSettings:
        """Apply a loose config mapping onto ApiSettings, returning a new instance."""
        if not isinstance(cfg, dict):
            return base

        s = base

        if isinstance(cfg.get("directive_prefix"), str) and cfg["directive_prefix"]:
            s = replace(s, directive_prefix=cfg["directive_prefix"])

        if "strict_directives" in cfg:
            s = replace(s, strict_directives=_bool(cfg["strict_directives"]))

        if isinstance(cfg.get("property_separator"), str):
            s = replace(s, property_separator=cfg["property_separator"])

        if isinstance(cfg.get("log_level"), str):
            level = cfg["log_level"].strip().upper()
            if level in _LOG_LEVELS:
                s = replace(s, log_level=level)

        return s

    @classmethod
    def from_env(cls, base: ApiSettings | None = None, prefix: str = "ENTAPI_") -> ApiSettings:
        """
        Build ApiSettings from environment variables. Precedence is env > base (if provided) > defaults.

        Recognized variables:
            - ENTAPI_DIRECTIVE_PREFIX
            - ENTAPI_STRICT_DIRECTIVES (1/0/true/false/yes/no/on/off)
            - ENTAPI_PROPERTY_SEPARATOR
            - ENTAPI_LOG_LEVEL
        """
        s = base or cls()
        mapping: dict[str, Any] = {}
        for key in ("directive_prefix", "strict_directives", "property_separator", "log_level"):
            v = os.getenv(prefix + key.upper())
            if v:
                mapping[key] = v
        return cls._apply_mapping(s, mapping)

    @classmethod
    def from_toml(cls, path: str | os.PathLike[str] | None = None) -> ApiSettings:
        """
        Build ApiSettings from a TOML file.

        Search order when `path` is None:
            1) ./entapi.toml (with either a top-level [entapi] table or direct keys)
            2) ./pyproject.toml under [tool.entapi]

        Returns defaults if no file is present or it cannot be parsed.
        """
        s = cls()

        def _load_toml(p: Path) -> dict[str, Any] | None:
            try:
                with p.open("rb") as fh:
                    return tomllib.load(fh)
            except (OSError, tomllib.TOMLDecodeError):
                return None

        cand: list[Path] = []
        if path is not None:
            cand.append(Path(path))
        else:
            cand.append(Path.cwd() / "entapi.toml")
            cand.append(Path.cwd() / "pyproject.toml")

        cfg: dict[str, Any] | None = None
        for p in cand:
            if not p.exists():
                continue
            data = _load_toml(p)
            if not isinstance(data, dict):
                continue
            if p.name == "pyproject.toml":
                tool = data.get("tool", {})
                cfg = tool.get("entapi") if isinstance(tool, dict) else None
            elif isinstance(data.get("entapi"), dict):
                cfg = data["entapi"]
            else:
                cfg = data
            if cfg:
                break

        return cls._apply_mapping(s, cfg)

    @classmethod
    def load(cls, path: str | os.PathLike[str] | None = None) -> ApiSettings:
        """
        Load ApiSettings applying precedence: environment > TOML > defaults.

        Args:
            path: Optional explicit TOML path. If None, search defaults (entapi.toml, pyproject.toml).
        """
        s = cls.from_toml(path)
        return cls.from_env(base=s)
