"""Read the ``[tool.safebash]`` table of pyproject.toml."""

from __future__ import annotations

import dataclasses
import logging
import pathlib
import tomllib
import typing

if typing.TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from safebash.rules import base

logger = logging.getLogger(__name__)

OptionValue = int | str | bool


@dataclasses.dataclass(frozen=True)
class Config:
    """Which rules run and how they are tuned.

    Attributes:
        select: Lowercased ids allowed to run, or ``None`` for the whole catalog.
        ignore: Lowercased ids that never run, even when selected.
        rule_options: ``[tool.safebash.rules.<id>]`` tables, scalar values only.
    """

    select: frozenset[str] | None = None
    ignore: frozenset[str] = frozenset()
    rule_options: dict[str, dict[str, OptionValue]] = dataclasses.field(
        default_factory=dict, hash=False
    )


def normalize_ids(raw: Iterable[str]) -> frozenset[str]:
    """Lowercase and strip rule IDs, dropping empty entries."""
    return frozenset(rule_id.strip().lower() for rule_id in raw if rule_id.strip())


def _nearest_pyproject(start: pathlib.Path) -> pathlib.Path | None:
    for directory in (start, *start.parents):
        candidate = directory / "pyproject.toml"
        if candidate.is_file():
            return candidate
    return None


def _read_section(pyproject: pathlib.Path) -> Mapping[str, typing.Any]:
    """Return ``[tool.safebash]`` from *pyproject*; empty if unusable."""
    try:
        with pyproject.open("rb") as fh:
            data = tomllib.load(fh)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        logger.warning("ignoring unreadable %s: %s", pyproject, exc)
        return {}
    return data.get("tool", {}).get("safebash", {})


def _scalar_options(rules_raw: Mapping[str, object]) -> dict[str, dict[str, OptionValue]]:
    # Nested tables and arrays have no meaning as rule options.
    return {
        rule_id.lower(): {
            key: value for key, value in opts.items() if isinstance(value, OptionValue)
        }
        for rule_id, opts in rules_raw.items()
        if isinstance(opts, dict)
    }


def load_config(start: pathlib.Path | None = None) -> Config:
    """Load the configuration that applies to *start* (the cwd by default).

    The first pyproject.toml found in *start* or one of its parents wins.
    No file, no ``[tool.safebash]`` table, or a file that cannot be parsed
    all mean the default: every rule runs with its built-in options.
    """
    pyproject = _nearest_pyproject(start if start is not None else pathlib.Path.cwd())
    if pyproject is None:
        return Config()

    section = _read_section(pyproject)
    select_raw = section.get("select")
    logger.debug("loaded configuration from %s", pyproject)
    return Config(
        select=normalize_ids(select_raw) if select_raw is not None else None,
        ignore=normalize_ids(section.get("ignore", [])),
        rule_options=_scalar_options(section.get("rules", {})),
    )


def filter_rules(all_rules: Sequence[base.Rule], config: Config) -> list[base.Rule]:
    """Keep the rules that ``select`` admits and ``ignore`` does not name.

    Catalog order is preserved.
    """
    return [
        rule
        for rule in all_rules
        if (config.select is None or rule.rule_id in config.select)
        and rule.rule_id not in config.ignore
    ]


def configure_rules(rules: Sequence[base.Rule], config: Config) -> list[base.Rule]:
    """Swap in ``rule.configure(...)`` for every rule that has options set."""
    configured: list[base.Rule] = []
    for rule in rules:
        opts = config.rule_options.get(rule.rule_id)
        configured.append(rule.configure(opts) if opts else rule)
    return configured


def active_rules(all_rules: Sequence[base.Rule], config: Config) -> list[base.Rule]:
    """Filter *all_rules* by *config*, then apply per-rule options."""
    return configure_rules(filter_rules(all_rules, config), config)
