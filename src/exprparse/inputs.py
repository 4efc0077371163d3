"""Readers for formula files and binding text supplied by callers."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path

_NAME_PATTERN = r"[A-Za-z][A-Za-z0-9_]*"
_NAME_RE = re.compile(_NAME_PATTERN)
_ASSIGN_TARGET_RE = re.compile(rf"^\s*({_NAME_PATTERN})\s*=")
_PAIR_SPLIT_RE = re.compile(r"[\s,]+")


@dataclass
class FormulaFile:
    """Contents of a formula file.

    Attributes:
        formula: The first non-blank line, stripped.
        bindings: Values from ``name = number`` lines.
        skipped: ``(line_number, text)`` for lines that were not bindings.
    """

    formula: str
    bindings: dict[str, float] = field(default_factory=dict)
    skipped: list[tuple[int, str]] = field(default_factory=list)


def read_formula_file(path: Path) -> FormulaFile:
    """Read a formula file.

    Layout: the first non-blank line is the formula; each later
    non-blank line is a binding such as ``R = 1500``.

    Raises:
        ValueError: If the file holds no formula.
    """
    text = path.read_text(encoding="utf-8")
    formula: str | None = None
    bindings: dict[str, float] = {}
    skipped: list[tuple[int, str]] = []

    for lineno, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            continue
        if formula is None:
            formula = line.strip()
            continue
        pair = _parse_pair(line)
        if pair is None:
            skipped.append((lineno, line.strip()))
        else:
            bindings[pair[0]] = pair[1]

    if formula is None:
        raise ValueError(f"No formula found in {path}")
    return FormulaFile(formula=formula, bindings=bindings, skipped=skipped)


def parse_bindings_text(text: str) -> dict[str, float]:
    """Parse interactive binding input such as ``"R=1500 C=1000"``.

    Pairs may be separated by whitespace or commas. Pairs that do not parse
    are ignored.
    """
    bindings: dict[str, float] = {}
    for part in _PAIR_SPLIT_RE.split(text.strip()):
        pair = _parse_pair(part) if part else None
        if pair is not None:
            bindings[pair[0]] = pair[1]
    return bindings


def parse_overrides(items: tuple[str, ...]) -> dict[str, float]:
    """Parse ``--set name=value`` items.

    Raises:
        ValueError: If an item is not ``name=number`` or the name is not a
            valid identifier.
    """
    bindings: dict[str, float] = {}
    for item in items:
        pair = _parse_pair(item)
        if pair is None:
            raise ValueError(f"Invalid --set format: {item!r}. Use name=number.")
        if not _NAME_RE.fullmatch(pair[0]):
            raise ValueError(f"Invalid --set name: {pair[0]!r} is not a variable name.")
        bindings[pair[0]] = pair[1]
    return bindings


def result_label(formula: str) -> str:
    """Name to print next to a result.

    ``"ROI = (R - C) / C"`` gives ``"ROI"``; a formula without an
    assignment is labelled with its own text.
    """
    match = _ASSIGN_TARGET_RE.match(formula)
    if match:
        return match.group(1)
    return formula.strip()


def _parse_pair(text: str) -> tuple[str, float] | None:
    if "=" not in text:
        return None
    name, value = text.split("=", 1)
    name = name.strip()
    if not name:
        return None
    try:
        return name, float(value.strip())
    except ValueError:
        return None
