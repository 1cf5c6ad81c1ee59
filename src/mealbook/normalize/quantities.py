"""Free-text quantity parsing and same-unit combination."""

import math
import re
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Literal

from mealbook.logging_config import get_logger

logger = get_logger(__name__)


# =============================================================================
# Parsing
# =============================================================================

VULGAR_FRACTIONS: dict[str, str] = {
    "½": "1/2",
    "⅓": "1/3",
    "⅔": "2/3",
    "¼": "1/4",
    "¾": "3/4",
    "⅕": "1/5",
    "⅖": "2/5",
    "⅗": "3/5",
    "⅘": "4/5",
    "⅙": "1/6",
    "⅚": "5/6",
    "⅛": "1/8",
    "⅜": "3/8",
    "⅝": "5/8",
    "⅞": "7/8",
}

# "1", "1.5", "1/2", "1 1/2"
_NUMBER = r"(?:\d+\s+\d+\s*/\s*\d+|\d+\s*/\s*\d+|\d+(?:\.\d+)?|\.\d+)"
NUMBER_PATTERN = re.compile(rf"^{_NUMBER}$")
RANGE_PATTERN = re.compile(rf"^({_NUMBER})\s*(?:-|–|—|to)\s*({_NUMBER})$")
MIXED_PATTERN = re.compile(r"^(\d+)\s+(\d+)\s*/\s*(\d+)$")
FRACTION_PATTERN = re.compile(r"^(\d+)\s*/\s*(\d+)$")

QuantityKind = Literal["exact", "range", "opaque"]


@dataclass(frozen=True)
class ParsedQuantity:
    """
    A quantity read from free text.

    ``value`` is the number to add up (the lower bound for a range) and is
    None when the text is not a number. ``raw_text`` is always the input as
    given, for display.
    """

    value: float | None
    raw_text: str
    kind: QuantityKind = "opaque"
    upper: float | None = None  # upper bound, ranges only


def _expand_vulgar_fractions(text: str) -> str:
    """Rewrite "1½" as "1 1/2" and "½" as "1/2"."""
    for glyph, ascii_fraction in VULGAR_FRACTIONS.items():
        text = re.sub(rf"(\d)\s*{glyph}", rf"\1 {ascii_fraction}", text)
        text = text.replace(glyph, ascii_fraction)
    return text


def _evaluate(text: str) -> float | None:
    mixed = MIXED_PATTERN.match(text)
    if mixed:
        whole, num, denom = (int(g) for g in mixed.groups())
        return whole + num / denom if denom else None

    fraction = FRACTION_PATTERN.match(text)
    if fraction:
        num, denom = (int(g) for g in fraction.groups())
        return num / denom if denom else None

    return float(text)


def _number_value(text: str) -> float | None:
    """
    Evaluate an integer, decimal, fraction or mixed number.

    Returns None for a zero denominator and for numbers too large to be a
    finite float, so they stay opaque instead of poisoning a sum.
    """
    try:
        value = _evaluate(text)
    except OverflowError:
        return None
    if value is None or not math.isfinite(value):
        return None
    return value


def parse_quantity(text: str | None) -> ParsedQuantity:
    """
    Parse a quantity string.

    Handles formats like:
    - "2", "1.5"
    - "1/2", "1 1/2", "1½"
    - "2-3", "2 to 3" (value is the lower bound)

    Anything else ("a pinch", "2 large", "") is opaque: value None, raw text kept.
    """
    raw_text = text if text is not None else ""
    candidate = _expand_vulgar_fractions(raw_text.strip().lower())

    if NUMBER_PATTERN.match(candidate):
        value = _number_value(candidate)
        if value is not None:
            return ParsedQuantity(value=value, raw_text=raw_text, kind="exact")

    range_match = RANGE_PATTERN.match(candidate)
    if range_match:
        low = _number_value(range_match.group(1).strip())
        high = _number_value(range_match.group(2).strip())
        if low is not None and high is not None:
            return ParsedQuantity(
                value=min(low, high), raw_text=raw_text, kind="range", upper=max(low, high)
            )

    return ParsedQuantity(value=None, raw_text=raw_text)


def normalize_unit(unit: str | None) -> str:
    """Normalize a unit for grouping: trimmed and lowercased, "" when absent."""
    return (unit or "").strip().lower()


# =============================================================================
# Combination
# =============================================================================


@dataclass
class QuantityItem:
    """One quantity to be combined, usually one recipe ingredient line."""

    value: float | None
    unit: str | None
    raw_text: str
    upper: float | None = None
    notes: str | None = None  # preparation notes, e.g. "finely chopped"

    @classmethod
    def from_text(
        cls, quantity_text: str | None, unit: str | None, notes: str | None = None
    ) -> "QuantityItem":
        """Parse a stored quantity/unit pair into an item."""
        parsed = parse_quantity(quantity_text)
        return cls(
            value=parsed.value,
            unit=unit,
            raw_text=parsed.raw_text,
            upper=parsed.upper,
            notes=notes,
        )


@dataclass
class QuantityEntry:
    """
    One entry of a combined quantity.

    A ``sum`` entry folds ``line_count`` items of the same unit into ``total``
    (and ``total_max`` when a range contributed). A ``literal`` entry repeats
    a single item verbatim. ``notes`` holds the distinct notes of the items
    behind the entry.
    """

    kind: Literal["sum", "literal"]
    unit: str | None
    total: float | None = None
    total_max: float | None = None
    raw_text: str | None = None
    line_count: int = 1
    notes: list[str] = field(default_factory=list)

    def display(self) -> str:
        """Human-readable text such as "1.5 cup", "2-3 cloves" or "a pinch"."""
        if self.kind == "literal":
            return " ".join(part for part in (self.raw_text, self.unit) if part)
        amount = format_amount(self.total)
        if self.total_max is not None and self.total_max != self.total:
            amount = f"{amount}-{format_amount(self.total_max)}"
        return f"{amount} {self.unit}".strip()


@dataclass
class CombinedQuantity:
    """All quantities of one ingredient, folded where units allow."""

    entries: list[QuantityEntry] = field(default_factory=list)

    @property
    def line_count(self) -> int:
        """Number of input items represented."""
        return sum(entry.line_count for entry in self.entries)

    def display(self) -> str:
        return " + ".join(entry.display() for entry in self.entries)


def format_amount(value: float | None) -> str:
    """Format a number without a trailing ".0" and with at most two decimals."""
    if value is None:
        return ""
    if value == int(value):
        return str(int(value))
    return f"{value:.2f}".rstrip("0").rstrip(".")


def _distinct_notes(items: list[QuantityItem]) -> list[str]:
    notes = ((item.notes or "").strip() for item in items)
    return list(dict.fromkeys(note for note in notes if note))


def _literal(item: QuantityItem) -> QuantityEntry:
    unit = (item.unit or "").strip() or None
    return QuantityEntry(
        kind="literal", unit=unit, raw_text=item.raw_text, notes=_distinct_notes([item])
    )


def combine_quantities(items: list[QuantityItem]) -> CombinedQuantity:
    """
    Combine quantities that share a unit.

    Items are grouped by normalized unit. A group of two or more items that
    all have a numeric value becomes one summed entry. Every other item (no
    unit, a unit nothing else shares, or a group containing a non-numeric
    quantity) is listed on its own. Each input item is represented exactly
    once in the result, in first-seen order of its group.
    """
    groups: dict[str, list[QuantityItem]] = defaultdict(list)
    for item in items:
        groups[normalize_unit(item.unit)].append(item)

    combined = CombinedQuantity()
    for unit, group in groups.items():
        summable = (
            unit != ""
            and len(group) > 1
            and all(item.value is not None for item in group)
        )
        if not summable:
            combined.entries.extend(_literal(item) for item in group)
            continue

        total = sum(item.value for item in group)
        has_range = any(item.upper is not None for item in group)
        total_max = (
            sum(item.upper if item.upper is not None else item.value for item in group)
            if has_range
            else None
        )
        if not math.isfinite(total) or (total_max is not None and not math.isfinite(total_max)):
            logger.debug(f"Sum of {len(group)} '{unit}' quantities overflows, listing them")
            combined.entries.extend(_literal(item) for item in group)
            continue

        combined.entries.append(
            QuantityEntry(
                kind="sum",
                unit=unit,
                total=total,
                total_max=total_max,
                line_count=len(group),
                notes=_distinct_notes(group),
            )
        )

    logger.debug(f"Combined {len(items)} quantities into {len(combined.entries)} entries")
    return combined
