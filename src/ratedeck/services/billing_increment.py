"""Billing increment normalization and A-Z batch validation.

A billing increment is written "initial/subsequent" in seconds, e.g. "60/1"
bills the first minute whole and then per second. Only a fixed set of
increments is accepted; anything else is reported, never coerced.
"""

import re
from dataclasses import dataclass, field

VALID_BILLING_INCREMENTS: tuple[str, ...] = (
    "1/1",
    "6/6",
    "30/30",
    "60/60",
    "30/6",
    "60/6",
    "60/1",
)

DEFAULT_BILLING_INCREMENT = "60/60"

_SINGLE_NUMBER = re.compile(r"^(\d+)$")
_FRACTION = re.compile(r"^(\d+)/(\d+)$")

# Column widths of the az_destinations table
MAX_LENGTHS = {"code": 32, "destination": 255, "region": 128}


@dataclass(frozen=True)
class NormalizationResult:
    value: str | None
    error: str | None = None


@dataclass
class RowValidationError:
    row: int
    column: str
    value: str
    message: str

    def to_dict(self) -> dict:
        return {"row": self.row, "column": self.column, "value": self.value, "message": self.message}


@dataclass
class ValidationResult:
    errors: list[RowValidationError] = field(default_factory=list)
    destinations: list[dict] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def normalize_billing_increment(value: str | int | None) -> NormalizationResult:
    """Normalize a user-supplied billing increment.

    Empty input yields the default. Dashes and colons are read as slashes,
    whitespace is dropped and a bare number ``n`` means ``n/n``.
    """
    if value is None:
        return NormalizationResult(DEFAULT_BILLING_INCREMENT)

    raw = str(value)
    candidate = raw.strip().lower()
    if not candidate:
        return NormalizationResult(DEFAULT_BILLING_INCREMENT)

    candidate = re.sub(r"[-:]", "/", candidate)
    candidate = re.sub(r"\s+", "", candidate)

    single = _SINGLE_NUMBER.match(candidate)
    if single:
        candidate = f"{single.group(1)}/{single.group(1)}"

    fraction = _FRACTION.match(candidate)
    if not fraction:
        return NormalizationResult(
            None,
            f'Invalid format "{raw}". Expected format like "60/60", "60/1", "30/6", etc.',
        )

    candidate = f"{fraction.group(1)}/{fraction.group(2)}"
    if candidate in VALID_BILLING_INCREMENTS:
        return NormalizationResult(candidate)

    return NormalizationResult(
        None,
        f'Invalid billing increment "{raw}". Valid values: {", ".join(VALID_BILLING_INCREMENTS)}',
    )


def _clean(value) -> str:
    return "" if value is None else str(value).strip()


def validate_and_normalize_destinations(
    rows: list[dict], row_numbers: list[int] | None = None
) -> ValidationResult:
    """Validate a whole batch of candidate destinations.

    Each row is a dict with ``code``, ``destination`` and optional ``region``
    and ``billingIncrement``. Row numbers default to the spreadsheet numbering
    of a file with a header line (first data row is 2). Every problem is
    reported; a row may produce several errors.
    """
    result = ValidationResult()
    seen_codes: dict[str, int] = {}

    for index, row in enumerate(rows):
        row_number = row_numbers[index] if row_numbers else index + 2
        raw_increment = row.get("billingIncrement")

        increment = normalize_billing_increment(raw_increment)
        if increment.error:
            result.errors.append(
                RowValidationError(row_number, "billingIncrement", _clean(raw_increment), increment.error)
            )

        code = _clean(row.get("code"))
        destination = _clean(row.get("destination"))
        if not code:
            result.errors.append(RowValidationError(row_number, "code", "", "Code is required"))
        elif code in seen_codes:
            result.errors.append(
                RowValidationError(
                    row_number,
                    "code",
                    code,
                    f"Duplicate code (first seen on row {seen_codes[code]})",
                )
            )
        else:
            seen_codes[code] = row_number

        if not destination:
            result.errors.append(
                RowValidationError(row_number, "destination", "", "Destination is required")
            )

        region = _clean(row.get("region")) or None
        for column, value in (("code", code), ("destination", destination), ("region", region)):
            limit = MAX_LENGTHS[column]
            if value and len(value) > limit:
                result.errors.append(
                    RowValidationError(
                        row_number,
                        column,
                        value,
                        f"{column.capitalize()} must be at most {limit} characters",
                    )
                )

        result.destinations.append(
            {
                "code": code,
                "destination": destination,
                "region": region,
                "billingIncrement": increment.value,
            }
        )

    return result


def format_validation_errors(errors: list[RowValidationError], max_errors: int = 10) -> str:
    """Render errors one per line, truncated after max_errors."""
    if not errors:
        return ""

    lines = [f"Row {e.row}: {e.column} - {e.message}" for e in errors[:max_errors]]
    if len(errors) > max_errors:
        lines.append(f"...and {len(errors) - max_errors} more errors")
    return "\n".join(lines)
