"""
Parsing of numbers typed into calculator form fields.
Handles surrounding whitespace, comma decimal separators and scientific notation.
"""

import re
from typing import Optional, Union

from calculations.errors import ParseError

_COMMA_DECIMAL = re.compile(r'^[+-]?\d+,\d+$')


def _normalize(value: str) -> str:
    """
    Clean up a typed number before conversion.

    Handles:
    - Surrounding whitespace
    - Comma as decimal separator (European format), only when there is exactly
      one comma and no dot
    """
    cleaned = value.strip()
    if "," in cleaned and "." not in cleaned and _COMMA_DECIMAL.match(cleaned):
        cleaned = cleaned.replace(",", ".")
    return cleaned


def parse_number(
    value: Union[str, float, int, None],
    field: str,
    label: Optional[str] = None,
) -> float:
    """
    Convert a form field value to float.

    Args:
        value: Raw field value (usually a string)
        field: Field name reported in the error
        label: Human-readable field name for the message (defaults to field)

    Returns:
        Parsed float (may be zero, negative or non-finite; range checks are
        left to the calculators)

    Raises:
        ParseError: If the value is empty, not a number, or an integer too large
            for a float
    """
    label = label or field.replace("_", " ")
    if isinstance(value, bool):
        raise ParseError(f"Please enter a valid {label}.", field=field)
    if isinstance(value, (int, float)):
        try:
            return float(value)
        except OverflowError:
            raise ParseError(f"Please enter a valid {label}.", field=field)
    if value is None or not str(value).strip():
        raise ParseError(f"Please enter a valid {label}.", field=field)

    try:
        return float(_normalize(str(value)))
    except ValueError:
        raise ParseError(f"Please enter a valid {label}.", field=field)


def parse_optional_number(
    value: Union[str, float, int, None],
    field: str,
    label: Optional[str] = None,
) -> Optional[float]:
    """Like parse_number(), but an empty field yields None."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return parse_number(value, field, label)


def parse_ratio(value: Union[str, int, None], field: str = "ratio") -> int:
    """
    Convert a mixing ratio field to int.

    Raises:
        ParseError: If the value is empty or not a whole number
    """
    if isinstance(value, bool):
        raise ParseError("Please choose a valid mixing ratio.", field=field)
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and re.match(r'^\s*[+-]?\d+\s*$', value):
        return int(value)
    raise ParseError("Please choose a valid mixing ratio.", field=field)
