"""Text <-> typed value conversion for variable editing.

``coerce`` turns operator-entered text into the value stored upstream. Rules are
tried in order and the first match wins:

1. trimmed text starting with ``{`` or ``[`` is parsed as strict JSON; if that
   fails the text is kept as a plain string (rule 4), never tried as a number
2. trimmed text that is entirely a decimal literal becomes ``int`` or ``float``
3. trimmed text equal to ``true``/``false`` (any case) becomes ``bool``
4. anything else is returned unchanged

``render`` is the inverse used to prefill edit fields, so that
``coerce(render(v)) == v`` holds for every ``v`` that ``coerce`` can produce.

Empty input is rejected by callers before coercion.
"""

from __future__ import annotations

import json
import math
import re
from typing import Any, Literal

_NUMBER_RE = re.compile(
    r"""
    [+-]?
    (?:
        (?P<int>\d+)(?P<frac>\.\d*)?
        |
        (?P<lead>\.\d+)
    )
    (?P<exp>[eE][+-]?\d+)?
    """,
    re.VERBOSE | re.ASCII,
)

ValueType = Literal["object", "number", "boolean", "string"]


def _reject_constant(name: str) -> Any:
    # json accepts NaN/Infinity by default; they would not survive a round trip.
    raise ValueError(f"Unsupported JSON constant: {name}")


def _parse_finite_float(literal: str) -> float:
    value = float(literal)
    # Overflowing literals such as 1e400 parse to inf.
    if not math.isfinite(value):
        raise ValueError(f"Out of range number: {literal}")
    return value


def parse_structured(text: str) -> dict[str, Any] | list[Any] | None:
    try:
        value = json.loads(
            text, parse_float=_parse_finite_float, parse_constant=_reject_constant
        )
    except ValueError:
        return None
    if isinstance(value, dict | list):
        return value
    return None


def parse_number(text: str) -> int | float | None:
    match = _NUMBER_RE.fullmatch(text)
    if match is None:
        return None
    if match.group("frac") is None and match.group("lead") is None and match.group("exp") is None:
        try:
            return int(text)
        except ValueError:
            # Exceeds the interpreter's int digit limit.
            return None
    value = float(text)
    if not math.isfinite(value):
        return None
    return value


def parse_boolean(text: str) -> bool | None:
    lowered = text.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    return None


def coerce(text: str) -> Any:
    stripped = text.strip()

    if stripped.startswith(("{", "[")):
        structured = parse_structured(stripped)
        if structured is not None:
            return structured
        return text

    number = parse_number(stripped)
    if number is not None:
        return number

    boolean = parse_boolean(stripped)
    if boolean is not None:
        return boolean

    return text


def render(value: Any) -> str:
    if isinstance(value, dict | list):
        return json.dumps(value, indent=2, ensure_ascii=False)
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


def value_type(value: Any) -> ValueType:
    if isinstance(value, dict | list):
        return "object"
    # bool is an int subclass; check it first.
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int | float):
        return "number"
    return "string"
