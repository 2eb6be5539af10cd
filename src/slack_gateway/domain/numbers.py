from __future__ import annotations

import math
from typing import Any, Union

Number = Union[int, float]


def coerce_number(value: Any) -> Number:
    """Convert a JSON or query value to a number.

    Integral values come back as ``int`` so Slack receives ``1700000000`` rather
    than ``1700000000.0``. Booleans, ``None`` and non-numeric strings raise
    ``ValueError``.
    """
    if isinstance(value, bool) or value is None:
        raise ValueError(f"Expected a number, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        number = value
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            raise ValueError(f"Expected a number, got {value!r}") from None
    else:
        raise ValueError(f"Expected a number, got {value!r}")
    if math.isnan(number) or math.isinf(number):
        raise ValueError(f"Expected a finite number, got {value!r}")
    if number.is_integer():
        return int(number)
    return number
