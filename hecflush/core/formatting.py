"""Rendering of event records and batch bodies for the HTTP Event Collector."""

import locale
import math
import platform
import socket
from collections.abc import Iterable, Mapping
from decimal import Decimal
from typing import Any

from hecflush.core.errors import InvalidEventError
from hecflush.core.event import Event


def validate_event_data(data: Any) -> Mapping[str, Any]:
    """Reject event data that is not a key/value record.

    Raises:
        InvalidEventError: If ``data`` is None or not a mapping.
    """
    if data is None:
        raise InvalidEventError("Event must not be None")
    if not isinstance(data, Mapping):
        raise InvalidEventError("Event must be a mapping")
    return data


def parse_event_data(data: Mapping[str, Any]) -> str:
    """Render a record as ``key="value" key=value `` pairs.

    Double quotes are stripped from string values, None values are skipped.
    """
    parsed = ""
    for key, value in data.items():
        if value is None:
            continue
        # bool before int: bool is an int subclass
        if isinstance(value, bool):
            parsed += f"{key}={'true' if value else 'false'} "
        elif isinstance(value, str):
            cleaned = value.replace('"', "")
            parsed += f'{key}="{cleaned}" '
        elif isinstance(value, int | float):
            parsed += f"{key}={format_number(value)} "
        else:
            raise InvalidEventError("Event property must be string, number or boolean")
    return parsed


def format_batch(events: Iterable[Event]) -> str:
    """Concatenate events into the newline-delimited JSON batch body."""
    return "".join(f"\n{event.to_json()}\n" for event in events)


def additional_info() -> dict[str, str]:
    """Describe the running host for the ``additional_info`` field."""
    language = locale.getlocale()[0] or "-"
    info = ",".join(
        [
            platform.platform().replace(",", ";"),
            language,
            platform.system() or "-",
            platform.machine() or "-",
            socket.gethostname() or "-",
            f"python{platform.python_version()}",
        ]
    )
    return {"additional_info": info}


def format_number(value: int | float) -> str:
    """Render a number the way collector dashboards expect it.

    Integral floats lose their fraction (``3.0`` -> ``3``) and exponents are
    only used outside ``1e-6 <= |value| < 1e21`` (``1e-05`` -> ``0.00001``).
    """
    if isinstance(value, int):
        return str(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == 0:
        return "0"

    sign = "-" if value < 0 else ""
    # repr gives the shortest digits that round-trip
    _, digit_tuple, exponent = Decimal(repr(abs(value))).as_tuple()
    digits = "".join(map(str, digit_tuple)).rstrip("0")
    exponent += len(digit_tuple) - len(digits)
    k = len(digits)
    n = exponent + k  # position of the decimal point relative to the digits

    if k <= n <= 21:
        return sign + digits + "0" * (n - k)
    if 0 < n <= 21:
        return f"{sign}{digits[:n]}.{digits[n:]}"
    if -6 < n <= 0:
        return f"{sign}0.{'0' * -n}{digits}"
    mantissa = digits if k == 1 else f"{digits[0]}.{digits[1:]}"
    return f"{sign}{mantissa}e{'+' if n > 0 else '-'}{abs(n - 1)}"
