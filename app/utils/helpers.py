"""Shared utility functions used by services and blueprints.

slugify:             tenant slugs and strategic objective keys
is_number:           numeric checks for scores, positions and costs
text_value:          string fields read from a JSON body
"""
import math
import re

from app.core.exceptions import ValidationError

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(value, separator="-"):
    """Lowercase *value* and collapse every non-alphanumeric run to *separator*.

    Leading and trailing separators are stripped.
    """
    text = (value or "").strip().lower()
    text = _NON_ALNUM.sub(separator, text)
    return text.strip(separator)


def objective_key(name):
    """Return the ``so_<slug>`` pain point field for a strategic objective name."""
    return f"so_{slugify(name, '_')}"


def is_number(value):
    """True for finite int/float values. Booleans, NaN and infinities are not numbers here."""
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return False
    return math.isfinite(value)


def text_value(data, key):
    """Stripped string at ``data[key]``; "" when the key is absent or null.

    Raises:
        ValidationError: the value is present but not a string.
    """
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string", details={key: "invalid"})
    return value.strip()
