"""
Fixed-width Base62 codec used for short link slugs.

The alphabet order (digits, lowercase, uppercase) is part of the stored data:
changing it would change every slug ever issued.
"""

from shortlink_app.errors import EncodingOverflow

BASE62_CHARS = "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"
BASE = len(BASE62_CHARS)


def encode(value: int, width: int) -> str:
    """
    Convert a non-negative integer to a Base62 string of exactly ``width`` chars.

    The result is left-padded with ``'0'``. If the value needs more than
    ``width`` digits, EncodingOverflow is raised; truncating would map two
    values onto the same string.
    """
    if width <= 0:
        raise EncodingOverflow(f"Width must be positive, got {width}")
    if value < 0:
        raise EncodingOverflow(f"Cannot encode negative value {value}")

    digits = []
    number = value
    while number > 0:
        number, remainder = divmod(number, BASE)
        digits.append(BASE62_CHARS[remainder])

    if len(digits) > width:
        raise EncodingOverflow(
            f"Value {value} needs {len(digits)} Base62 digits, width is {width}"
        )

    return "".join(reversed(digits)).rjust(width, BASE62_CHARS[0])


def capacity(width: int) -> int:
    """Number of distinct values representable in ``width`` characters."""
    return BASE ** width
