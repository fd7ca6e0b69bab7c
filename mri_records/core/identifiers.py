"""Human-facing identifiers for patient records.

Generators are random and carry no uniqueness guarantee of their own. The
unique indexes on ``patients`` are the real guard; callers regenerate and
retry when an insert collides.
"""

import random
import string
import time

MRI_CODE_PREFIX = "G2G-MRI-"
SERIAL_PREFIX = "SN-"
RECEIPT_PREFIX = "REC-"

BASE36_ALPHABET = string.digits + string.ascii_uppercase

_random = random.SystemRandom()


def _now_ms() -> int:
    return int(time.time() * 1000)


def to_base36(number: int) -> str:
    """Encode a non-negative integer in upper-case base 36."""
    if number < 0:
        raise ValueError("number must be non-negative")
    if number == 0:
        return "0"

    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


def generate_mri_code() -> str:
    """Return a code like ``G2G-MRI-4821`` (4 digits in 1000-9999)."""
    return f"{MRI_CODE_PREFIX}{_random.randint(1000, 9999)}"


def generate_serial_number(timestamp_ms: int | None = None) -> str:
    """Return a serial like ``SN-1718000000000-0042``."""
    timestamp_ms = _now_ms() if timestamp_ms is None else timestamp_ms
    return f"{SERIAL_PREFIX}{timestamp_ms}-{_random.randint(0, 9999):04d}"


def generate_receipt_number(timestamp_ms: int | None = None) -> str:
    """Return a receipt number like ``REC-LXK2J1AB-7Q2ZP``.

    This is the single receipt format used for every patient record.
    """
    timestamp_ms = _now_ms() if timestamp_ms is None else timestamp_ms
    suffix = "".join(_random.choice(BASE36_ALPHABET) for _ in range(5))
    return f"{RECEIPT_PREFIX}{to_base36(timestamp_ms)}-{suffix}"


def generate_invoice_number(patient_id: int, year: int) -> str:
    """Return an invoice number like ``INV-2024-0007``."""
    return f"INV-{year}-{patient_id:04d}"
