"""Format checks for SSNs, IP PINs and bank numbers.

Every check strips non-digit separators first, so ``123-45-6789`` and
``123 45 6789`` are treated alike. No I/O, no decryption.
"""

import re

_NON_DIGITS = re.compile(r"\D")

# ABA weights repeat 3, 7, 1 across the nine digits
_ROUTING_WEIGHTS = (3, 7, 1, 3, 7, 1, 3, 7, 1)


def digits_only(value: str) -> str:
    return _NON_DIGITS.sub("", value)


def is_valid_ssn(ssn: str) -> bool:
    """Nine digits, outside the never-issued 000/666/9xx area numbers."""
    cleaned = digits_only(ssn)
    if len(cleaned) != 9:
        return False
    if cleaned == "000000000":
        return False
    area = cleaned[:3]
    if area in ("000", "666"):
        return False
    return not cleaned.startswith("9")


def is_valid_ip_pin(pin: str) -> bool:
    """IRS Identity Protection PINs are exactly six digits."""
    return len(digits_only(pin)) == 6


def is_valid_routing_number(routing: str) -> bool:
    """Nine digits satisfying the ABA check-digit formula."""
    cleaned = digits_only(routing)
    if len(cleaned) != 9:
        return False
    checksum = sum(
        weight * int(digit) for weight, digit in zip(_ROUTING_WEIGHTS, cleaned)
    )
    return checksum % 10 == 0


def is_valid_account_number(account: str) -> bool:
    """Between 4 and 17 digits inclusive."""
    return 4 <= len(digits_only(account)) <= 17
