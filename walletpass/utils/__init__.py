# Utilities module

from .keyed_lock import KeyedLock
from .phone_utils import (
    is_valid_phone_number,
    mask_phone_number,
    normalize_country_code,
    normalize_national_number,
    normalize_phone_number,
)

__all__ = [
    "KeyedLock",
    "is_valid_phone_number",
    "mask_phone_number",
    "normalize_country_code",
    "normalize_national_number",
    "normalize_phone_number",
]
