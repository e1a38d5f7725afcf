"""
Password hashing and business-number validation.

Hashes are stored as ``scrypt:<salt>:<derived hex>``. The salt is kept as
its hex text and fed to scrypt as those characters, N=16384, r=8, p=1,
64-byte key.
"""

import hashlib
import hmac
import re
import secrets
from typing import Any, Optional

SCHEME = "scrypt"
SCRYPT_N = 16384
SCRYPT_R = 8
SCRYPT_P = 1
SCRYPT_DKLEN = 64

ABN_WEIGHTS = (10, 1, 3, 5, 7, 9, 11, 13, 15, 17, 19)


def _derive(password: str, salt: str) -> bytes:
    return hashlib.scrypt(
        password.encode("utf-8"),
        salt=salt.encode("utf-8"),
        n=SCRYPT_N,
        r=SCRYPT_R,
        p=SCRYPT_P,
        dklen=SCRYPT_DKLEN,
    )


def hash_password(password: str, salt: Optional[str] = None) -> str:
    """Hash a password with a fresh random salt unless one is given"""
    used_salt = salt or secrets.token_hex(16)
    return f"{SCHEME}:{used_salt}:{_derive(password, used_salt).hex()}"


def verify_password(password: str, password_hash: str) -> bool:
    """Re-derive with the stored salt and compare in constant time"""
    parts = str(password_hash).split(":")
    if len(parts) != 3:
        return False
    scheme, salt, stored_hex = parts
    if scheme != SCHEME or not salt or not stored_hex:
        return False
    try:
        expected = bytes.fromhex(stored_hex)
    except ValueError:
        return False
    return hmac.compare_digest(_derive(password, salt), expected)


def abn_is_valid(abn: Any) -> bool:
    """
    Australian Business Number checksum.

    Strip non-digits; exactly 11 must remain. Subtract 1 from the first digit,
    weight each digit, and the sum must be divisible by 89.
    """
    digits = re.sub(r"[^0-9]", "", str(abn if abn is not None else ""))
    if len(digits) != 11:
        return False
    nums = [int(d) for d in digits]
    nums[0] -= 1
    total = sum(d * w for d, w in zip(nums, ABN_WEIGHTS))
    return total % 89 == 0
