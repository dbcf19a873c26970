"""
Password hashing with bcrypt.

``check_password`` against ``DUMMY_PASSWORD_HASH`` is used when no account
exists so that a login for an unknown email costs one bcrypt comparison,
same as a wrong password.
"""

import bcrypt

DEFAULT_BCRYPT_COST = 12

DUMMY_PASSWORD_HASH = bcrypt.hashpw(b"dummy_password_for_timing_safety", bcrypt.gensalt(10)).decode()


def hash_password(password: str, rounds: int = DEFAULT_BCRYPT_COST) -> str:
    """Hash a password using bcrypt with the given cost factor."""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=rounds)).decode()


def check_password(password: str, password_hash: str | None) -> bool:
    """
    Compare a plaintext password with a stored bcrypt hash.

    A missing hash always fails, but still spends a bcrypt comparison.
    """
    if password_hash is None:
        bcrypt.checkpw(password.encode(), DUMMY_PASSWORD_HASH.encode())
        return False
    return bcrypt.checkpw(password.encode(), password_hash.encode())
