"""Password hashing utilities.

Learn: bcrypt generates a random salt on every hash and embeds it in the
result ("$2b$10$<salt><digest>"), so a stored hash is all that is needed to
verify a later login. Passwords are truncated to 72 bytes (bcrypt's limit).
"""

import bcrypt

# Cost factor 10 matches the hashes already stored by earlier deployments.
BCRYPT_ROUNDS = 10


def hash_password(password: str) -> str:
    """Hash a password with a freshly generated salt."""
    pw_bytes = password.encode("utf-8")[:72]
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(pw_bytes, salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against a stored hash.

    A malformed or missing hash counts as a mismatch rather than an error.
    """
    try:
        pw_bytes = password.encode("utf-8")[:72]
        hash_bytes = password_hash.encode("utf-8")
        return bcrypt.checkpw(pw_bytes, hash_bytes)
    except (ValueError, TypeError, AttributeError):
        return False
