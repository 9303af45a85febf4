"""
rollsettle: Canonical JSON Encoding — RFC 8785 (JCS)

This is the ONLY canonicalization permitted in rollsettle.
All signing, hashing and payload encoding MUST use this module.

RFC 8785: https://www.rfc-editor.org/rfc/rfc8785
"""

import hashlib

try:
    import jcs as _jcs
except ImportError as exc:
    raise ImportError(
        "rollsettle requires the 'jcs' package for RFC 8785 compliance.\n"
        "Install with: pip install jcs\n"
        f"Original error: {exc}"
    ) from exc


# 32 zero bytes in hex. Used as "unset" for hashes and addresses.
ZERO_HASH = "0" * 64


def canonicalize(obj) -> bytes:
    """
    Encode a JSON-primitive value to RFC 8785 canonical JSON bytes.

    Output is deterministic regardless of key insertion order.
    All values must be JSON-primitive (str, int, bool, None, list, dict).
    Integers must stay within the IEEE-754 safe range (|n| < 2**53);
    larger amounts are encoded as decimal strings by the callers.
    """
    return _jcs.canonicalize(obj)


def canonical_hash(obj) -> str:
    """
    SHA-256 of the RFC 8785 canonical form.

    Returns:
        Lowercase hex-encoded SHA-256 digest (64 characters).
    """
    return hashlib.sha256(canonicalize(obj)).hexdigest()


def hash_pair(a: str, b: str) -> str:
    """SHA-256 over the sorted concatenation of two 32-byte hex digests."""
    left, right = (a, b) if a <= b else (b, a)
    return hashlib.sha256(bytes.fromhex(left) + bytes.fromhex(right)).hexdigest()


def is_hex32(value) -> bool:
    """True iff value is a 64-char lowercase hex string."""
    if not isinstance(value, str) or len(value) != 64:
        return False
    try:
        bytes.fromhex(value)
    except ValueError:
        return False
    return value == value.lower()
