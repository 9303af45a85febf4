"""
rollsettle/core/crypto.py

Ed25519 key handling for prover assignments.

Key contracts:
    address                 : @property → 64-char lowercase hex public key.
                              An externally-owned account IS its public key.
    sign(data)              : bytes → base64url str, no padding
    verify_detached(...)    : @staticmethod — verifies with ONLY an address
    sign_hash(hash_hex)     : signs the raw 32 bytes of a commitment hash

CRITICAL:
    Provers sign the 32 raw bytes of the commitment hash, never its hex text.
    SignatureVerifier calls verify_detached(bytes.fromhex(h), sig, address).
"""

import base64
from pathlib import Path
from typing import Optional

from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
    load_pem_private_key,
)


class Ed25519KeyManager:
    """
    Ed25519 key manager for provers and test accounts.

    Public surface:
        Ed25519KeyManager.generate()                        → new random key
        Ed25519KeyManager.from_file(path)                   → load PEM private key
        Ed25519KeyManager.verify_detached(data, sig, addr)  → @staticmethod

        key.address                 (@property) → 64-char lowercase hex
        key.sign(data: bytes)                   → base64url str (no padding)
        key.sign_hash(hash_hex)                 → base64url str over raw digest
        key.save(path)                          → write PEM private key
    """

    def __init__(self, private_key: Ed25519PrivateKey) -> None:
        self._private_key: Ed25519PrivateKey = private_key
        self._public_key:  Ed25519PublicKey  = private_key.public_key()
        self._address: str = (
            self._public_key
            .public_bytes(Encoding.Raw, PublicFormat.Raw)
            .hex()
        )

    # ── Construction ──────────────────────────────────────────

    @classmethod
    def generate(cls) -> "Ed25519KeyManager":
        """Generate a new random Ed25519 key pair."""
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def from_file(cls, path: Path) -> "Ed25519KeyManager":
        """
        Load an Ed25519 private key from a PEM file.
        Raises FileNotFoundError if path does not exist.
        Raises ValueError if the file is not a valid Ed25519 PEM key.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Key file not found: {path}")
        try:
            private_key = load_pem_private_key(path.read_bytes(), password=None)
        except (ValueError, TypeError) as exc:
            raise ValueError(
                f"Failed to load Ed25519 key from {path}: {exc}"
            ) from exc
        if not isinstance(private_key, Ed25519PrivateKey):
            raise ValueError(
                f"Key file {path} does not contain an Ed25519 private key"
            )
        return cls(private_key)

    # ── Address ───────────────────────────────────────────────

    @property
    def address(self) -> str:
        """
        64-character lowercase hex of the raw Ed25519 public key.

        THIS IS A @property — access as key.address (NO parentheses).
        """
        return self._address

    # ── Signing ───────────────────────────────────────────────

    def sign(self, data: bytes) -> str:
        """Sign data with Ed25519. Returns base64url string, no '=' padding."""
        raw_sig = self._private_key.sign(data)
        return base64.urlsafe_b64encode(raw_sig).rstrip(b"=").decode("ascii")

    def sign_hash(self, hash_hex: str) -> str:
        """Sign the raw 32 bytes behind a hex commitment hash."""
        return self.sign(bytes.fromhex(hash_hex))

    # ── Verification ──────────────────────────────────────────

    @staticmethod
    def verify_detached(
        data:          bytes,
        signature_b64: Optional[str],
        address:       str,
    ) -> bool:
        """
        Verify an Ed25519 signature using ONLY an address (public key hex).

        Returns:
            True if the signature is valid over data for the given address.
            False for ANY failure — wrong key, bad encoding, wrong length,
            corrupted signature. Never raises.
        """
        try:
            if not isinstance(address, str) or len(address) != 64:
                return False
            if not isinstance(signature_b64, str) or not signature_b64:
                return False

            pub = Ed25519PublicKey.from_public_bytes(bytes.fromhex(address))

            # Re-add base64url padding if stripped
            padding    = 4 - len(signature_b64) % 4
            padded_sig = signature_b64 + "=" * (padding % 4)
            raw_sig    = base64.urlsafe_b64decode(padded_sig)

            if len(raw_sig) != 64:
                return False

            pub.verify(raw_sig, data)
            return True

        except Exception:
            return False

    # ── Persistence ───────────────────────────────────────────

    def save(self, path: Path) -> None:
        """
        Write the private key to disk as a PEM file.
        Creates parent directories if needed.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        pem = self._private_key.private_bytes(
            encoding=             Encoding.PEM,
            format=               PrivateFormat.PKCS8,
            encryption_algorithm= NoEncryption(),
        )
        path.write_bytes(pem)

    def __repr__(self) -> str:
        return f"Ed25519KeyManager(address={self._address[:16]}...)"
