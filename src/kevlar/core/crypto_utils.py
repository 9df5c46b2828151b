"""Validator key helpers: secp256k1 keypairs and committee-member signatures."""

from __future__ import annotations

import hashlib

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import (
    decode_dss_signature,
    encode_dss_signature,
)

_CURVE = ec.SECP256K1()
_CURVE_ORDER = int("FFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141", 16)

PUBLIC_KEY_BYTES = 64
SIGNATURE_BYTES = 64

def _normalize_private_value(value: int) -> int:
    normalized = value % _CURVE_ORDER
    if normalized == 0:
        normalized = 1
    return normalized

def _private_key_to_hex(private_key: ec.EllipticCurvePrivateKey) -> str:
    return private_key.private_numbers().private_value.to_bytes(32, "big").hex()

def _public_key_to_hex(public_key: ec.EllipticCurvePublicKey) -> str:
    numbers = public_key.public_numbers()
    return (numbers.x.to_bytes(32, "big") + numbers.y.to_bytes(32, "big")).hex()

def load_private_key_from_hex(private_hex: str) -> ec.EllipticCurvePrivateKey:
    return ec.derive_private_key(_normalize_private_value(int(private_hex, 16)), _CURVE)

def load_public_key_from_hex(public_hex: str) -> ec.EllipticCurvePublicKey:
    raw = bytes.fromhex(public_hex)
    if len(raw) != PUBLIC_KEY_BYTES:
        raise ValueError("Validator public key must be 64 bytes (uncompressed without prefix).")
    return ec.EllipticCurvePublicKey.from_encoded_point(_CURVE, b"\x04" + raw)

def public_key_bytes(public_hex: str) -> bytes:
    """Raw bytes of a validator public key, checked for length only."""
    raw = bytes.fromhex(public_hex)
    if len(raw) != PUBLIC_KEY_BYTES:
        raise ValueError(f"Validator public key must be {PUBLIC_KEY_BYTES} bytes, got {len(raw)}.")
    return raw

def generate_validator_keypair_hex() -> tuple[str, str]:
    private_key = ec.generate_private_key(_CURVE)
    return _private_key_to_hex(private_key), _public_key_to_hex(private_key.public_key())

def derive_public_key_hex(private_hex: str) -> str:
    private_key = load_private_key_from_hex(private_hex)
    return _public_key_to_hex(private_key.public_key())

def deterministic_keypair_from_seed(seed: bytes) -> tuple[str, str]:
    """Derive a reproducible validator keypair; the seed is hashed to 32 bytes."""
    digest = hashlib.sha256(seed).digest()
    private_value = _normalize_private_value(int.from_bytes(digest, "big"))
    private_key = ec.derive_private_key(private_value, _CURVE)
    return _private_key_to_hex(private_key), _public_key_to_hex(private_key.public_key())

def is_canonical_signature(r: int, s: int) -> bool:
    """
    Check whether signature components fall within the curve order and have low-S form.
    """
    if not (1 <= r < _CURVE_ORDER):
        return False
    if not (1 <= s < _CURVE_ORDER):
        return False
    return s <= _CURVE_ORDER // 2

def sign_message_hex(private_hex: str, message: bytes) -> str:
    private_key = load_private_key_from_hex(private_hex)
    der_signature = private_key.sign(message, ec.ECDSA(hashes.SHA256()))
    r, s = decode_dss_signature(der_signature)
    if s > _CURVE_ORDER // 2:
        s = _CURVE_ORDER - s
    return (r.to_bytes(32, "big") + s.to_bytes(32, "big")).hex()

def verify_signature_hex(public_hex: str, message: bytes, signature_hex: str) -> bool:
    """
    Verify a compact (r || s) signature by a validator.

    Raises:
        ValueError: If the public key or signature is not valid hex, or the key
            is not a point on the curve.
    """
    public_key = load_public_key_from_hex(public_hex)
    raw_signature = bytes.fromhex(signature_hex)
    if len(raw_signature) != SIGNATURE_BYTES:
        return False
    r = int.from_bytes(raw_signature[:32], "big")
    s = int.from_bytes(raw_signature[32:], "big")
    if not is_canonical_signature(r, s):
        return False
    try:
        public_key.verify(encode_dss_signature(r, s), message, ec.ECDSA(hashes.SHA256()))
        return True
    except InvalidSignature:
        return False
