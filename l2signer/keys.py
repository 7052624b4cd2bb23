"""
L2 key derivation from an Ethereum account key.

Exchanges onboard a user by asking their Ethereum key to sign a fixed
message; the L2 private key is a hash of that signature, so it can be
re-derived at any time and never has to be stored:

    STARK   d = Keccak-256(sig) >> 5           (always below 2^251)
    zkLink  d = ZkLinkSigner.from_seed(sig)    (AltJubjubBn256 scalar)

The helpers here sign with EIP-191 ``personal_sign``.  ApexPro and
dYdX onboarding sign EIP-712 typed data instead, so for those exchanges
produce the typed-data signature with the wallet and pass its bytes to
:func:`stark_private_key_from_bytes`.

The secp256k1 work is delegated to ``coincurve`` (libsecp256k1).  Its
ECDSA nonces are RFC 6979, so the derivation is deterministic.
"""

from __future__ import annotations

from typing import Union

from coincurve import PrivateKey, PublicKey
from eth_utils import decode_hex, to_checksum_address

from .errors import InvalidPrivateKey
from .hash import keccak
from .zklink import ZkLinkSigner

ETH_SIGNATURE_BYTES = 65
_PERSONAL_MESSAGE_PREFIX = b"\x19Ethereum Signed Message:\n"


def _eth_key(eth_private_key: Union[bytes, str]) -> PrivateKey:
    if isinstance(eth_private_key, str):
        try:
            eth_private_key = decode_hex(eth_private_key)
        except ValueError:
            raise InvalidPrivateKey("Ethereum private key is not hex") from None
    if len(eth_private_key) != 32:
        raise InvalidPrivateKey(f"Ethereum private key must be 32 bytes, got {len(eth_private_key)}")
    try:
        return PrivateKey(eth_private_key)
    except ValueError:
        raise InvalidPrivateKey("Ethereum private key is out of range") from None


def personal_message_hash(message: bytes) -> bytes:
    """EIP-191 ``personal_sign`` digest of *message*."""
    prefix = _PERSONAL_MESSAGE_PREFIX + str(len(message)).encode("ascii")
    return keccak(prefix + message)


def eth_sign_message(eth_private_key: Union[bytes, str], message: bytes) -> bytes:
    """65-byte ``r ‖ s ‖ v`` signature with ``v`` in {27, 28}."""
    sig = _eth_key(eth_private_key).sign_recoverable(personal_message_hash(message), hasher=None)
    return sig[:64] + bytes([sig[64] + 27])


def eth_address(eth_private_key: Union[bytes, str]) -> str:
    """Checksummed address of the account owning *eth_private_key*."""
    public = _eth_key(eth_private_key).public_key.format(compressed=False)
    return to_checksum_address(keccak(public[1:])[-20:])


def recover_eth_address(message: bytes, signature: bytes) -> str:
    """Address whose key produced *signature* over *message*."""
    if len(signature) != ETH_SIGNATURE_BYTES:
        raise ValueError(f"expected {ETH_SIGNATURE_BYTES}-byte signature, got {len(signature)}")
    recoverable = signature[:64] + bytes([signature[64] - 27])
    public = PublicKey.from_signature_and_message(
        recoverable, personal_message_hash(message), hasher=None,
    ).format(compressed=False)
    return to_checksum_address(keccak(public[1:])[-20:])


# ── STARK ───────────────────────────────────────────────────────────────
def stark_private_key_from_bytes(data: bytes) -> int:
    """Generate a STARK key deterministically from binary data."""
    if not isinstance(data, bytes):
        raise ValueError("input must be a byte-string")
    key = int.from_bytes(keccak(data), "big") >> 5
    if key == 0:
        raise InvalidPrivateKey("derived STARK key is zero")
    return key


def derive_stark_private_key(eth_private_key: Union[bytes, str], message: bytes) -> int:
    """
    STARK key from the account's ``personal_sign`` signature over *message*.

    Not the ApexPro / dYdX onboarding key: those exchanges sign EIP-712
    typed data.  Feed that signature to :func:`stark_private_key_from_bytes`.
    """
    return stark_private_key_from_bytes(eth_sign_message(eth_private_key, message))


# ── zkLink ──────────────────────────────────────────────────────────────
def derive_zklink_signer(eth_private_key: Union[bytes, str], message: bytes) -> ZkLinkSigner:
    """zkLink signer seeded by the account's signature over *message*."""
    return ZkLinkSigner.from_seed(eth_sign_message(eth_private_key, message))
