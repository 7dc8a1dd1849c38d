"""
Hybrid encryption of vault contents.

A random 32 byte key is wrapped with RSA-OAEP (SHA-256) for the recipient and
used to encrypt the secret with AES-256-GCM. The recipient's fingerprint is
passed as associated data so a ciphertext only opens under the identity it was
sealed for.

Format of the ciphertext: [nonce 12B][encrypted payload + GCM tag 16B]

Never log plaintext or key material.
"""

import logging
import os
import typing

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .utils import AuthenticationError, EncryptionError, KeyMismatchError

log = logging.getLogger(__name__)

KEY_LENGTH = 32  # AES-256
NONCE_SIZE = 12  # 96-bit nonce


def _oaep() -> padding.OAEP:
    return padding.OAEP(
        mgf=padding.MGF1(algorithm=hashes.SHA256()),
        algorithm=hashes.SHA256(),
        label=None)


def seal(
        public_key: rsa.RSAPublicKey,
        fingerprint: str,
        plaintext: bytes) -> typing.Tuple[bytes, bytes]:
    """Encrypt plaintext for the holder of a private key.

    Returns:
        The wrapped symmetric key and the nonce-prefixed ciphertext.
    """
    try:
        key = os.urandom(KEY_LENGTH)
        nonce = os.urandom(NONCE_SIZE)
        wrapped = public_key.encrypt(key, _oaep())
        ciphertext = nonce + AESGCM(key).encrypt(
            nonce, plaintext, fingerprint.encode('utf-8'))
    except (ValueError, TypeError, OSError) as error:
        log.debug(f"Encryption failed: {type(error).__name__}")
        raise EncryptionError(f"Encryption failed: {error}") from error

    log.debug(f"Sealed {len(plaintext)} bytes for {fingerprint}")
    return wrapped, ciphertext


def open(
        private_key: rsa.RSAPrivateKey,
        fingerprint: str,
        wrapped: bytes,
        ciphertext: bytes) -> bytes:
    """Recover plaintext sealed by `seal`.

    Raises:
        KeyMismatchError: The symmetric key can't be unwrapped.
        AuthenticationError: The ciphertext, or the fingerprint it is bound
            to, has been changed.
    """
    try:
        key = private_key.decrypt(wrapped, _oaep())
    except ValueError:
        log.debug("Unwrapping the vault key failed")
        raise KeyMismatchError() from None

    if len(key) != KEY_LENGTH or len(ciphertext) < NONCE_SIZE:
        raise AuthenticationError()

    nonce, payload = ciphertext[:NONCE_SIZE], ciphertext[NONCE_SIZE:]
    try:
        return AESGCM(key).decrypt(nonce, payload, fingerprint.encode('utf-8'))
    except (InvalidTag, ValueError):
        log.debug("Vault ciphertext failed authentication")
        raise AuthenticationError() from None
