"""
The vault file format:

    SSH-VAULT;AES256;<fingerprint>
    <base64 wrapped key>;<base64 ciphertext>

The second line is wrapped every 64 characters.
"""

import base64
import binascii
import logging
import typing

import attr

from .utils import MalformedContainerError, wrap

log = logging.getLogger(__name__)

MAGIC = 'SSH-VAULT'
CIPHER_SUITE = 'AES256'
WIDTH = 64


@attr.s(frozen=True, kw_only=True)
class VaultContainer:
    fingerprint: str = attr.ib()
    wrapped_key: bytes = attr.ib(repr=False)
    ciphertext: bytes = attr.ib(repr=False)
    magic: str = attr.ib(default=MAGIC)
    cipher_suite: str = attr.ib(default=CIPHER_SUITE)

    @property
    def header(self) -> typing.Tuple[str, str, str]:
        return self.magic, self.cipher_suite, self.fingerprint


def encode(fingerprint: str, wrapped_key: bytes, ciphertext: bytes, width: int = WIDTH) -> bytes:
    payload = ';'.join((
        base64.b64encode(wrapped_key).decode('ascii'),
        base64.b64encode(ciphertext).decode('ascii'),
    ))
    if width:
        payload = wrap(payload, width)
    return f"{MAGIC};{CIPHER_SUITE};{fingerprint}\n{payload}\n".encode('ascii')


def _b64decode(value: str) -> bytes:
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as error:
        raise MalformedContainerError(f"Vault payload is not valid base64: {error}") from None


def decode(raw: typing.Union[bytes, str]) -> VaultContainer:
    try:
        text = raw.decode('ascii') if isinstance(raw, bytes) else raw
    except UnicodeDecodeError:
        raise MalformedContainerError("Vault is not an ASCII text file") from None

    header_line, _, body = text.lstrip().partition('\n')
    header = header_line.strip().split(';')
    if len(header) != 3:
        raise MalformedContainerError(
            f"Vault header should have 3 fields, found {len(header)}")

    magic, cipher_suite, fingerprint = header
    if magic != MAGIC:
        raise MalformedContainerError(f"Not a vault, header starts with {magic[:16]!r}")
    if cipher_suite != CIPHER_SUITE:
        raise MalformedContainerError(f"Unsupported cipher {cipher_suite!r}")

    payload = ''.join(body.split()).split(';')
    if len(payload) != 2:
        raise MalformedContainerError(
            f"Vault payload should have 2 fields, found {len(payload)}")

    log.debug(f"Decoded vault for {fingerprint}")
    return VaultContainer(
        magic=magic,
        cipher_suite=cipher_suite,
        fingerprint=fingerprint,
        wrapped_key=_b64decode(payload[0]),
        ciphertext=_b64decode(payload[1]))
