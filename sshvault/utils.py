import logging
import os
import pathlib
import stat

import click

log = logging.getLogger(__name__)


def is_readable_file(path: pathlib.Path) -> bool:
    """Check if a path is a regular file with the owner read bit set."""
    try:
        mode = path.stat().st_mode
    except OSError:
        return False
    return stat.S_ISREG(mode) and bool(mode & stat.S_IRUSR)


def strip_public_suffix(path: pathlib.Path) -> pathlib.Path:
    """Convert 'id_rsa.pub' to 'id_rsa', leaving other paths alone."""
    if path.suffix == '.pub':
        return path.with_suffix('')
    return path


def write_private(path: pathlib.Path, data: bytes) -> None:
    """Write a file that only the owner can read and write."""
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, 'wb') as f:
        f.write(data)
    os.chmod(path, 0o600)


def shred(path: pathlib.Path) -> None:
    """Overwrite a file with zeros and delete it."""
    log.debug(f"Shredding {path}")
    try:
        size = path.stat().st_size
        with path.open('r+b') as f:
            f.write(b'\0' * size)
            f.flush()
            os.fsync(f.fileno())
    finally:
        path.unlink()


def wrap(text: str, width: int = 64) -> str:
    """Insert a newline every `width` characters."""
    return '\n'.join(text[i:i + width] for i in range(0, len(text), width))


class SSHVaultException(click.ClickException):
    pass


class KeyFormatError(SSHVaultException):
    pass


class KeyNotFoundError(SSHVaultException):
    pass


class KeyIndexOutOfRange(KeyNotFoundError):
    def __init__(self, index: int, available: int):
        self.index = index
        self.available = available
        super().__init__(
            f"Key index {index} not found, "
            f"try a value between 1 and {available}")


class FingerprintNotFoundError(KeyNotFoundError):
    def __init__(self, fingerprint: str):
        self.fingerprint = fingerprint
        super().__init__(f"Key fingerprint {fingerprint!r} not found")


class MalformedContainerError(SSHVaultException):
    pass


class DecryptionError(SSHVaultException):
    """Wrong keys and tampered vaults are reported identically."""

    def __init__(self) -> None:
        super().__init__("Decryption failed")


class KeyMismatchError(DecryptionError):
    pass


class AuthenticationError(DecryptionError):
    pass


class EncryptionError(SSHVaultException):
    pass
