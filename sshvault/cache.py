"""
Local storage for keys fetched from remote sources.

Keys are stored one per file as '<slot>.<index>' where the slot is either a
username or the MD5 of a URL, and the index counts from 1 in the order the
remote source listed them.
"""

import errno
import logging
import os
import pathlib
import typing

import attr

from .keys import KeyIdentity
from .references import NewKey, RemoteReference
from .remote import BEGIN_RSA_PRIVATE_KEY, KeyFetcher
from .utils import (FingerprintNotFoundError, KeyFormatError,
                    KeyIndexOutOfRange, KeyNotFoundError, is_readable_file)

log = logging.getLogger(__name__)

CACHE_DIR_ENV = 'SSH_VAULT_CACHE_DIR'


def default_cache_directory() -> pathlib.Path:
    if os.environ.get(CACHE_DIR_ENV):
        return pathlib.Path(os.environ[CACHE_DIR_ENV]).expanduser()
    home = os.environ.get('HOME')
    return (pathlib.Path(home) if home else pathlib.Path.home()) / '.ssh' / 'vault' / 'keys'


def usable(key: str) -> bool:
    if key.startswith(BEGIN_RSA_PRIVATE_KEY):
        return True
    try:
        KeyIdentity.from_ssh(key)
    except KeyFormatError as error:
        log.warning(f"Ignoring unusable key: {error.message}")
        return False
    return True


@attr.s(frozen=True)
class KeyCache:
    directory: pathlib.Path = attr.ib(factory=default_cache_directory, converter=pathlib.Path)

    def __attrs_post_init__(self):
        if not self.directory.exists():
            log.debug(f"Creating cache directory {self.directory}")
            self.directory.mkdir(mode=0o700, parents=True)
            self.directory.chmod(0o700)

    def path(self, slot: str, index: int) -> pathlib.Path:
        return self.directory / f"{slot}.{index}"

    @staticmethod
    def is_cached_file(path: pathlib.Path) -> bool:
        return is_readable_file(path)

    def slot_files(self, slot: str) -> typing.List[pathlib.Path]:
        """Files cached for a slot, ordered by their index."""
        files = []
        for path in self.directory.glob(f"{slot}.*"):
            suffix = path.name[len(slot) + 1:]
            if suffix.isdigit() and self.is_cached_file(path):
                files.append((int(suffix), path))
        return [path for _, path in sorted(files)]

    def store(
            self,
            slot: str,
            keys: typing.Sequence[str],
            overwrite: bool = False) -> int:
        """
        Write fetched keys into a slot, returning how many were listed.

        Each key keeps its position in the listing, so an unusable key leaves
        a gap. Existing files are left untouched unless `overwrite` is set.
        """
        good = [(position, key) for position, key in enumerate(keys, start=1)
                if usable(key)]
        if not good:
            raise KeyNotFoundError(f"No usable keys found for {slot!r}")

        flags = os.O_WRONLY | os.O_CREAT | (os.O_TRUNC if overwrite else os.O_EXCL)
        for position, key in good:
            path = self.path(slot, position)
            try:
                fd = os.open(path, flags, 0o600)
            except OSError as error:
                if error.errno != errno.EEXIST:
                    raise
                log.debug(f"Keeping existing cache file {path}")
                continue
            with os.fdopen(fd, 'w') as f:
                f.write(key if key.endswith('\n') else key + '\n')
            log.debug(f"Cached key {position} for {slot!r} in {path}")
        return len(keys)

    def fetch(self, reference: RemoteReference, fetcher: KeyFetcher) -> int:
        log.info(f"Cache miss for {reference}, fetching keys")
        keys = fetcher.fetch_keys(reference)
        return self.store(
            reference.slot, keys, overwrite=isinstance(reference, NewKey))

    def get(
            self,
            reference: RemoteReference,
            fetcher: KeyFetcher,
            fingerprint: typing.Optional[str] = None) -> pathlib.Path:
        """
        Return the path to a cached key, fetching the slot if needed.

        With a fingerprint the index is ignored and the slot is searched for
        the matching key instead.
        """
        slot = reference.slot

        if fingerprint:
            fingerprint = fingerprint.lower()
            if isinstance(reference, NewKey) or not self.slot_files(slot):
                self.fetch(reference, fetcher)
            return self.find_fingerprint(slot, fingerprint)

        path = self.path(slot, reference.index)
        if isinstance(reference, NewKey) or not self.is_cached_file(path):
            available = self.fetch(reference, fetcher)
            if not self.is_cached_file(path):
                raise KeyIndexOutOfRange(reference.index, available)
        else:
            log.debug(f"Cache hit for {reference} in {path}")
        return path

    def find_fingerprint(self, slot: str, fingerprint: str) -> pathlib.Path:
        fingerprint = fingerprint.lower()
        for path in self.slot_files(slot):
            try:
                identity = KeyIdentity.from_file(path)
            except KeyFormatError:
                continue
            if identity.fingerprint == fingerprint:
                log.debug(f"Fingerprint {fingerprint} matches {path}")
                return path
        raise FingerprintNotFoundError(fingerprint)
