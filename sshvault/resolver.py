import logging
import pathlib
import typing

from .cache import KeyCache
from .references import KeyReference, LocalPath, NewKey
from .remote import KeyFetcher
from .utils import KeyNotFoundError, is_readable_file, strip_public_suffix

log = logging.getLogger(__name__)


def resolve(
        reference: KeyReference,
        cache: KeyCache,
        fetcher: KeyFetcher,
        fingerprint: typing.Optional[str] = None,
        private: bool = False) -> pathlib.Path:
    """
    Find the file holding the key a reference points to.

    Local paths are used directly, asking for a private key turns
    'id_rsa.pub' into 'id_rsa'. Everything else goes through the cache.
    """
    if isinstance(reference, LocalPath):
        path = strip_public_suffix(reference.path) if private else reference.path
        if not is_readable_file(path):
            raise KeyNotFoundError(f"Key {path} does not exist or is not readable")
        log.debug(f"Resolved {reference} to local file {path}")
        return path

    if private and isinstance(reference, NewKey):
        # Generated keys are only fetched when creating a vault.
        path = cache.path(reference.slot, reference.index)
        if not cache.is_cached_file(path):
            raise KeyNotFoundError(f"No generated key found in {path}")
        return path

    path = cache.get(reference, fetcher, fingerprint=fingerprint)
    log.debug(f"Resolved {reference} to cached file {path}")
    return path
