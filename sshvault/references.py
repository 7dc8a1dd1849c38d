"""
Each KeyReference names one place a key can come from.

References are parsed once from the command line and are never re-sniffed
further down.
"""

import hashlib
import pathlib
import typing

import attr

from .utils import KeyNotFoundError

NEW = 'new'


def _index(value: typing.Optional[int]) -> int:
    return value if value and value > 0 else 1


def _slot_name(instance, attribute, value: str) -> None:
    """Usernames become cache file names and must stay inside the cache."""
    if not value or value in ('.', '..') or '/' in value or '\\' in value:
        raise KeyNotFoundError(f"Invalid username {value!r}")


@attr.s(frozen=True)
class LocalPath:
    path: pathlib.Path = attr.ib(converter=pathlib.Path)

    def __str__(self):
        return str(self.path)


@attr.s(frozen=True)
class Identity:
    """A username on the remote key server, e.g. a GitHub login."""
    name: str = attr.ib(validator=_slot_name)
    index: int = attr.ib(default=1, converter=_index)

    @property
    def slot(self) -> str:
        return self.name

    def __str__(self):
        return self.name


@attr.s(frozen=True)
class URL:
    url: str = attr.ib()
    index: int = attr.ib(default=1, converter=_index)

    @property
    def slot(self) -> str:
        """URLs are cached under a filesystem safe name."""
        return hashlib.md5(self.url.encode('utf-8')).hexdigest()

    def __str__(self):
        return self.url


@attr.s(frozen=True)
class NewKey:
    """Ask the remote service for a freshly generated key pair."""
    index: int = attr.ib(default=1, converter=_index)

    @property
    def slot(self) -> str:
        return NEW

    def __str__(self):
        return NEW


KeyReference = typing.Union[LocalPath, Identity, URL, NewKey]
RemoteReference = typing.Union[Identity, URL, NewKey]


def is_url(value: str) -> bool:
    return value.startswith(('http://', 'https://'))


def parse_user(value: str, index: typing.Optional[int] = None) -> RemoteReference:
    """Parse the value of the --user option."""
    if value == NEW:
        return NewKey(index=index)
    if is_url(value):
        return URL(value, index=index)
    return Identity(value, index=index)


def parse_reference(
        key: typing.Optional[str] = None,
        user: typing.Optional[str] = None,
        index: typing.Optional[int] = None) -> KeyReference:
    """A --user always wins over a --key."""
    if user:
        return parse_user(user, index)
    if key is None:
        raise ValueError("Either a key path or a user is required")
    if is_url(key):
        return URL(key, index=index)
    return LocalPath(pathlib.Path(key).expanduser())
