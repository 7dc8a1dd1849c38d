import pathlib
import typing

import attr
import click.testing
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

import sshvault.cli
from sshvault.cache import KeyCache
from sshvault.references import RemoteReference
from sshvault.remote import KeyFetcher
from sshvault.utils import KeyNotFoundError
from sshvault.vault import Vault


def generate_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


def ssh_line(key: rsa.RSAPrivateKey, comment: str = '') -> str:
    line = key.public_key().public_bytes(
        encoding=serialization.Encoding.OpenSSH,
        format=serialization.PublicFormat.OpenSSH).decode()
    return f"{line} {comment}".strip()


def private_pem(key: rsa.RSAPrivateKey, password: typing.Optional[bytes] = None) -> bytes:
    encryption = (serialization.BestAvailableEncryption(password)
                  if password else serialization.NoEncryption())
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=encryption)


@pytest.fixture(scope='session')
def keys() -> typing.List[rsa.RSAPrivateKey]:
    return [generate_key() for _ in range(3)]


@pytest.fixture(scope='session')
def private_key(keys) -> rsa.RSAPrivateKey:
    return keys[0]


@pytest.fixture(scope='session')
def other_key(keys) -> rsa.RSAPrivateKey:
    return keys[1]


@pytest.fixture()
def key_files(tmp_path, private_key) -> pathlib.Path:
    """Write id_rsa and id_rsa.pub, returning the path to the public key."""
    ssh = tmp_path / 'ssh'
    ssh.mkdir()
    (ssh / 'id_rsa').write_bytes(private_pem(private_key))
    (ssh / 'id_rsa').chmod(0o600)
    (ssh / 'id_rsa.pub').write_text(ssh_line(private_key, 'test@ssh-vault') + '\n')
    return ssh / 'id_rsa.pub'


@attr.s()
class MockFetcher(KeyFetcher):
    """Serves keys from a dict keyed by the reference's string form."""
    keys: typing.Dict[str, typing.List[str]] = attr.ib(factory=dict)
    calls: typing.List[str] = attr.ib(factory=list)

    def fetch_keys(self, reference: RemoteReference) -> typing.List[str]:
        self.calls.append(str(reference))
        if not self.keys.get(str(reference)):
            raise KeyNotFoundError(f"Key {str(reference)!r} not found")
        return list(self.keys[str(reference)])


@pytest.fixture()
def fetcher(keys) -> MockFetcher:
    return MockFetcher(keys={
        'matilde': [ssh_line(key) for key in keys],
        'alice': [ssh_line(keys[0])],
    })


@pytest.fixture()
def cache(tmp_path) -> KeyCache:
    return KeyCache(tmp_path / 'cache')


@pytest.fixture()
def vault(cache, fetcher) -> Vault:
    return Vault(cache=cache, fetcher=fetcher, passphrase=lambda path: b'')


@pytest.fixture()
def invoke(tmp_path, monkeypatch, vault):
    monkeypatch.setattr(sshvault.cli, 'Vault', lambda cache: attr.evolve(vault, cache=cache))

    def invoke_func(
            arguments: typing.Sequence[str],
            input: typing.Optional[bytes] = None,
            check: bool = True) -> click.testing.Result:
        assert all(isinstance(arg, str) for arg in arguments)
        runner = click.testing.CliRunner()
        result = runner.invoke(
            sshvault.cli.main,
            ['--cache-dir', str(vault.cache.directory), *arguments],
            input=input)
        if check and result.exit_code != 0:
            message = f"Command ssh-vault {' '.join(arguments)} failed: {result.output}"
            raise Exception(message) from result.exception
        return result

    return invoke_func
