"""
Ways of getting the passphrase for an encrypted private key.

Apple's OpenSSH stores private key passphrases in the login keychain, indexed
by the absolute path of the private key. Everywhere else the user is asked.
"""

import logging
import pathlib
import subprocess
import sys

import attr
import click

log = logging.getLogger(__name__)


class Passphrase:
    def __call__(self, path: pathlib.Path) -> bytes:
        raise NotImplementedError


@attr.s(frozen=True)
class PromptPassphrase(Passphrase):
    def __call__(self, path: pathlib.Path) -> bytes:
        value = click.prompt(
            f"Enter the key password ({path})",
            hide_input=True,
            default='',
            show_default=False,
            err=True)
        return value.encode('utf-8')


@attr.s(frozen=True)
class KeychainPassphrase(Passphrase):
    fallback: Passphrase = attr.ib(factory=PromptPassphrase)
    service: str = attr.ib(default='SSH')

    def command(self, path: pathlib.Path):
        return ('security', 'find-generic-password',
                '-s', self.service,
                '-a', str(path.resolve()),
                '-w')

    def __call__(self, path: pathlib.Path) -> bytes:
        try:
            result = subprocess.run(
                self.command(path),
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                check=True)
        except (OSError, subprocess.CalledProcessError) as error:
            log.debug(f"No keychain passphrase for {path}: {error}")
            return self.fallback(path)
        return result.stdout.rstrip(b'\n')


def default_passphrase() -> Passphrase:
    if sys.platform == 'darwin':
        return KeychainPassphrase()
    return PromptPassphrase()
