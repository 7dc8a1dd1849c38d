import logging
import os
import pathlib
import tempfile
import typing

import click

from . import __doc__, __version__
from .cache import CACHE_DIR_ENV, KeyCache, default_cache_directory
from .keys import KeyIdentity
from .references import NewKey, parse_reference
from .utils import shred
from .vault import Vault

log = logging.getLogger(__name__)

DEFAULT_KEY = '~/.ssh/id_rsa.pub'


class PathType(click.Path):
    def convert(self, value, param, ctx):
        value = super().convert(value, param, ctx)
        return value if value == '-' else pathlib.Path(value)


key_option = click.option(
    '-k', '--key',
    metavar='KEY',
    envvar='SSH_VAULT_KEY',
    default=DEFAULT_KEY,
    show_default=True,
    help="Path or URL of an SSH key.")

user_option = click.option(
    '-u', '--user',
    metavar='USER',
    envvar='SSH_VAULT_USER',
    default=None,
    help="GitHub username, URL of a .keys listing or 'new'.")

index_option = click.option(
    '-n', '--index',
    metavar='N',
    type=click.INT,
    default=None,
    help="Use the Nth key the user has (default: 1).")

fingerprint_option = click.option(
    '-f', '--fingerprint',
    metavar='FINGERPRINT',
    default=None,
    help="Use the user's key with this MD5 fingerprint.")

vault_argument = click.argument(
    'vault_path',
    metavar='VAULT',
    type=PathType(dir_okay=False, allow_dash=True),
    default='-',
    required=False)

existing_vault_argument = click.argument(
    'vault_path',
    metavar='VAULT',
    type=PathType(exists=True, dir_okay=False, allow_dash=True),
    default='-',
    required=False)


def edit_text(text: bytes, prefix: str) -> bytes:
    """Edit text in $EDITOR, shredding the temporary file afterwards."""
    fd, name = tempfile.mkstemp(prefix=prefix)
    path = pathlib.Path(name)
    try:
        with os.fdopen(fd, 'wb') as f:
            f.write(text)
        click.edit(filename=str(path))
        return path.read_bytes()
    finally:
        shred(path)


def read_vault(vault: typing.Union[str, pathlib.Path]) -> bytes:
    if vault == '-':
        return click.get_binary_stream('stdin').read()
    return vault.read_bytes()


@click.group(help=__doc__)
@click.option(
    '-c', '--cache-dir',
    type=PathType(file_okay=False),
    envvar=CACHE_DIR_ENV,
    default=default_cache_directory,
    help=f"Where fetched keys are kept (${CACHE_DIR_ENV}).")
@click.option(
    '-d', '--debug', 'debug',
    default=False,
    is_flag=True,
    help="Enable debug logging.")
@click.pass_context
def main(ctx, debug: bool, cache_dir: pathlib.Path):
    logging.basicConfig(level=(logging.DEBUG if debug else logging.WARNING))
    ctx.obj = Vault(cache=KeyCache(cache_dir))


@main.command()
def version():
    """Show the application version."""
    click.echo(f"ssh-vault {__version__}")


@main.command()
@key_option
@user_option
@index_option
@click.pass_obj
def fingerprint(
        vault: Vault,
        key: str,
        user: typing.Optional[str],
        index: typing.Optional[int]):
    """Print the fingerprint of a public key."""
    identity = vault.public_identity(parse_reference(key, user, index))
    click.echo(identity.fingerprint)


@main.command()
@key_option
@user_option
@index_option
@fingerprint_option
@vault_argument
@click.argument(
    'plaintext', type=click.File('rb'), default=None, required=False)
@click.pass_obj
def create(
        vault: Vault,
        key: str,
        user: typing.Optional[str],
        index: typing.Optional[int],
        fingerprint: typing.Optional[str],
        vault_path,
        plaintext: typing.Optional[typing.BinaryIO]):
    """
    Create a new vault.

    The secret is read from PLAINTEXT, from STDIN when it is not a terminal,
    or composed in $EDITOR. The vault is written to VAULT, or to STDOUT when
    VAULT is '-' or missing.
    """
    reference = parse_reference(key, user, index)
    identity = vault.public_identity(reference, fingerprint=fingerprint)

    if plaintext is not None:
        text = plaintext.read()
    elif not click.get_text_stream('stdin').isatty():
        text = click.get_binary_stream('stdin').read()
    else:
        text = edit_text(b'', prefix=identity.fingerprint.replace(':', ''))

    if not text:
        raise click.ClickException("New vault is empty")

    if vault_path == '-':
        click.echo(vault.seal(identity, text), nl=False)
    else:
        vault.create(vault_path, identity, text)
        click.echo(f"Created {vault_path} for {identity.fingerprint}", err=True)

    if isinstance(reference, NewKey):
        path = vault.cache.path(reference.slot, reference.index)
        click.secho(
            f"The private key for this vault is {path}", fg='yellow', err=True)


@main.command()
@key_option
@user_option
@existing_vault_argument
@click.pass_obj
def view(
        vault: Vault,
        key: str,
        user: typing.Optional[str],
        vault_path):
    """Print the decrypted contents of a vault."""
    private_key = vault.private_key(parse_reference(key, user))
    click.echo(vault.open(private_key, read_vault(vault_path)), nl=False)


@main.command()
@key_option
@user_option
@click.argument(
    'vault_path',
    metavar='VAULT',
    type=PathType(exists=True, dir_okay=False),
    required=True)
@click.pass_obj
def edit(
        vault: Vault,
        key: str,
        user: typing.Optional[str],
        vault_path: pathlib.Path):
    """
    Edit the contents of a vault in $EDITOR.

    The vault is sealed again for the public half of the private key that
    opened it.
    """
    private_key = vault.private_key(parse_reference(key, user))
    old_text = vault.view(vault_path, private_key)
    new_text = edit_text(old_text, prefix=vault_path.name)

    if not new_text:
        raise click.ClickException("File is empty")

    if new_text == old_text:
        raise click.ClickException("No changes were made to the file")

    vault.create(vault_path, KeyIdentity.from_private_key(private_key), new_text)
    click.echo(f"Updated {vault_path}", err=True)
