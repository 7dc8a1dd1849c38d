"""
ssh-vault encrypts secrets using SSH keys.

A vault can only be opened by the holder of the private key matching the
public key it was created for. Public keys can be local files, the keys a
GitHub user publishes, or any URL serving a '.keys' style listing. Fetched
keys are cached in ~/.ssh/vault/keys.

Create a vault for yourself:

\b
    $ echo "secret" | ssh-vault create secret.vault

Create a vault for a GitHub user, choosing their second key:

\b
    $ ssh-vault create -u alice -n 2 secret.vault secret.txt

View a vault using your private key:

\b
    $ ssh-vault view -k ~/.ssh/id_rsa secret.vault

Edit a vault in $EDITOR:

\b
    $ ssh-vault edit secret.vault

Print the fingerprint of a key:

\b
    $ ssh-vault fingerprint -u alice
"""

__version__ = '0.12.0'
