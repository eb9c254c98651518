"""Keystore: Local signing accounts for off-chain submissions."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_account.signers.local import LocalAccount
from eth_keys.exceptions import BadSignature as KeyBadSignature
from eth_utils import ValidationError

from .errors import NoLocalAccountsAvailable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Signature:
    """Signature over a submission payload.

    :ivar signer: Checksummed address of the signing account.
    :ivar value: 65-byte recoverable signature.
    """

    signer: str
    value: bytes


def recover_signer(payload: bytes, signature: Signature) -> str:
    """Recover the address that signed a payload.

    :param payload: Signed bytes.
    :param signature: Signature to check.
    :returns: Checksummed signer address.
    :raises ValueError: If the signature bytes are malformed.
    """
    try:
        return Account.recover_message(encode_defunct(payload), signature=signature.value)
    except (ValueError, ValidationError, KeyBadSignature) as e:
        raise ValueError(f"Malformed signature: {e}") from e


class Keystore:
    """Holds the node's signing accounts.

    The first account added is the one used for signing.
    """

    def __init__(self) -> None:
        self._accounts: list[LocalAccount] = []

    @classmethod
    def from_keys(cls, private_keys: list[str]) -> Keystore:
        """Build a keystore from hex private keys.

        :param private_keys: Hex-encoded private keys.
        :returns: New Keystore.
        """
        keystore = cls()
        for key in private_keys:
            keystore.add_key(key)
        return keystore

    def add_key(self, private_key: str) -> str:
        """Import a private key.

        :param private_key: Hex-encoded private key.
        :returns: Address of the imported account.
        :raises ValueError: If the key is not a valid 32-byte private key.
        """
        try:
            account: LocalAccount = Account.from_key(private_key)
        except (ValueError, ValidationError) as e:
            raise ValueError(f"Invalid private key: {e}") from e
        self._accounts.append(account)
        logger.info(f"Imported signing account {account.address}")
        return account.address

    def generate(self) -> str:
        """Create a new random account.

        :returns: Address of the new account.
        """
        account: LocalAccount = Account.create()
        self._accounts.append(account)
        logger.info(f"Generated signing account {account.address}")
        return account.address

    def has_local_identity(self) -> bool:
        """Check whether any signing account is available."""
        return len(self._accounts) > 0

    def local_account(self) -> str:
        """Address of the signing account.

        :raises NoLocalAccountsAvailable: If the keystore is empty.
        """
        if not self._accounts:
            raise NoLocalAccountsAvailable("No local accounts available")
        return self._accounts[0].address

    def sign(self, payload: bytes) -> Signature:
        """Sign a payload with the signing account.

        :param payload: Bytes to sign.
        :returns: Signature with the signer's address.
        :raises NoLocalAccountsAvailable: If the keystore is empty.
        """
        if not self._accounts:
            raise NoLocalAccountsAvailable("No local accounts available")
        account = self._accounts[0]
        signed = account.sign_message(encode_defunct(payload))
        return Signature(signer=account.address, value=bytes(signed.signature))
