"""TransactionPool: Signed submissions queued by off-chain workers.

Off-chain workers never mutate ledger state directly. They sign a Call and
queue it here; the node later applies queued submissions one at a time
through the consensus entry points.

Calls are serialized with CBOR before signing, prices as their integer
fixed-point value, so every node signs and verifies the same bytes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import cbor2
from web3 import Web3

from .Keystore import Keystore, Signature
from .Price import Price
from .PriceRecord import PriceRecord

logger = logging.getLogger(__name__)

SUBMIT_NEW_PRICE = "submit_new_price"
SUBMIT_NEW_MEDIAN_PRICE = "submit_new_median_price"


@dataclass(frozen=True)
class Call:
    """A consensus entry point invocation.

    :ivar name: Entry point name.
    :ivar args: Positional arguments (excluding the origin).
    """

    name: str
    args: tuple

    @classmethod
    def submit_new_price(cls, record: PriceRecord) -> Call:
        """Build a call attaching a fresh observation to an active fetcher."""
        return cls(SUBMIT_NEW_PRICE, (record,))

    @classmethod
    def submit_new_median_price(cls, symbol: bytes, price: Price, tick: int) -> Call:
        """Build a call closing a fetcher's window with its median."""
        return cls(SUBMIT_NEW_MEDIAN_PRICE, (symbol, price, tick))

    def encode(self) -> bytes:
        """Serialize the call to CBOR.

        :returns: Canonical CBOR bytes.
        :raises ValueError: If the call name is unknown.
        """
        body: dict[str, Any]
        if self.name == SUBMIT_NEW_PRICE:
            (record,) = self.args
            body = {
                "symbol": record.symbol,
                "price": record.price.encode(),
                "time": record.time,
                "source": record.source,
            }
        elif self.name == SUBMIT_NEW_MEDIAN_PRICE:
            symbol, price, tick = self.args
            body = {"symbol": symbol, "price": price.encode(), "tick": tick}
        else:
            raise ValueError(f"Unknown call: {self.name}")
        return cbor2.dumps({"call": self.name, "args": body}, canonical=True)


@dataclass(frozen=True)
class SignedSubmission:
    """A call signed by a node's local account.

    :ivar call: Call to dispatch.
    :ivar signature: Signature over ``call.encode()``.
    """

    call: Call
    signature: Signature

    @classmethod
    def sign(cls, call: Call, keystore: Keystore) -> SignedSubmission:
        """Sign a call with the keystore's signing account.

        :raises NoLocalAccountsAvailable: If the keystore is empty.
        """
        return cls(call=call, signature=keystore.sign(call.encode()))

    @property
    def signer(self) -> str:
        """Address claimed as the submitter."""
        return self.signature.signer

    @property
    def hash(self) -> str:
        """Keccak hash of the encoded call, hex encoded."""
        return Web3.keccak(self.call.encode()).hex()


class TransactionPool:
    """Outbound queue of signed submissions, in submission order."""

    def __init__(self) -> None:
        self._transactions: list[SignedSubmission] = []

    def submit(self, tx: SignedSubmission) -> None:
        """Queue a signed submission."""
        self._transactions.append(tx)
        logger.debug(f"Queued {tx.call.name} from {tx.signer} ({tx.hash})")

    @property
    def pending(self) -> list[SignedSubmission]:
        """Queued submissions, oldest first."""
        return list(self._transactions)

    def drain(self) -> list[SignedSubmission]:
        """Remove and return all queued submissions."""
        transactions, self._transactions = self._transactions, []
        return transactions

    def __len__(self) -> int:
        return len(self._transactions)
