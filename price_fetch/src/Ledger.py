"""Ledger: Transactional key-value state shared by all entry points.

The registry and the sample store never keep private copies of their data;
they read and write through a Ledger. Each consensus entry point runs inside
``ledger.transaction()``, which restores the previous state if the block
raises, so a failed call leaves no partial changes behind.

.. code-block:: python

    >>> ledger = InMemoryLedger()
    >>> with ledger.transaction():
    ...     ledger.write("Fetchers", [])
    >>> ledger.read("Fetchers")
    []
"""

from __future__ import annotations

import copy
import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Event:
    """A state change notification deposited by an entry point.

    :ivar name: Event name (e.g., "NewFetcher").
    :ivar data: Event fields.
    """

    name: str
    data: dict[str, Any] = field(default_factory=dict)


class Ledger(ABC):
    """Abstract interface to the consensus-managed state."""

    @property
    @abstractmethod
    def block_number(self) -> int:
        """Current tick (block height)."""
        pass

    @abstractmethod
    def set_block_number(self, block_number: int) -> None:
        """Advance the current tick.

        :param block_number: New tick value, never lower than the current one.
        """
        pass

    @abstractmethod
    def read(self, key: str, default: Any = None) -> Any:
        """Read a storage value.

        :param key: Storage key.
        :param default: Value returned when the key is unset.
        :returns: A copy of the stored value.
        """
        pass

    @abstractmethod
    def write(self, key: str, value: Any) -> None:
        """Write a storage value.

        :param key: Storage key.
        :param value: New value.
        """
        pass

    @abstractmethod
    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Run a block of reads and writes atomically."""
        pass

    @abstractmethod
    def deposit_event(self, event: Event) -> None:
        """Record an event."""
        pass

    @property
    @abstractmethod
    def events(self) -> list[Event]:
        """Events deposited so far."""
        pass


class InMemoryLedger(Ledger):
    """Dict-backed ledger with snapshot/rollback transactions."""

    def __init__(self, block_number: int = 0) -> None:
        self._block_number = block_number
        self._storage: dict[str, Any] = {}
        self._events: list[Event] = []

    @property
    def block_number(self) -> int:
        return self._block_number

    def set_block_number(self, block_number: int) -> None:
        if block_number < self._block_number:
            raise ValueError(
                f"Block number cannot go backwards: {block_number} < {self._block_number}"
            )
        self._block_number = block_number

    def read(self, key: str, default: Any = None) -> Any:
        if key not in self._storage:
            return copy.deepcopy(default)
        return copy.deepcopy(self._storage[key])

    def write(self, key: str, value: Any) -> None:
        self._storage[key] = copy.deepcopy(value)

    @contextmanager
    def transaction(self) -> Iterator[None]:
        storage = copy.deepcopy(self._storage)
        num_events = len(self._events)
        try:
            yield
        except BaseException:
            logger.debug("Rolling back transaction at block %d", self._block_number)
            self._storage = storage
            del self._events[num_events:]
            raise

    def deposit_event(self, event: Event) -> None:
        logger.debug("Event %s %s", event.name, event.data)
        self._events.append(event)

    @property
    def events(self) -> list[Event]:
        return list(self._events)
