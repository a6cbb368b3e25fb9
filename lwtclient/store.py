"""The register store capability the workers drive.

The core never implements the store's consistency protocol; it only calls
the four conditional operations below. Any of them may raise a
:class:`~lwtclient.errors.StoreError` subclass (unavailable, read timeout,
write timeout, no host available) or an arbitrary exception, which the
classifier turns into a terminal record.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

DEFAULT_KEYSPACE = "lwtclient"


class RegisterStore(Protocol):
    """One session against a linearizable register table."""

    def conditional_write(self, register: int, value: int) -> bool:
        """Set *register* to *value* only if the register already exists."""
        ...

    def conditional_insert(self, register: int, value: int) -> bool:
        """Create *register* holding *value* only if it does not exist yet."""
        ...

    def compare_and_swap(self, register: int, expected: int, new: int) -> bool:
        """Set *register* to *new* only if it currently holds *expected*."""
        ...

    def linearizable_read(self, register: int) -> int | None:
        """Read *register* at serial consistency; ``None`` if absent."""
        ...

    def close(self) -> None: ...


# Opens one independent session; called once per worker.
StoreFactory = Callable[[], RegisterStore]
