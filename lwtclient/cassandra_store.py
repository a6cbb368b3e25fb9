"""Cassandra lightweight-transaction backend for the register store.

Each worker opens its own :class:`CassandraStore` (cluster + session) so
no driver state is shared between threads. Driver exceptions are translated
into the classified :mod:`lwtclient.errors` types; everything else is left
to propagate and ends up as an ``error`` record.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from contextlib import contextmanager

from cassandra import ConsistencyLevel, ReadTimeout, Unavailable, WriteTimeout
from cassandra.cluster import Cluster
from cassandra.cluster import NoHostAvailable as DriverNoHostAvailable

from lwtclient.errors import NoHostAvailable, StoreReadTimeout, StoreUnavailable, StoreWriteTimeout
from lwtclient.store import DEFAULT_KEYSPACE

logger = logging.getLogger(__name__)

READ_CQL = "SELECT * FROM registers WHERE id = ?"
WRITE_CQL = "UPDATE registers SET contents = ? WHERE id = ? IF EXISTS"
INSERT_CQL = "INSERT INTO registers (id, contents) VALUES (?, ?) IF NOT EXISTS"
CAS_CQL = "UPDATE registers SET contents = ? WHERE id = ? IF contents = ?"

# Checked in order; NoHostAvailable is not a subclass of the others.
_TRANSLATIONS = (
    (Unavailable, StoreUnavailable),
    (ReadTimeout, StoreReadTimeout),
    (WriteTimeout, StoreWriteTimeout),
    (DriverNoHostAvailable, NoHostAvailable),
)


@contextmanager
def _translate_driver_errors():
    try:
        yield
    except tuple(driver for driver, _ in _TRANSLATIONS) as e:
        for driver, classified in _TRANSLATIONS:
            if isinstance(e, driver):
                raise classified(str(e)) from e
        raise


class CassandraStore:
    """A :class:`~lwtclient.store.RegisterStore` session on a Cassandra cluster."""

    def __init__(self, cluster, session):
        self.cluster = cluster
        self.session = session
        self._read = session.prepare(READ_CQL)
        self._read.consistency_level = ConsistencyLevel.SERIAL
        self._read.serial_consistency_level = ConsistencyLevel.SERIAL
        self._write = session.prepare(WRITE_CQL)
        self._insert = session.prepare(INSERT_CQL)
        self._cas = session.prepare(CAS_CQL)

    @classmethod
    def connect(cls, hosts: Sequence[str], keyspace: str = DEFAULT_KEYSPACE) -> CassandraStore:
        """Open a cluster connection and prepare the register statements.

        Raises whatever the driver raises; the orchestrator treats any
        failure here as fatal.
        """
        cluster = Cluster(contact_points=list(hosts))
        try:
            session = cluster.connect(keyspace)
            store = cls(cluster, session)
        except Exception:
            cluster.shutdown()
            raise
        logger.debug("connected to %s (keyspace %s)", ",".join(hosts), keyspace)
        return store

    def conditional_write(self, register: int, value: int) -> bool:
        with _translate_driver_errors():
            return self.session.execute(self._write, (value, register)).was_applied

    def conditional_insert(self, register: int, value: int) -> bool:
        with _translate_driver_errors():
            return self.session.execute(self._insert, (register, value)).was_applied

    def compare_and_swap(self, register: int, expected: int, new: int) -> bool:
        with _translate_driver_errors():
            return self.session.execute(self._cas, (new, register, expected)).was_applied

    def linearizable_read(self, register: int) -> int | None:
        with _translate_driver_errors():
            row = self.session.execute(self._read, (register,)).one()
        return None if row is None else row.contents

    def close(self) -> None:
        self.session.shutdown()
        self.cluster.shutdown()


def session_factory(hosts: Sequence[str], keyspace: str = DEFAULT_KEYSPACE):
    """Return a store factory opening one new Cassandra session per call."""

    def open_session() -> CassandraStore:
        return CassandraStore.connect(hosts, keyspace)

    return open_session
