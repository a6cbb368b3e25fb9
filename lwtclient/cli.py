"""lwtclient CLI: generate a register history against a Cassandra cluster.

Usage::

    lwtclient --print-schema | cqlsh node1
    lwtclient -H node1,node2,node3 -t 8 -n 20000 -r 1,2,3 -u 5 > history.edn
    lwtclient --backend memory -t 4 -n 400 --format json

The history goes to stdout, one record per line; diagnostics go to stderr.

Exit status is 0 on completion, 1 on invalid arguments or when a worker
cannot connect to the store, and 130 when interrupted.
"""

from __future__ import annotations

import argparse
import logging
import sys
from importlib import resources

from lwtclient import __version__
from lwtclient.clock import TimeBase
from lwtclient.config import DEFAULT_OPERATION_COUNT, DEFAULT_UPPER_BOUND, WorkloadConfig, parse_hosts, parse_register_set
from lwtclient.errors import ConfigError, StoreConnectionError
from lwtclient.history import FORMATS, HistoryEmitter

logger = logging.getLogger("lwtclient")

BACKENDS = ("cassandra", "memory")


class _UsageError(Exception):
    pass


class _Parser(argparse.ArgumentParser):
    def error(self, message):
        raise _UsageError(message)


def _register_set(text: str) -> list[int]:
    try:
        return parse_register_set(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid register set {text!r}; expected a list like 3,4,5") from None


def build_parser() -> argparse.ArgumentParser:
    parser = _Parser(
        prog="lwtclient",
        description="Performs LWT operations against a Cassandra cluster and prints the history.",
    )
    parser.add_argument(
        "-r",
        "--register-set",
        type=_register_set,
        default=[1],
        metavar="SET",
        help="Set of registers to operate against, as comma-separated list like 3,4,5",
    )
    parser.add_argument(
        "-t", "--thread-count", type=int, default=1, metavar="COUNT", help="Number of LWT threads to run concurrently"
    )
    parser.add_argument(
        "-s", "--start-time", type=int, default=0, metavar="TIME", help="Starting relative time in nanoseconds"
    )
    parser.add_argument(
        "-n",
        "--operation-count",
        type=int,
        default=DEFAULT_OPERATION_COUNT,
        metavar="COUNT",
        help="Number of operations to perform",
    )
    parser.add_argument(
        "-u",
        "--upper-bound",
        type=int,
        default=DEFAULT_UPPER_BOUND,
        metavar="BOUND",
        help="Upper bound (exclusive) of values a register can hold",
    )
    parser.add_argument("-p", "--print-schema", action="store_true", help="Print the schema to use for the cluster under load")
    parser.add_argument(
        "-H", "--hosts", type=parse_hosts, default=["localhost"], metavar="HOSTS", help="Hosts to contact"
    )
    parser.add_argument("--format", choices=FORMATS, default="edn", help="History line format (default: edn)")
    parser.add_argument(
        "--backend",
        choices=BACKENDS,
        default="cassandra",
        help="Store to run against; 'memory' uses an in-process register table",
    )
    parser.add_argument("--seed", type=int, default=None, help="Base seed for the per-worker random streams")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output to stderr")
    parser.add_argument("--version", action="version", version=f"lwtclient {__version__}")
    return parser


def schema_text() -> str:
    return resources.files("lwtclient").joinpath("schema.cql").read_text()


def config_from_args(args: argparse.Namespace) -> WorkloadConfig:
    return WorkloadConfig(
        registers=args.register_set,
        thread_count=args.thread_count,
        operation_count=args.operation_count,
        upper_bound=args.upper_bound,
        hosts=args.hosts,
        start_time=args.start_time,
        seed=args.seed,
    )


def _store_factory(backend: str, config: WorkloadConfig):
    if backend == "memory":
        from lwtclient.memory_store import MemoryStore

        return MemoryStore().session

    from lwtclient.cassandra_store import session_factory

    return session_factory(config.hosts, config.keyspace)


def _configure_logging(verbose: bool) -> None:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(name)s: %(levelname)s: %(message)s"))
    root = logging.getLogger("lwtclient")
    root.handlers[:] = [handler]
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    root.propagate = False


def main(argv: list[str] | None = None) -> int:
    """Entry point for the ``lwtclient`` CLI command."""
    if argv is None:
        argv = sys.argv[1:]

    parser = build_parser()
    try:
        args = parser.parse_args(argv)
        if args.print_schema:
            print(schema_text(), end="")
            return 0
        config = config_from_args(args).validate()
    except (_UsageError, ConfigError) as e:
        print(parser.format_usage(), end="", file=sys.stderr)
        print(f"lwtclient: error: {e}", file=sys.stderr)
        return 1

    _configure_logging(args.verbose)

    from lwtclient.orchestrator import run_workload

    time_base = TimeBase(config.start_time)
    emitter = HistoryEmitter(fmt=args.format, clock=time_base.corrected_time)
    try:
        run_workload(config, _store_factory(args.backend, config), emitter, time_base=time_base)
    except StoreConnectionError as e:
        logger.error("%s", e)
        return 1
    except KeyboardInterrupt:
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
