"""Tests for the lwtclient command line."""

import json
import logging

import pytest

import lwtclient
from lwtclient import cli
from lwtclient.errors import StoreConnectionError


@pytest.fixture(autouse=True)
def _reset_cli_logging():
    """main() points the package logger at the captured stderr; undo that."""
    yield
    logger = logging.getLogger("lwtclient")
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


def test_print_schema(capsys):
    assert cli.main(["--print-schema"]) == 0
    out = capsys.readouterr().out
    assert "CREATE TABLE IF NOT EXISTS lwtclient.registers" in out
    assert "contents int" in out


def test_help_exits_zero(capsys):
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--help"])
    assert excinfo.value.code == 0
    assert "--register-set" in capsys.readouterr().out


def test_version(capsys):
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--version"])
    assert excinfo.value.code == 0
    assert capsys.readouterr().out.strip() == f"lwtclient {lwtclient.__version__}"
    assert lwtclient.__version__ == "0.1.0"


@pytest.mark.parametrize(
    ("argv", "message"),
    [
        (["-u", "0"], "Upper bound"),
        (["-t", "0"], "Thread count"),
        (["-n", "0"], "Operation count"),
        (["-r", "1,x"], "invalid register set"),
        (["-t", "many"], "invalid int value"),
        (["--format", "xml"], "invalid choice"),
    ],
)
def test_bad_arguments_print_usage_and_fail(argv, message, capsys):
    assert cli.main(argv) == 1
    captured = capsys.readouterr()
    assert captured.out == ""
    assert captured.err.startswith("usage: lwtclient")
    assert message in captured.err


def test_memory_backend_run(capsys):
    argv = ["--backend", "memory", "-t", "2", "-n", "20", "-r", "1,2", "--format", "json", "--seed", "3", "-s", "1000"]
    assert cli.main(argv) == 0
    captured = capsys.readouterr()
    records = [json.loads(line) for line in captured.out.splitlines()]
    assert len(records) == 40
    assert {r["register"] for r in records} <= {1, 2}
    assert all(r["time"] >= 1000 for r in records)
    assert "finished: 20 operations" in captured.err


def test_default_output_is_edn(capsys):
    assert cli.main(["--backend", "memory", "-n", "1"]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 2
    assert lines[0].startswith("{:type :invoke, :f :")


def test_connection_failure_exits_nonzero(monkeypatch, capsys):
    def refuse():
        raise ConnectionRefusedError("cluster down")

    monkeypatch.setattr(cli, "_store_factory", lambda backend, config: refuse)
    assert cli.main(["-H", "db1,db2", "-t", "2", "-n", "4"]) == 1
    assert "could not connect" in capsys.readouterr().err


def test_config_from_args():
    args = cli.build_parser().parse_args(["-r", "4,5", "-H", "a,b", "-u", "9", "--seed", "2"])
    config = cli.config_from_args(args)
    assert config.registers == [4, 5]
    assert config.hosts == ["a", "b"]
    assert config.upper_bound == 9
    assert config.seed == 2


def test_store_connection_error_is_not_a_usage_error():
    assert not issubclass(StoreConnectionError, ValueError)
