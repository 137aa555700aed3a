"""
Tests for the `asmaildir` command line.
"""
# System imports
#
import io

# 3rd party imports
#
import pytest

# Project imports
#
from ..cli import main
from ..maildir import Maildir
from .conftest import subdir_names


####################################################################
#
@pytest.fixture
def run_cli(mocker, monkeypatch, tmp_path):
    """
    Returns a function that runs the command line with the given arguments
    and returns its exit status. Logging setup is skipped so we do not
    disturb pytest's own log handlers.
    """
    mocker.patch("asmaildir.cli.setup_logging")
    mocker.patch("asmaildir.cli.setup_asyncio_logging")
    mocker.patch("asmaildir.cli.dotenv_values", return_value={})
    monkeypatch.setenv("ASMAILDIR_RETRY_DELAY", "0")

    def run(*args: str, stdin: bytes = b"") -> int:
        mocker.patch("sys.argv", ["asmaildir", *args])
        mocker.patch("sys.stdin", io.TextIOWrapper(io.BytesIO(stdin)))
        return main()

    return run


####################################################################
#
def test_cli_deliver_list_claim_cat(run_cli, maildir_path, capsysbinary):
    assert run_cli("deliver", str(maildir_path), stdin=b"hello") == 0
    key = capsysbinary.readouterr().out.decode().strip()
    md = Maildir(maildir_path)
    assert subdir_names(md, "new") == [key]

    assert run_cli("list", "--new", str(maildir_path)) == 0
    assert capsysbinary.readouterr().out.decode().split() == [key]

    assert run_cli("claim", "--flags=FS", key, str(maildir_path)) == 0
    assert capsysbinary.readouterr().out.decode().strip() == f"{key}:2,FS"

    assert run_cli("restate", "--flags=S", key, str(maildir_path)) == 0
    assert capsysbinary.readouterr().out.decode().strip() == f"{key}:2,S"

    assert run_cli("list", "--cur", str(maildir_path)) == 0
    assert capsysbinary.readouterr().out.decode().split() == [key]

    assert run_cli("cat", key, str(maildir_path)) == 0
    assert capsysbinary.readouterr().out == b"hello"


####################################################################
#
def test_cli_maildir_from_env(run_cli, maildir_path, monkeypatch, capsys):
    monkeypatch.setenv("MAILDIR", str(maildir_path))
    assert run_cli("deliver", stdin=b"hello") == 0
    key = capsys.readouterr().out.strip()
    assert run_cli("list") == 0
    assert capsys.readouterr().out.split() == [key]


####################################################################
#
def test_cli_not_found(run_cli, maildir_path, capsys):
    assert run_cli("deliver", str(maildir_path), stdin=b"hello") == 0
    capsys.readouterr()
    assert run_cli("claim", "nosuchkey", str(maildir_path)) == 1
    assert "Not found" in capsys.readouterr().err
    assert run_cli("restate", "nosuchkey", str(maildir_path)) == 1


####################################################################
#
def test_cli_errors(run_cli, maildir_path, capsys):
    # Not created yet.
    #
    assert run_cli("list", str(maildir_path)) == 2
    assert "Error" in capsys.readouterr().err

    assert run_cli("deliver", str(maildir_path), stdin=b"hello") == 0
    key = capsys.readouterr().out.strip()
    assert run_cli("claim", "--flags=!", key, str(maildir_path)) == 2
