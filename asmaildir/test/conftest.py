"""
pytest fixtures for testing `asmaildir`
"""
# System imports
#
from itertools import chain, repeat
from pathlib import Path
from typing import Callable, List

# 3rd party imports
#
import pytest
import pytest_asyncio

# project imports
#
from ..backoff import Backoff
from ..maildir import Maildir


####################################################################
#
@pytest.fixture
def maildir_path(tmp_path) -> Path:
    """
    Where the maildir for a test lives. It is not created.
    """
    return tmp_path / "Maildir"


####################################################################
#
@pytest.fixture
def no_wait_backoff() -> Backoff:
    """
    A backoff policy that retries without sleeping so the collision tests
    run quickly.
    """
    return Backoff(max_attempts=5, initial_delay=0.0)


####################################################################
#
@pytest_asyncio.fixture
async def maildir(maildir_path, no_wait_backoff) -> Maildir:
    """
    An empty, ensured, maildir.
    """
    md = Maildir(maildir_path, backoff=no_wait_backoff)
    await md.ensure()
    return md


####################################################################
#
@pytest.fixture
def key_sequence() -> Callable[..., Callable[[], str]]:
    """
    Returns a function that makes a key factory that returns the given keys
    in order, and then repeats the last one forever. The factory records
    how many times it was called in its `calls` attribute.
    """

    def make_key_factory(*keys: str) -> Callable[[], str]:
        keys_iter = chain(keys, repeat(keys[-1]))

        def key_factory() -> str:
            key_factory.calls += 1  # type: ignore [attr-defined]
            return next(keys_iter)

        key_factory.calls = 0  # type: ignore [attr-defined]
        return key_factory

    return make_key_factory


####################################################################
#
@pytest.fixture
def message_factory(faker) -> Callable[..., bytes]:
    """
    Returns a function that makes message bodies. They are not real email
    messages, the maildir does not care what is in a message.
    """

    def make_message(paragraphs: int = 5) -> bytes:
        body = "\n\n".join(faker.paragraphs(nb=paragraphs))
        return f"Subject: {faker.sentence()}\n\n{body}\n".encode("utf-8")

    return make_message


####################################################################
#
def subdir_names(maildir: Maildir, subdir: str) -> List[str]:
    """
    The filenames in one of the maildir's subdirectories.
    """
    return sorted(x.name for x in (maildir.path / subdir).iterdir())
