"""
A maildir message store using aiofiles for async access.

A maildir is a directory with three subdirectories: `tmp`, `new`, and
`cur`. Messages are written in to `tmp` and then renamed in to `new` once
they are completely written. Claiming a message renames it from `new` in to
`cur`, adding the info section that holds its flags to its filename.

There is no locking. Every change to the maildir that another process can
see is a single rename (or an exclusive create) so two processes working on
the same maildir never see a half finished change.
"""

# System imports
#
import asyncio
import inspect
import logging
import os
import stat
from contextlib import asynccontextmanager
from pathlib import Path
from typing import (
    TYPE_CHECKING,
    AsyncIterable,
    AsyncIterator,
    Awaitable,
    Callable,
    List,
    Optional,
    Protocol,
    TypeAlias,
    Union,
)

# 3rd party imports
#
import aiofiles
import aiofiles.os

# Project imports
#
from .backoff import Backoff
from .constants import (
    CHUNK_SIZE,
    CUR,
    DEFAULT_FLAGS,
    DIR_MODE,
    FILE_MODE,
    INFO_SEP,
    NEW,
    SUBDIRS,
    TMP,
    FlagsArg,
    cur_filename,
    encode_flags,
    split_filename,
)
from .exceptions import (
    DeliveryError,
    DeliveryExhausted,
    IOFailure,
    KeyCollision,
    NotFound,
)
from .keys import generate_key
from .utils import fsync

if TYPE_CHECKING:
    from _typeshed import StrPath

logger = logging.getLogger("asmaildir.maildir")

BytesLike: TypeAlias = Union[bytes, bytearray, memoryview]


########################################################################
#
class Reader(Protocol):
    """A binary file like object, ie: `io.BytesIO` or `sys.stdin.buffer`"""

    def read(self, size: int, /) -> bytes: ...


########################################################################
#
class AsyncReader(Protocol):
    """
    An object with a coroutine `read()`, ie: an aiofiles binary file or an
    `asyncio.StreamReader`
    """

    def read(self, size: int, /) -> Awaitable[bytes]: ...


Body: TypeAlias = Union[BytesLike, Reader, AsyncReader, AsyncIterable[bytes]]


####################################################################
#
def _open_private(path: str, flags: int) -> int:
    """
    `opener` for `open()` so that delivered files are only readable by
    their owner.
    """
    return os.open(path, flags, FILE_MODE)


####################################################################
#
def _check_body(body: Body):
    """
    Make sure we know how to read `body` before we create anything in
    `tmp`.
    """
    if isinstance(body, str):
        raise TypeError("message body must be bytes, not str")
    if isinstance(body, (bytes, bytearray, memoryview)):
        return
    if hasattr(body, "read") or hasattr(body, "__aiter__"):
        return
    raise TypeError(f"Do not know how to read a message body from {body!r}")


####################################################################
#
def _check_chunk(chunk) -> BytesLike:
    if not isinstance(chunk, (bytes, bytearray, memoryview)):
        raise TypeError(
            f"message body chunks must be bytes, not {type(chunk).__name__}"
        )
    return chunk


####################################################################
#
async def _body_chunks(body: Body) -> AsyncIterator[bytes]:
    """
    Yield the message body in chunks. `body` can be bytes, a binary file
    like object whose `read()` is either a regular function or a coroutine,
    or an async iterable of bytes.
    """
    if isinstance(body, (bytes, bytearray, memoryview)):
        if body:
            yield bytes(body)
        return

    if hasattr(body, "read"):
        while True:
            chunk = body.read(CHUNK_SIZE)  # type: ignore [attr-defined]
            if inspect.isawaitable(chunk):
                chunk = await chunk
            if not chunk:
                return
            yield _check_chunk(chunk)

    async for chunk in body:  # type: ignore [attr-defined]
        if chunk:
            yield _check_chunk(chunk)


########################################################################
########################################################################
#
class Maildir:
    """
    A maildir rooted at `path`.

    Arguments:
    - `path`: The root of the maildir. It is turned in to an absolute path
              but nothing is created until `ensure()` is called.
    - `backoff`: The retry policy to use when a generated key collides with
                 a message in `tmp`.
    - `key_factory`: The function called to generate new keys.
    """

    ####################################################################
    #
    def __init__(
        self,
        path: "StrPath",
        backoff: Optional[Backoff] = None,
        key_factory: Callable[[], str] = generate_key,
    ):
        self.path = Path(path).absolute()
        self.backoff = backoff if backoff is not None else Backoff()
        self.key_factory = key_factory

    ####################################################################
    #
    def __str__(self):
        return str(self.path)

    ####################################################################
    #
    def __repr__(self):
        return f"<Maildir: '{self.path}'>"

    ####################################################################
    #
    def _subdir_path(self, subdir: str, name: str) -> Path:
        if not name or name in (".", "..") or "/" in name or os.sep in name:
            raise ValueError(f"Invalid message filename: {name!r}")
        return self.path / subdir / name

    ####################################################################
    #
    def tmp(self, name: str) -> Path:
        """The path of `name` in the `tmp` subdirectory."""
        return self._subdir_path(TMP, name)

    ####################################################################
    #
    def new(self, name: str) -> Path:
        """The path of `name` in the `new` subdirectory."""
        return self._subdir_path(NEW, name)

    ####################################################################
    #
    def cur(self, name: str) -> Path:
        """The path of `name` in the `cur` subdirectory."""
        return self._subdir_path(CUR, name)

    ####################################################################
    #
    async def ensure(self):
        """
        Create the maildir and its subdirectories if they do not exist.

        Any of them existing already is fine, so this is safe to call as
        often as you like, including from several processes at once.
        """
        for path in [self.path] + [self.path / x for x in SUBDIRS]:
            try:
                await aiofiles.os.mkdir(path, mode=DIR_MODE)
                logger.debug("Created '%s'", path)
            except FileExistsError:
                pass
            except OSError as exc:
                raise IOFailure(str(exc), operation="ensure", path=path) from exc

            # Something that is not a directory being in the way is not
            # going to work as a maildir.
            #
            if not await aiofiles.os.path.isdir(path):
                raise IOFailure(
                    "not a directory", operation="ensure", path=path
                )

    ####################################################################
    #
    async def _claimed(self, key: str) -> bool:
        """
        True if a message with this key is already in `cur`. A missing `cur`
        holds no messages; creating the file in `tmp` reports the maildir as
        not being set up.
        """
        try:
            names = await aiofiles.os.listdir(self.path / CUR)
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise DeliveryError(
                str(exc), phase="create", key=key, path=self.path / CUR
            ) from exc
        return any(split_filename(name)[0] == key for name in names)

    ####################################################################
    #
    async def _create_tmp_file(self):
        """
        Generate a key and exclusively create the file for it in `tmp`. If
        the key is already in use in `tmp` we wait according to our backoff
        policy and try again with a new key.

        Returns a tuple of the key and the open file.
        """
        key = ""
        for attempt in range(self.backoff.max_attempts):
            key = self.key_factory()
            tmp_path = self.tmp(key)
            # A key already used in `new` would be overwritten by our rename,
            # and one already used in `cur` would be overwritten when the new
            # message is claimed.
            #
            if not (
                await aiofiles.os.path.exists(tmp_path)
                or await aiofiles.os.path.exists(self.new(key))
                or await self._claimed(key)
            ):
                try:
                    f = await aiofiles.open(tmp_path, "xb", opener=_open_private)
                    return (key, f)
                except FileExistsError:
                    # Someone else created it after we checked.
                    #
                    pass
                except OSError as exc:
                    raise DeliveryError(
                        str(exc), phase="create", key=key, path=tmp_path
                    ) from exc

            logger.warning(
                "Key '%s' already exists in '%s' (attempt %d of %d)",
                key,
                self.path,
                attempt + 1,
                self.backoff.max_attempts,
            )
            if attempt + 1 < self.backoff.max_attempts:
                await asyncio.sleep(self.backoff.delay(attempt))

        raise DeliveryExhausted(key=key, attempts=self.backoff.max_attempts)

    ####################################################################
    #
    async def deliver(self, body: Body) -> str:
        """
        Deliver a message in to `new`, returning its key.

        The body is written completely in to a file in `tmp`, synced to
        disk, and only then renamed in to `new`. If anything fails before
        the rename the message never shows up in `new` (a partially written
        file may be left behind in `tmp`.)

        If the rename itself fails we raise a DeliveryError with the phase
        `publish`. In that case we do not know if the message was delivered
        or not.
        """
        _check_body(body)
        key, f = await self._create_tmp_file()
        tmp_path = self.tmp(key)
        new_path = self.new(key)

        try:
            try:
                async for chunk in _body_chunks(body):
                    await f.write(chunk)
                await f.flush()
                await fsync(f.fileno())
            finally:
                await f.close()
        except (OSError, TypeError) as exc:
            logger.error(
                "Writing '%s' in to '%s' failed: %s",
                key,
                self.path / TMP,
                exc,
            )
            raise DeliveryError(
                str(exc), phase="write", key=key, path=tmp_path
            ) from exc

        try:
            await aiofiles.os.rename(tmp_path, new_path)
        except OSError as exc:
            logger.error(
                "Publishing '%s' in to '%s' failed: %s",
                key,
                self.path / NEW,
                exc,
            )
            raise DeliveryError(
                str(exc), phase="publish", key=key, path=new_path
            ) from exc

        logger.debug("Delivered '%s' in to '%s'", key, self.path)
        return key

    ####################################################################
    #
    async def _find_cur(self, key: str) -> Optional[str]:
        """
        Find the filename of the message in `cur` with the given key. We do
        not know what flags it has, so we have to look at every filename.
        """
        found = None
        for name in await self._listdir(CUR):
            if split_filename(name)[0] != key:
                continue
            if found is not None:
                logger.warning(
                    "Key '%s' has more than one file in '%s': '%s', '%s'",
                    key,
                    self.path / CUR,
                    found,
                    name,
                )
                continue
            found = name
        return found

    ####################################################################
    #
    def _check_key(self, key: str):
        if INFO_SEP in key:
            raise ValueError(f"Key can not contain '{INFO_SEP}': {key!r}")

    ####################################################################
    #
    async def claim(self, key: str, flags: FlagsArg = None) -> str:
        """
        Move the message with the given key from `new` to `cur`, setting
        its flags. If no flags are given the message is marked seen.

        This is a single rename. If several processes try to claim the same
        message at the same time exactly one succeeds, the others get
        NotFound.

        Returns the new filename of the message in `cur`.
        """
        self._check_key(key)
        new_path = self.new(key)
        codes = encode_flags(flags) or encode_flags(DEFAULT_FLAGS)
        name = cur_filename(key, codes)
        try:
            await aiofiles.os.stat(new_path)

            # A key may only have one message in `cur`. The rename could
            # even silently replace it. If the message has gone from `new`
            # it was claimed by someone else while we looked.
            #
            if await self._find_cur(key) is not None:
                if not await self.is_new(key):
                    raise NotFound(key=key, subdir=NEW)
                raise KeyCollision(
                    f"'{key}' is in both '{NEW}' and '{CUR}'", key=key
                )
            await aiofiles.os.rename(new_path, self.cur(name))
        except FileNotFoundError as exc:
            raise NotFound(key=key, subdir=NEW) from exc
        except OSError as exc:
            raise IOFailure(str(exc), operation="claim", path=new_path) from exc
        logger.debug("Claimed '%s' in '%s' as '%s'", key, self.path, name)
        return name

    ####################################################################
    #
    async def restate(self, key: str, flags: FlagsArg = None) -> str:
        """
        Change the flags of a message in `cur`. If no flags are given the
        message is left as it is.

        Returns the filename of the message in `cur`.
        """
        self._check_key(key)
        name = await self._find_cur(key)
        if name is None:
            raise NotFound(key=key, subdir=CUR)
        codes = encode_flags(flags)
        if not codes:
            return name

        new_name = cur_filename(key, codes)
        if new_name == name:
            return name
        cur_path = self.cur(name)
        try:
            await aiofiles.os.rename(cur_path, self.cur(new_name))
        except FileNotFoundError as exc:
            raise NotFound(key=key, subdir=CUR) from exc
        except OSError as exc:
            raise IOFailure(
                str(exc), operation="restate", path=cur_path
            ) from exc
        logger.debug(
            "Restated '%s' in '%s': '%s' -> '%s'", key, self.path, name, new_name
        )
        return new_name

    ####################################################################
    #
    async def is_new(self, key: str) -> bool:
        """True if the message with the given key is in `new`."""
        self._check_key(key)
        path = self.new(key)
        try:
            await aiofiles.os.stat(path)
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise IOFailure(str(exc), operation="stat", path=path) from exc
        return True

    ####################################################################
    #
    async def is_cur(self, key: str) -> bool:
        """True if the message with the given key is in `cur`."""
        self._check_key(key)
        return await self._find_cur(key) is not None

    ####################################################################
    #
    async def get_flags(self, key: str) -> str:
        """
        The flag codes of the message with the given key in `cur`.
        """
        self._check_key(key)
        name = await self._find_cur(key)
        if name is None:
            raise NotFound(key=key, subdir=CUR)
        return split_filename(name)[1] or ""

    ####################################################################
    #
    async def _listdir(self, subdir: str) -> List[str]:
        path = self.path / subdir
        try:
            return await aiofiles.os.listdir(path)
        except OSError as exc:
            raise IOFailure(str(exc), operation="list", path=path) from exc

    ####################################################################
    #
    async def _list_keys(self, subdir: str) -> List[str]:
        """
        The keys of the messages in the given subdirectory.

        Other processes may be adding and removing messages while we look.
        A message that disappears after we list the directory, but before we
        stat it, is just skipped.
        """
        keys = []
        for name in await self._listdir(subdir):
            if name.startswith("."):
                continue
            try:
                st = await aiofiles.os.stat(self.path / subdir / name)
            except FileNotFoundError:
                continue
            except OSError as exc:
                raise IOFailure(
                    str(exc), operation="stat", path=self.path / subdir / name
                ) from exc
            if stat.S_ISREG(st.st_mode):
                keys.append(split_filename(name)[0])
        return keys

    ####################################################################
    #
    async def list_new(self) -> List[str]:
        """The keys of all of the messages in `new`, in no particular order."""
        return await self._list_keys(NEW)

    ####################################################################
    #
    async def list_cur(self) -> List[str]:
        """The keys of all of the messages in `cur`, in no particular order."""
        return await self._list_keys(CUR)

    ####################################################################
    #
    async def keys(self) -> List[str]:
        return await self.list_new() + await self.list_cur()

    ####################################################################
    #
    @asynccontextmanager
    async def open_message(self, key: str):
        """
        Open the claimed message with the given key for reading. Yields an
        aiofiles binary file.
        """
        self._check_key(key)
        name = await self._find_cur(key)
        if name is None:
            raise NotFound(key=key, subdir=CUR)
        path = self.cur(name)
        try:
            f = await aiofiles.open(path, "rb")
        except FileNotFoundError as exc:
            raise NotFound(key=key, subdir=CUR) from exc
        except OSError as exc:
            raise IOFailure(str(exc), operation="open", path=path) from exc
        try:
            yield f
        finally:
            await f.close()

    ####################################################################
    #
    async def get_bytes(self, key: str) -> bytes:
        """The body of the claimed message with the given key."""
        async with self.open_message(key) as f:
            return await f.read()

