#!/usr/bin/env python
#
# File: $Id$
#
"""
Various global constants, and the handful of functions that turn message
flags in to the filename suffix a message carries while it is in `cur`.
"""
# system imports
#
from enum import StrEnum
from typing import Iterable, Optional, Tuple, Union

# Project imports
#
from .exceptions import InvalidFlag

# The three well known subdirectories of a maildir. `tmp` holds messages that
# are still being written, `new` holds delivered but unclaimed messages, and
# `cur` holds claimed messages (which carry a flag suffix.)
#
TMP = "tmp"
NEW = "new"
CUR = "cur"
SUBDIRS = (TMP, NEW, CUR)

# Everything in a filename after this separator is the "info" section. We only
# support the "2," info format, which is a (possibly empty) list of single
# character flags.
#
INFO_SEP = ":2,"

# Directories we create and files we deliver are only accessible by the owner.
#
DIR_MODE = 0o700
FILE_MODE = 0o600

# How much of the body we read and write at a time during delivery.
#
CHUNK_SIZE = 65536


##################################################################
##################################################################
#
class Flag(StrEnum):
    """
    The standard maildir flags. Their values are the single character codes
    that appear in a filename in `cur`.
    """

    DRAFT = "D"
    FLAGGED = "F"
    PASSED = "P"
    REPLIED = "R"
    SEEN = "S"
    TRASHED = "T"


# When a message is claimed from `new` without any flags it is marked seen.
#
DEFAULT_FLAGS = (Flag.SEEN,)

FlagsArg = Optional[Iterable[Union[Flag, str]]]


####################################################################
#
def encode_flags(flags: FlagsArg) -> str:
    """
    Turn a collection of flags in to the string of flag codes used in a
    filename. The codes are de-duplicated and sorted by their ASCII value so
    the same set of flags always results in the same filename, no matter what
    order the caller listed them in.

    Any single ASCII letter is accepted. The maildir convention reserves the
    lower case letters for experimental flags so we do not reject flags we do
    not know about.
    """
    codes = set()
    for flag in flags if flags is not None else []:
        code = str(flag)
        if len(code) != 1 or not (code.isascii() and code.isalpha()):
            raise InvalidFlag(f"Invalid flag: {flag!r}")
        codes.add(code)
    return "".join(sorted(codes))


####################################################################
#
def split_filename(name: str) -> Tuple[str, Optional[str]]:
    """
    Split a filename from `new` or `cur` in to its key and its flag codes.
    The flags are None if the filename has no info section.
    """
    key, sep, flags = name.partition(INFO_SEP)
    return (key, flags if sep else None)


####################################################################
#
def cur_filename(key: str, flags: FlagsArg) -> str:
    """
    The filename a message with the given key and flags has in `cur`.
    """
    return f"{key}{INFO_SEP}{encode_flags(flags)}"
