"""
Tests for turning flags in to filenames and back.
"""

# 3rd party imports
#
import pytest

# Project imports
#
from ..constants import (
    Flag,
    cur_filename,
    encode_flags,
    split_filename,
)
from ..exceptions import InvalidFlag


####################################################################
#
def test_encode_flags():
    assert encode_flags(None) == ""
    assert encode_flags([]) == ""
    assert encode_flags([Flag.SEEN]) == "S"
    assert encode_flags([Flag.SEEN, Flag.FLAGGED]) == "FS"
    assert encode_flags([Flag.FLAGGED, Flag.SEEN]) == "FS"
    assert encode_flags("TSRS") == "RST"
    assert encode_flags(set(Flag)) == "DFPRST"

    # Lower case letters are experimental flags, and are kept.
    #
    assert encode_flags(["a", Flag.SEEN]) == "Sa"


####################################################################
#
@pytest.mark.parametrize("bad_flag", ["", "SF", ":", "1", "é", ","])
def test_encode_flags_invalid(bad_flag):
    with pytest.raises(InvalidFlag):
        encode_flags([Flag.SEEN, bad_flag])
    with pytest.raises(ValueError):
        encode_flags([bad_flag])


####################################################################
#
def test_split_filename():
    assert split_filename("12345.host") == ("12345.host", None)
    assert split_filename("12345.host:2,") == ("12345.host", "")
    assert split_filename("12345.host:2,FS") == ("12345.host", "FS")


####################################################################
#
def test_cur_filename():
    assert cur_filename("12345.host", [Flag.SEEN, Flag.DRAFT]) == "12345.host:2,DS"
    assert cur_filename("12345.host", []) == "12345.host:2,"
    name = cur_filename("12345.host", [Flag.REPLIED])
    assert split_filename(name) == ("12345.host", "R")
