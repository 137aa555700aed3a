"""
Generate the unique keys that messages are delivered under.
"""

# System imports
#
import logging
import os
import secrets
import socket
import time

# Project imports
#
from .exceptions import EnvironmentFailure

logger = logging.getLogger("asmaildir.keys")

# '/' can not appear in a filename and ':' introduces the info section of a
# filename in `cur`. The maildir convention is to replace them with their
# octal escapes when they show up in the hostname.
#
HOSTNAME_ESCAPES = str.maketrans({"/": r"\057", ":": r"\072"})


####################################################################
#
def hostname() -> str:
    """
    The hostname of this machine, made safe for use in a filename.

    Raises EnvironmentFailure if the hostname can not be determined. Without
    it we can not promise that keys generated on different hosts delivering
    in to the same maildir do not collide.
    """
    try:
        name = socket.gethostname()
    except OSError as exc:
        raise EnvironmentFailure(f"Unable to get hostname: {exc}") from exc
    if not name:
        raise EnvironmentFailure("Hostname is empty")
    return name.translate(HOSTNAME_ESCAPES)


####################################################################
#
def generate_key() -> str:
    """
    Generate a new key: 64 bits of randomness, the current time in seconds,
    our pid, and the hostname.

    Two keys generated at the same time may, very rarely, collide. The
    delivery code checks `tmp` for a file with this key before using it.
    """
    key = f"{secrets.token_hex(8)}{int(time.time())}{os.getpid()}.{hostname()}"
    logger.debug("Generated key: %s", key)
    return key
