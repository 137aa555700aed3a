#!/usr/bin/env python
#
# File: $Id$
#
"""
Some exceptions need to be generally available to many modules so they are
kept in this module to avoid ciruclar dependencies.
"""
# system imports
#
from typing import Optional


#######################################################################
#
# The base of all of the exceptions raised by operations on a maildir.
#
class MaildirException(Exception):
    def __init__(self, value="maildir exception"):
        super().__init__(value)
        self.value = value

    def __str__(self):
        return self.value


##################################################################
##################################################################
#
class NotFound(MaildirException, KeyError):
    """
    The message was not in the subdirectory we expected to find it in.

    This is a normal outcome when more than one process is claiming
    messages from the same maildir, so callers are expected to catch this
    and decide what to do.
    """

    def __init__(
        self,
        value="message not found",
        key: Optional[str] = None,
        subdir: Optional[str] = None,
    ):
        super().__init__(value)
        self.key = key
        self.subdir = subdir

    def __str__(self):
        if self.key is None:
            return self.value
        return "%s: '%s' in '%s'" % (self.value, self.key, self.subdir)


##################################################################
##################################################################
#
class KeyCollision(MaildirException):
    def __init__(self, value="key collision", key: Optional[str] = None):
        super().__init__(value)
        self.key = key

    def __str__(self):
        if self.key is None:
            return self.value
        return "%s: '%s'" % (self.value, self.key)


##################################################################
##################################################################
#
class DeliveryExhausted(KeyCollision):
    """
    Raised when every key we generated for a delivery collided with a file
    already in `tmp` and we have used up all of our attempts.
    """

    def __init__(
        self,
        value="delivery exhausted",
        key: Optional[str] = None,
        attempts: int = 0,
    ):
        super().__init__(value, key=key)
        self.attempts = attempts

    def __str__(self):
        return "%s after %d attempts, last key: '%s'" % (
            self.value,
            self.attempts,
            self.key,
        )


##################################################################
##################################################################
#
class IOFailure(MaildirException):
    """
    An error from the underlying filesystem. The OSError that caused it is
    chained as the `__cause__`.
    """

    def __init__(
        self,
        value="io failure",
        operation: Optional[str] = None,
        path=None,
    ):
        super().__init__(value)
        self.operation = operation
        self.path = path

    def __str__(self):
        return "%s during %s on '%s'" % (self.value, self.operation, self.path)


##################################################################
##################################################################
#
class DeliveryError(IOFailure):
    """
    Delivery failed in the given phase: `create`, `write`, or `publish`.

    If the phase is `create` or `write` the message is not visible in `new`
    (at most an orphan is left in `tmp`.) If the phase is `publish` we can
    not know if the rename happened or not. Callers that retry a delivery
    that failed in this phase need to be able to tolerate a duplicate.
    """

    def __init__(
        self,
        value="delivery failed",
        phase: Optional[str] = None,
        key: Optional[str] = None,
        path=None,
    ):
        super().__init__(value, operation=f"deliver:{phase}", path=path)
        self.phase = phase
        self.key = key


##################################################################
##################################################################
#
class EnvironmentFailure(MaildirException):
    """
    We were unable to determine something about the host we are running on
    that we need, like its hostname.
    """

    pass


##################################################################
##################################################################
#
class InvalidFlag(MaildirException, ValueError):
    pass
