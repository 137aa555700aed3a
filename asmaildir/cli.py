#!/usr/bin/env python
#
# File: $Id$
#
"""
Deliver messages to, and manage messages in, a maildir.

NOTE: For all command line options that can also be specified via an env. var:
      the command line option will override the env. var if set.

Usage:
  asmaildir [--debug] [--log-config=<lc>] deliver [<maildir>]
  asmaildir [--debug] [--log-config=<lc>] list [--new | --cur] [<maildir>]
  asmaildir [--debug] [--log-config=<lc>] claim [--flags=<flags>] <key> [<maildir>]
  asmaildir [--debug] [--log-config=<lc>] restate [--flags=<flags>] <key> [<maildir>]
  asmaildir [--debug] [--log-config=<lc>] cat <key> [<maildir>]
  asmaildir (-h | --help)
  asmaildir --version

Commands:
  deliver            Create the maildir if it does not exist and deliver the
                     message read from stdin in to it. Prints the new key.
  list               Print the keys of the messages in `new` and `cur`, one
                     per line. `--new` or `--cur` restricts the listing.
  claim              Move a message from `new` to `cur`, setting its flags.
                     Prints the message's filename in `cur`.
  restate            Change the flags of a message in `cur`. Prints the
                     message's filename in `cur`.
  cat                Write a claimed message to stdout.

Arguments:
  <maildir>          The maildir to operate on. The env. var is `MAILDIR`.
                     Defaults to `~/Maildir`.
  <key>              The key of a message.

Options:
  --version
  -h, --help         Show this text and exit
  --flags=<flags>    The flag codes to set, ie: `FS` for flagged and seen.
                     If not given `claim` marks the message seen, and
                     `restate` leaves the flags as they are.
  --debug            Will set the default logging level to `DEBUG` thus
                     enabling all of the debug logging. The env var is `DEBUG`
  --log-config=<lc>  The log config file. This file may be either a JSON file
                     that follows the python logging configuration dictionary
                     schema or a file that conforms to the python logging
                     configuration file format. If no file is specified it will
                     check in /etc, /usr/local/etc, /opt/local/etc for a file
                     named `asmaildir_log.cfg` or `asmaildir_log.json`.
                     If no valid file can be found or loaded it will defaut to
                     logging to stderr. The env. var is `LOG_CONFIG`

The retry policy for deliveries whose generated key collides with one in
`tmp` is set with the env. vars `ASMAILDIR_MAX_ATTEMPTS`,
`ASMAILDIR_RETRY_DELAY`, `ASMAILDIR_RETRY_MULTIPLIER` and
`ASMAILDIR_MAX_DELAY`.
"""
# system imports
#
import asyncio
import logging
import os
import sys
from pathlib import Path

# 3rd party imports
#
from docopt import docopt
from dotenv import dotenv_values

# Application imports
#
from asmaildir import __version__ as VERSION
from asmaildir.backoff import Backoff
from asmaildir.constants import CHUNK_SIZE
from asmaildir.exceptions import MaildirException, NotFound
from asmaildir.maildir import Maildir
from asmaildir.utils import setup_asyncio_logging, setup_logging

logger = logging.getLogger("asmaildir.cli")

TRUTHY = ("1", "true", "yes", "on")


####################################################################
#
def _config_value(config, var):
    """
    Look up `var` in the .env config, then in the environment.
    """
    value = config.get(var)
    return value if value is not None else os.environ.get(var)


#############################################################################
#
async def run(args, maildir: Maildir) -> int:
    """
    Perform the command given in `args` on `maildir`. Returns the exit
    status.
    """
    if args["deliver"]:
        await maildir.ensure()
        key = await maildir.deliver(sys.stdin.buffer)
        print(key)
    elif args["list"]:
        if args["--new"]:
            keys = await maildir.list_new()
        elif args["--cur"]:
            keys = await maildir.list_cur()
        else:
            keys = await maildir.keys()
        for key in keys:
            print(key)
    elif args["claim"]:
        print(await maildir.claim(args["<key>"], args["--flags"]))
    elif args["restate"]:
        print(await maildir.restate(args["<key>"], args["--flags"]))
    elif args["cat"]:
        async with maildir.open_message(args["<key>"]) as f:
            while chunk := await f.read(CHUNK_SIZE):
                sys.stdout.buffer.write(chunk)
        sys.stdout.buffer.flush()
    return 0


#############################################################################
#
def main():
    """
    Parse the options, set up logging, and run the command.
    """
    args = docopt(__doc__, version=VERSION)
    config = dotenv_values()

    debug = args["--debug"]
    if not debug:
        debug = str(_config_value(config, "DEBUG") or "").lower() in TRUTHY
    log_config = args["--log-config"]
    if log_config is None:
        log_config = _config_value(config, "LOG_CONFIG")
    maildir_path = args["<maildir>"]
    if maildir_path is None:
        maildir_path = _config_value(config, "MAILDIR") or "~/Maildir"

    setup_logging(log_config, debug)
    setup_asyncio_logging()

    try:
        maildir = Maildir(
            Path(maildir_path).expanduser(), backoff=Backoff.from_env(config)
        )
        return asyncio.run(run(args, maildir))
    except NotFound as exc:
        print(f"Not found: {exc}", file=sys.stderr)
        return 1
    except (MaildirException, ValueError) as exc:
        logger.exception("Failed: %s", exc)
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        logger.warning("Keyboard interrupt, exiting")
        return 130


############################################################################
############################################################################
#
# Here is where it all starts
#
if __name__ == "__main__":
    sys.exit(main())
#
#
############################################################################
############################################################################
