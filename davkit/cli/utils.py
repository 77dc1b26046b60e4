import errno
import json
import os
import sys

import click
from atomicwrites import atomic_write

from .. import BUGTRACKER_HOME
from .. import exceptions
from ..dav import DAVSession
from ..models import Collection
from ..utils import expand_path
from . import cli_logger

STATUS_PERMISSIONS = 0o600
STATUS_DIR_PERMISSIONS = 0o700


def handle_cli_error():
    """
    Print a useful error message for the current exception.

    This is supposed to catch all exceptions, and should never raise any
    exceptions itself.
    """

    try:
        raise
    except exceptions.UserError as e:
        cli_logger.critical(e)
    except (click.Abort, KeyboardInterrupt):
        pass
    except exceptions.AccountNotFound as e:
        cli_logger.error(
            "Account {account_name} does not exist. Please check your "
            "configuration file and make sure you've typed the account name "
            "correctly".format(account_name=e.account_name)
        )
    except exceptions.PreconditionError as e:
        cli_logger.error(
            "The server didn't tell us enough to continue: {}. Try setting "
            "`url` to the URL of your calendar or address book home.".format(e)
        )
    except exceptions.TransportError as e:
        if e.status is not None:
            cli_logger.error(f"The server returned HTTP {e.status} for {e.url}: {e}")
        else:
            cli_logger.error(f"Couldn't connect to the server: {e}")
    except exceptions.InvalidResponse as e:
        cli_logger.error(
            "The server returned something davkit doesn't understand. "
            "Error message: {!r}\n"
            "While this is most likely a serverside problem, the davkit "
            "devs are generally interested in such bugs. Please report it in "
            "the issue tracker at {}".format(e, BUGTRACKER_HOME)
        )
    except Exception as e:
        tb = sys.exc_info()[2]
        import traceback

        tb = traceback.format_tb(tb)
        msg = f"Unknown error occurred: {e}\nUse `-vdebug` to see the full traceback."

        cli_logger.error(msg)
        cli_logger.debug("".join(tb))


def session_from_config(account_config, *, connector):
    session, remainder = DAVSession.init_and_remaining_args(
        connector=connector, **account_config.session_args
    )
    if remainder:
        raise exceptions.UserError(
            f"Failed to initialize {account_config.name}",
            problems=[
                "account section doesn't take the parameters: {}".format(
                    ", ".join(sorted(remainder))
                )
            ],
        )
    return session


def get_status_path(base_path, account_name):
    return expand_path(os.path.join(base_path, account_name)) + ".collections"


def prepare_status_path(path):
    dirname = os.path.dirname(path)

    try:
        os.makedirs(dirname, STATUS_DIR_PERMISSIONS)
    except OSError as e:
        if e.errno != errno.EEXIST:
            raise


def assert_permissions(path, wanted):
    permissions = os.stat(path).st_mode & 0o777
    if permissions > wanted:
        cli_logger.warning(
            "Correcting permissions of {} from {:o} to {:o}".format(
                path, permissions, wanted
            )
        )
        os.chmod(path, wanted)


def load_status(base_path, account_name):
    """Load the cached collections of an account. A missing or unreadable
    cache counts as empty."""
    path = get_status_path(base_path, account_name)
    if not os.path.exists(path):
        return []
    assert_permissions(path, STATUS_PERMISSIONS)

    with open(path) as f:
        try:
            return [Collection.from_dict(d) for d in json.load(f)]
        except (ValueError, TypeError):
            cli_logger.warning(f"Ignoring broken status file {path}")

    return []


def save_status(base_path, account_name, collections):
    path = get_status_path(base_path, account_name)
    prepare_status_path(path)

    with atomic_write(path, mode="w", overwrite=True) as f:
        json.dump([c.to_dict() for c in collections], f)

    os.chmod(path, STATUS_PERMISSIONS)
