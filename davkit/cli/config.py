import json
import os
import string
from configparser import RawConfigParser
from itertools import chain

from .. import PROJECT_HOME
from .. import exceptions
from ..protocol import PROTOCOLS
from ..utils import expand_path

GENERAL_ALL = frozenset(["status_path"])
GENERAL_REQUIRED = frozenset(["status_path"])
ACCOUNT_REQUIRED = frozenset(["type", "url"])
SECTION_NAME_CHARS = frozenset(chain(string.ascii_letters, string.digits, "_"))


def validate_section_name(name, section_type):
    invalid = set(name) - SECTION_NAME_CHARS
    if invalid:
        chars_display = "".join(sorted(SECTION_NAME_CHARS))
        raise exceptions.UserError(
            'The {}-section "{}" contains invalid characters. Only '
            "the following characters are allowed for account "
            "names:\n{}".format(section_type, name, chars_display)
        )


def _validate_general_section(general_config):
    invalid = set(general_config) - GENERAL_ALL
    missing = GENERAL_REQUIRED - set(general_config)
    problems = []

    if invalid:
        problems.append(
            "general section doesn't take the parameters: {}".format(", ".join(invalid))
        )

    if missing:
        problems.append(
            "general section is missing the parameters: {}".format(", ".join(missing))
        )

    if problems:
        raise exceptions.UserError(
            "Invalid general section. Copy the example "
            "config from the repository and edit it: {}".format(PROJECT_HOME),
            problems=problems,
        )


def _validate_account_section(options):
    missing = ACCOUNT_REQUIRED - set(options)
    if missing:
        raise ValueError("Missing parameters: {}".format(", ".join(sorted(missing))))

    if options["type"] not in PROTOCOLS:
        raise ValueError(
            "Unknown type {!r}, expected one of: {}".format(
                options["type"], ", ".join(PROTOCOLS)
            )
        )


class _ConfigReader:
    def __init__(self, f):
        self._file = f
        self._parser = c = RawConfigParser()
        c.read_file(f)
        self._seen_names = set()

        self._general = {}
        self._accounts = {}

    def _parse_section(self, section_type, name, options):
        validate_section_name(name, section_type)
        if name in self._seen_names:
            raise ValueError(f'Name "{name}" already used.')
        self._seen_names.add(name)

        if section_type == "general":
            if self._general:
                raise ValueError("More than one general section.")
            self._general = options
        elif section_type == "account":
            _validate_account_section(options)
            self._accounts[name] = options
        else:
            raise ValueError("Unknown section type.")

    def parse(self):
        for section in self._parser.sections():
            if " " in section:
                section_type, name = section.split(" ", 1)
            else:
                section_type = name = section

            try:
                self._parse_section(
                    section_type,
                    name,
                    dict(_parse_options(self._parser.items(section), section=section)),
                )
            except ValueError as e:
                raise exceptions.UserError('Section "{}": {}'.format(section, str(e)))

        _validate_general_section(self._general)
        if getattr(self._file, "name", None):
            self._general["status_path"] = os.path.join(
                os.path.dirname(self._file.name),
                expand_path(self._general["status_path"]),
            )

        return self._general, self._accounts


def _parse_options(items, section=None):
    for key, value in items:
        try:
            yield key, json.loads(value)
        except ValueError as e:
            raise ValueError('Section "{}", option "{}": {}'.format(section, key, e))


class AccountConfig:
    def __init__(self, name, options):
        options = dict(options)
        self.name = name
        self.type = options.pop("type")
        self.url = options.pop("url")
        # Everything else is passed to the DAV session.
        self.session_args = options


class Config:
    def __init__(self, general, accounts):
        self.general = general
        self.accounts = {
            name: AccountConfig(name, options) for name, options in accounts.items()
        }

    @classmethod
    def from_fileobject(cls, f):
        reader = _ConfigReader(f)
        return cls(*reader.parse())

    @classmethod
    def from_filename_or_environment(cls, fname=None):
        if fname is None:
            fname = os.environ.get("DAVKIT_CONFIG", None)
        if fname is None:
            fname = expand_path("~/.davkit/config")
            if not os.path.exists(fname):
                xdg_config_dir = os.environ.get(
                    "XDG_CONFIG_HOME", expand_path("~/.config/")
                )
                fname = os.path.join(xdg_config_dir, "davkit/config")

        try:
            with open(fname) as f:
                return cls.from_fileobject(f)
        except Exception as e:
            raise exceptions.UserError(
                "Error during reading config {}: {}".format(fname, e)
            )

    def get_account(self, account_name):
        try:
            return self.accounts[account_name]
        except KeyError:
            raise exceptions.AccountNotFound(
                f"Account {account_name} not found.", account_name=account_name
            )


#: Public API.
load_config = Config.from_filename_or_environment
