#! /usr/bin/env python
# vim: expandtab shiftwidth=4 softtabstop=4 tabstop=17 filetype=python :
"""devcerts.config collects the option and logging handling shared by the
devcerts CLI tools"""

import argparse
import logging
import os
from logging.config import dictConfig
from typing import NamedTuple

LOG_LEVEL = {
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}

DEFAULT_LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "generic": {
            "format": "%(asctime)s %(levelname)-5.5s [%(name)s] %(message)s"
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stderr",
            "level": "NOTSET",
            "formatter": "generic",
        },
    },
    "loggers": {
        "": {  # root logger
            "handlers": ["console"],
            "level": "INFO",
        },
        "devcerts": {
            "level": "DEBUG",
            "qualname": "devcerts",
        },
    },
}

DEFAULT_COMMON_NAME = "localhost"
SCRATCH_DIR = ".certs"

# Terminal files copied out to the working directory
SERVER_KEY_NAME = "server.key"
SERVER_CRT_NAME = "server.crt"
CA_CRT_NAME = "ca.crt"


class CertPaths(NamedTuple):
    """Locations of every artifact the bootstrapper writes.
    None means "use the default under the scratch directory"."""

    ca_key: str = None
    ca_crt: str = None
    server_key: str = None
    server_csr: str = None
    server_crt: str = None
    client_key: str = None
    client_csr: str = None
    client_crt: str = None


DEFAULT_FILENAMES = CertPaths(
    ca_key="ca.key",
    ca_crt="ca.crt",
    server_key="server.key",
    server_csr="server.csr",
    server_crt="server.crt",
    client_key="client.key",
    client_csr="client.csr",
    client_crt="client.crt",
)


def resolve_paths(directory, paths=None):
    """Returns a CertPaths with every entry filled in and absolute.
    Missing entries land in the scratch directory, relative ones are taken
    relative to directory."""
    if paths is None:
        paths = CertPaths()
    scratch = os.path.join(directory, SCRATCH_DIR)
    resolved = {}
    for field, default in DEFAULT_FILENAMES._asdict().items():
        value = getattr(paths, field)
        if value is None:
            value = os.path.join(scratch, default)
        elif not os.path.isabs(value):
            value = os.path.join(directory, value)
        resolved[field] = os.path.abspath(value)
    return CertPaths(**resolved)


def add_directory_argument(parser):
    """Adds an argument for the working directory, defaults to the current
    directory"""
    parser.add_argument(
        "-C",
        "--directory",
        help="Working directory to place the certificates in",
        default=os.curdir,
        type=str,
    )


def add_common_name_argument(parser):
    """Adds an argument for the common name of the issued certificates"""
    parser.add_argument(
        "--common-name",
        help="Common Name and DNS subjectAltName of server and client certs",
        dest="common_name",
        type=str,
    )


def add_verbosity_argument(parser):
    """Adds an argument for verbosity to a given parser, counting the amount of
    'v's and 'verbose' on the commandline"""
    parser.add_argument(
        "-v",
        "--verbose",
        help="Verbosity of root logger, increasing the more 'v's are added",
        action="count",
        default=0,
    )


def add_path_arguments(parser):
    """Adds one argument per artifact path, e.g. --ca-key and --server-crt"""
    for field in CertPaths._fields:
        option = "--" + field.replace("_", "-")
        parser.add_argument(
            option,
            help="Path to write the {} to".format(field.replace("_", " ")),
            dest=field,
            type=str,
        )


def _get_config_value(
    arguments: argparse.Namespace,
    variable,
    required=False,
    default=None,
    env=None,
):
    """Returns what value to use for a given config variable, prefer argument >
    env-variable, if a value cant be found default is returned"""
    result = None

    if env is None:
        env = os.environ
    env_var = variable.upper().replace("-", "_")
    result = env.get(env_var) or result

    arg_value = getattr(arguments, variable, result)
    result = arg_value if arg_value is not None else result

    if result is None:
        result = default

    if required and result is None:
        raise ValueError(
            f"No {variable} could be found as either an argument"
            f" or in the environment variable {env_var}",
            variable,
            env_var,
        )
    return result


def get_common_name(arguments=None, env=None):
    """Returns the common name to issue certificates for, prefer argument >
    COMMON_NAME > localhost"""
    return _get_config_value(
        arguments,
        variable="common_name",
        default=DEFAULT_COMMON_NAME,
        env=env,
    )


def get_cert_paths(arguments=None, env=None):
    """Returns a CertPaths built from arguments and environment, entries that
    are not configured are left as None"""
    values = {
        field: _get_config_value(arguments, variable=field, env=env)
        for field in CertPaths._fields
    }
    return CertPaths(**values)


def get_log_level(argument_level, logger=None, env=None):
    """Calculates the highest verbosity(here inverted) from the argument,
    environment and root, capping it to between logging.DEBUG(10)-logging.ERROR(40),
    returning the log level"""

    if env is None:
        env = os.environ
    env_level_name = env.get("DEVCERTS_LOG_LEVEL", "INFO").upper()
    env_level = LOG_LEVEL[env_level_name]

    if logger is None:
        logger = logging.getLogger()
    current_level = logger.level

    argument_verbosity = logging.ERROR - argument_level * 10  # level steps are 10
    verbosity = min(argument_verbosity, env_level, current_level)
    log_level = (
        verbosity if logging.DEBUG <= verbosity <= logging.ERROR else logging.ERROR
    )
    return log_level


def configure_log_level(arguments: argparse.Namespace, logger=None):
    """Sets the root loggers level to the highest verbosity from the argument,
    environment and logging config"""
    log_level = get_log_level(arguments.verbose)
    if logger is None:
        logger = logging.getLogger()
    logger.setLevel(log_level)


def setup_logging(config=None):
    """Configures logging from a dictConfig style dictionary, falling back to
    DEFAULT_LOGGING_CONFIG"""
    dictConfig(config or DEFAULT_LOGGING_CONFIG)
