#!/bin/env python3
# vim: expandtab shiftwidth=4 softtabstop=4 tabstop=17 filetype=python :
"""Generate a local CA plus server and client certificates for TLS testing,
unless server.key already exists in the working directory."""

import argparse
import logging
import sys

from devcerts import config
from devcerts.bootstrap import ensure_local_dev_certificates

LOG = logging.getLogger(name="devcerts.scripts.bootstrap")


def cmdline(argv=None):
    """Parse commandline."""
    parser = argparse.ArgumentParser(description=__doc__)

    config.add_directory_argument(parser)
    config.add_common_name_argument(parser)
    config.add_path_arguments(parser)
    config.add_verbosity_argument(parser)

    return parser.parse_args(argv)


def error_out(message, exc=None):
    """Print error message and exit with failure code."""
    LOG.error(message)
    if exc is not None:
        LOG.error(str(exc))
    sys.exit(1)


def main(argv=None):
    """Entrypoint of application."""
    args = cmdline(argv)
    config.setup_logging()
    config.configure_log_level(args)

    common_name = config.get_common_name(args)
    paths = config.get_cert_paths(args)
    LOG.debug("Common name %r, paths %r", common_name, paths)

    try:
        ensure_local_dev_certificates(common_name, paths, args.directory)
    except (OSError, ValueError) as error:
        error_out(str(error))


if __name__ == "__main__":
    main()
