#!/bin/env python3
# vim: expandtab shiftwidth=4 softtabstop=4 tabstop=17 filetype=python :
"""Print the bootstrapped certificates and check that server.crt chains to
ca.crt."""

import argparse
import logging
import os
import sys

from devcerts import certlib, config

LOG = logging.getLogger(name="devcerts.scripts.show")


def cmdline(argv=None):
    """Parse commandline."""
    parser = argparse.ArgumentParser(description=__doc__)

    config.add_directory_argument(parser)
    config.add_verbosity_argument(parser)

    return parser.parse_args(argv)


def error_out(message, exc=None):
    """Print error message and exit with failure code."""
    LOG.error(message)
    if exc is not None:
        LOG.error(str(exc))
    sys.exit(1)


def print_certificate(path):
    info = certlib.describe(certlib.load_cert(path))
    print(path)
    print("    subject:   {subject}".format(**info))
    print("    issuer:    {issuer}".format(**info))
    print("    serial:    {serial}".format(**info))
    print("    notBefore: {not_before}".format(**info))
    print("    notAfter:  {not_after}".format(**info))
    print("    key:       RSA {key_bits} bits".format(**info))
    if info["alt_names"]:
        print("    altNames:  " + ", ".join(info["alt_names"]))


def main(argv=None):
    """Entrypoint of application."""
    args = cmdline(argv)
    config.setup_logging()
    config.configure_log_level(args)

    ca_path = os.path.join(args.directory, config.CA_CRT_NAME)
    server_path = os.path.join(args.directory, config.SERVER_CRT_NAME)

    try:
        for path in ca_path, server_path:
            print_certificate(path)
        certlib.verify_chain(server_path, ca_path)
    except (OSError, ValueError) as error:
        error_out("Could not check certificates", exc=error)

    print("{}: OK".format(server_path))


if __name__ == "__main__":
    main()
