#! /usr/bin/env python3
# vim: expandtab shiftwidth=4 softtabstop=4 tabstop=17 filetype=python :
"""First-run bootstrap of a local CA plus server and client certificates.

Everything is generated into a scratch directory that is wiped on each run,
then server.key, server.crt and ca.crt are copied to the working directory.
Once server.key exists the bootstrap does nothing, it does not rotate.

Concurrent runs against the same directory race on the scratch directory and
have to be serialized by the caller.
"""

import logging
import os
import shutil

from devcerts import certlib, config

LOG = logging.getLogger(__name__)


def recreate_scratch(directory):
    scratch = os.path.join(directory, config.SCRATCH_DIR)
    if os.path.lexists(scratch):
        LOG.debug("Removing %s", scratch)
        shutil.rmtree(scratch)
    os.mkdir(scratch)
    return scratch


def issue(Type, common_name, alt_names, cakey, cacert, serialfile,
          keyfile, csrfile, certfile):
    """Generates key and CSR for Type, signs it with the CA and writes all
    three files"""
    LOG.info("Generating the %s Key and Certificate", Type.capitalize())
    key, req = certlib.create_req(template={"CN": common_name})
    certlib.write_key(key, keyfile)
    certlib.write_req(req, csrfile)

    LOG.info("Signing the %s certificate with the CA Certificate", Type)
    serial = certlib.next_serial(serialfile)
    cert = certlib.sign_req(req, cacert, cakey, Type=Type, serial=serial,
                            alt_names=alt_names)
    certlib.write_cert(cert, certfile)
    return cert


def copy_out(paths, directory):
    targets = (
        (paths.server_key, config.SERVER_KEY_NAME),
        (paths.server_crt, config.SERVER_CRT_NAME),
        (paths.ca_crt, config.CA_CRT_NAME),
    )
    for source, name in targets:
        target = os.path.join(directory, name)
        if os.path.abspath(source) == os.path.abspath(target):
            continue
        LOG.info("'%s' -> '%s'", source, target)
        shutil.copy2(source, target)


def ensure_local_dev_certificates(common_name=config.DEFAULT_COMMON_NAME,
                                  paths=None, directory=None):
    """Creates CA, server and client certificates unless server.key is
    already present in directory.

    paths is a config.CertPaths, unset entries default to the scratch
    directory. Returns True if anything was generated."""
    if directory is None:
        directory = os.getcwd()
    directory = os.path.abspath(directory)

    existing = os.path.join(directory, config.SERVER_KEY_NAME)
    if os.path.exists(existing):
        LOG.info("%s already exists, leaving certificates alone", existing)
        return False

    alt_names = certlib.subject_alt_names(common_name)
    certlib.request_subject({"CN": common_name})
    paths = config.resolve_paths(directory, paths)
    recreate_scratch(directory)

    LOG.info("Generating the CA Key and Certificate")
    cakey, cacert = certlib.create_ca()
    certlib.write_key(cakey, paths.ca_key)
    certlib.write_cert(cacert, paths.ca_crt)
    serialfile = certlib.serial_path(paths.ca_crt)

    issue("server", common_name, alt_names, cakey, cacert, serialfile,
          paths.server_key, paths.server_csr, paths.server_crt)
    issue("client", common_name, alt_names, cakey, cacert, serialfile,
          paths.client_key, paths.client_csr, paths.client_crt)

    copy_out(paths, directory)
    return True
