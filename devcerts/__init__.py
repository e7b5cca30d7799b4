#! /usr/bin/env python
# vim: expandtab shiftwidth=4 softtabstop=4 tabstop=17 filetype=python :
"""Local development certificate authority."""
from .bootstrap import ensure_local_dev_certificates  # noqa: F401
from .config import CertPaths  # noqa: F401
