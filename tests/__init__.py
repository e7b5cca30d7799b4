#! /usr/bin/env python
# vim: expandtab shiftwidth=4 softtabstop=4 tabstop=17 filetype=python :
import os
import tempfile
import unittest
from unittest import mock

from devcerts import config

# Everything devcerts reads from the environment
CONFIG_VARIABLES = ("COMMON_NAME", "DEVCERTS_LOG_LEVEL") + tuple(
    field.upper() for field in config.CertPaths._fields
)


def clean_env(**overrides):
    """Patch os.environ without any devcerts variables, plus overrides"""
    env = {k: v for k, v in os.environ.items() if k not in CONFIG_VARIABLES}
    env.update(overrides)
    return mock.patch.dict(os.environ, env, clear=True)


class TempDirTestCase(unittest.TestCase):
    """Runs every test in a fresh, empty directory"""

    def setUp(self):
        super(TempDirTestCase, self).setUp()
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.directory = tmp.name

    def path(self, *parts):
        return os.path.join(self.directory, *parts)

    def scratch(self, *parts):
        return self.path(config.SCRATCH_DIR, *parts)


class BootstrappedTestCase(unittest.TestCase):
    """Bootstraps once per class into a shared directory, key generation
    is too slow to repeat for every assertion"""

    common_name = "localhost"

    @classmethod
    def setUpClass(cls):
        super(BootstrappedTestCase, cls).setUpClass()
        from devcerts.bootstrap import ensure_local_dev_certificates

        cls._tmp = tempfile.TemporaryDirectory()
        cls.directory = cls._tmp.name
        cls.generated = ensure_local_dev_certificates(
            cls.common_name, directory=cls.directory
        )

    @classmethod
    def tearDownClass(cls):
        cls._tmp.cleanup()
        super(BootstrappedTestCase, cls).tearDownClass()

    def path(self, *parts):
        return os.path.join(self.directory, *parts)

    def scratch(self, *parts):
        return self.path(config.SCRATCH_DIR, *parts)
