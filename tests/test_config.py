#! /usr/bin/env python
# vim: expandtab shiftwidth=4 softtabstop=4 tabstop=17 filetype=python :
"""tests.test_config contains the unittests for devcerts.config"""
import argparse
import logging
import os
import unittest

from devcerts import config


class TestGetConfigValue(unittest.TestCase):
    """Tests for devcerts.config._get_config_value"""

    def test_argument_only(self):
        """Test that a value will be returned even without an env-variable"""
        variable_value = "very important configuration detail"
        variable_name = "my-var"
        arguments = argparse.Namespace()
        setattr(arguments, variable_name, variable_value)
        value = config._get_config_value(arguments, variable_name, env={})
        self.assertEqual(variable_value, value)

    def test_argument_preferred(self):
        """Test to see that argument value is preferred when the variable exists
        in the environment as well"""
        variable_name = "my-var"
        arg_value = "The best stuff around"

        arguments = argparse.Namespace()
        setattr(arguments, variable_name, arg_value)
        value = config._get_config_value(
            arguments,
            variable_name,
            env={"MY_VAR": "The worst stuff"},
        )
        self.assertEqual(arg_value, value)

    def test_env_preferred(self):
        """Test to see that env value is preferred over the default"""
        variable_name = "my-var"
        env_value = "The best stuff around"
        arguments = argparse.Namespace()
        setattr(arguments, variable_name, None)
        value = config._get_config_value(
            arguments,
            variable_name,
            default="The worstest",
            env={"MY_VAR": env_value},
        )
        self.assertEqual(env_value, value)

    def test_empty_env_is_unset(self):
        """An empty env-variable falls through to the default, like ${X:-y}"""
        value = config._get_config_value(
            None, "my_var", default="fallback", env={"MY_VAR": ""}
        )
        self.assertEqual("fallback", value)

    def test_nothing(self):
        """Test to see that if no value has been supplied as either an argument
        or environment-variable it returns None"""
        variable_name = "my-var"
        arguments = argparse.Namespace()
        setattr(arguments, variable_name, None)
        value = config._get_config_value(arguments, variable_name, env={})
        self.assertEqual(None, value)

    def test_required_nothing(self):
        """Test to see that if no value has been supplied and the variable is
        required a ValueError will be raised"""
        variable_name = "my-var"
        arguments = argparse.Namespace()
        setattr(arguments, variable_name, None)
        with self.assertRaises(ValueError):
            config._get_config_value(
                arguments,
                variable_name,
                required=True,
                env={},
            )


class TestCommonName(unittest.TestCase):
    def test_default(self):
        self.assertEqual("localhost", config.get_common_name(None, env={}))

    def test_env(self):
        env = {"COMMON_NAME": "example.test"}
        self.assertEqual("example.test", config.get_common_name(None, env=env))

    def test_argument_over_env(self):
        parser = argparse.ArgumentParser()
        config.add_common_name_argument(parser)
        args = parser.parse_args(["--common-name", "cli.test"])
        env = {"COMMON_NAME": "example.test"}
        self.assertEqual("cli.test", config.get_common_name(args, env=env))


class TestCertPaths(unittest.TestCase):
    def test_path_arguments(self):
        parser = argparse.ArgumentParser()
        config.add_path_arguments(parser)
        args = parser.parse_args(["--ca-key", "a.key", "--client-crt", "c.crt"])
        paths = config.get_cert_paths(args, env={"SERVER_CSR": "s.csr"})
        self.assertEqual("a.key", paths.ca_key)
        self.assertEqual("c.crt", paths.client_crt)
        self.assertEqual("s.csr", paths.server_csr)
        self.assertIsNone(paths.ca_crt)

    def test_env_names(self):
        env = {field.upper(): field + ".pem" for field in config.CertPaths._fields}
        paths = config.get_cert_paths(None, env=env)
        for field in config.CertPaths._fields:
            self.assertEqual(field + ".pem", getattr(paths, field))

    def test_resolve_defaults(self):
        directory = os.path.abspath("/srv/app")
        paths = config.resolve_paths(directory)
        scratch = os.path.join(directory, ".certs")
        self.assertEqual(os.path.join(scratch, "ca.key"), paths.ca_key)
        self.assertEqual(os.path.join(scratch, "ca.crt"), paths.ca_crt)
        self.assertEqual(os.path.join(scratch, "server.csr"), paths.server_csr)
        self.assertEqual(os.path.join(scratch, "client.crt"), paths.client_crt)

    def test_resolve_relative_and_absolute(self):
        directory = os.path.abspath("/srv/app")
        elsewhere = os.path.abspath("/etc/ssl/ca.crt")
        paths = config.resolve_paths(
            directory, config.CertPaths(ca_key="keys/ca.key", ca_crt=elsewhere)
        )
        self.assertEqual(os.path.join(directory, "keys", "ca.key"), paths.ca_key)
        self.assertEqual(elsewhere, paths.ca_crt)


class TestVerbosity(unittest.TestCase):
    """Tests for the verbosity configuration from devcerts.config"""

    """Data set used for testing config.get_log_level,
    (argument_level, environment, root_level, expected)"""
    VERBOSITY_DATA: tuple = (
        (2, {}, logging.CRITICAL, logging.INFO),
        (-1, {"DEVCERTS_LOG_LEVEL": "ERROR"}, logging.CRITICAL, logging.ERROR),
        (2, {"DEVCERTS_LOG_LEVEL": "WARNING"}, logging.ERROR, logging.INFO),
        (2, {"DEVCERTS_LOG_LEVEL": "DEBUG"}, logging.WARNING, logging.DEBUG),
        (2, {"DEVCERTS_LOG_LEVEL": "WARNING"}, logging.DEBUG, logging.DEBUG),
        (0, {"DEVCERTS_LOG_LEVEL": "INFO"}, logging.DEBUG, logging.DEBUG),
        (0, {"DEVCERTS_LOG_LEVEL": "DEBUG"}, logging.WARNING, logging.DEBUG),
    )

    """Data set used for testing config.add_verbosity_argument,
    ([arguments], expected)"""
    VERBOSITY_ARGUMENT_DATA: tuple = (
        ([], 0),
        (["-v"], 1),
        (["-vv"], 2),
        (["-vvv"], 3),
        (["--verbose", "-v"], 2),
        (["--verbose", "-v", "--verbose"], 3),
    )

    def test_verbosity_argument(self):
        """tests multiple cases for config.add_verbosity_argument"""

        for arg, expected in TestVerbosity.VERBOSITY_ARGUMENT_DATA:
            with self.subTest(arg=arg, expected=expected):
                parser = argparse.ArgumentParser()
                config.add_verbosity_argument(parser)
                args = parser.parse_args(arg)
                self.assertEqual(expected, args.verbose)

    def test_default_log_level_is_info(self):
        """Without flags or environment the step messages are shown, whatever
        level the logger was left at"""
        logger = logging.getLogger("fake-default")
        for root_lvl in (logging.ERROR, logging.CRITICAL, logging.NOTSET):
            with self.subTest(root_lvl=root_lvl):
                logger.setLevel(root_lvl)
                verbosity = config.get_log_level(0, logger, {})
                self.assertEqual(logging.INFO, verbosity)

    def test_get_log_level(self):
        """tests multiple cases for config.get_log_level"""
        logger = logging.getLogger("fake")

        for arg_lvl, env, root_lvl, expected in TestVerbosity.VERBOSITY_DATA:
            with self.subTest(
                arg_lvl=arg_lvl, env=env, root_lvl=root_lvl, expected=expected
            ):
                logger.setLevel(root_lvl)
                verbosity = config.get_log_level(arg_lvl, logger, env)
                self.assertEqual(expected, verbosity)
