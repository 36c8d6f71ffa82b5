#!/usr/bin/env python3
"""
Tests for the opensslfw command line.

Run with: python3 -m pytest opensslfw/test_cli.py
"""

import io
import os
import tempfile
import unittest
from contextlib import redirect_stdout
from unittest.mock import patch

from opensslfw import cli
from opensslfw.build_scripts.test_support import FakeToolchain, make_build_tree
from opensslfw.utils.context.context import CliContext


class TestCli(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.build_dir = self.tmp.name
        self.cmd = cli.Cli()
        self.out = io.StringIO()

    def tearDown(self):
        self.tmp.cleanup()

    def run_cli(self, argv, toolchain=None):
        toolchain = toolchain or FakeToolchain()
        with toolchain.patch(), redirect_stdout(self.out):
            args = self.cmd.cli(argv)
            return self.cmd.exec(CliContext(self.build_dir), args)

    def test_help_exits_zero(self):
        for flag in ("-h", "--help"):
            with redirect_stdout(self.out), self.assertRaises(SystemExit) as ctx:
                self.cmd.cli([flag])
            self.assertEqual(ctx.exception.code, 0)
        self.assertIn("xcdynamic", self.out.getvalue())

    def test_no_command_prints_usage(self):
        with patch.object(cli, "build_frameworks") as build:
            self.assertEqual(self.run_cli([]), 0)
        build.assert_not_called()
        self.assertIn("usage: opensslfw", self.out.getvalue())

    def test_first_command_wins(self):
        with patch.object(cli, "build_frameworks") as build:
            self.assertEqual(self.run_cli(["xcdynamic", "static"]), 0)
        config = build.call_args[0][0]
        self.assertEqual(config.link_type, "dynamic")
        self.assertTrue(config.xcframework)
        self.assertIn("ignoring 'static'", self.out.getvalue())

    def test_unknown_arguments_warn(self):
        with patch.object(cli, "build_frameworks") as build:
            self.assertEqual(self.run_cli(["--verbose", "static", "extra"]), 0)
        build.assert_called_once()
        self.assertIn("Unknown argument: --verbose", self.out.getvalue())
        self.assertIn("Unknown argument: extra", self.out.getvalue())

    def test_directory_and_frameworks_flags(self):
        other = os.path.join(self.build_dir, "other")
        with patch.object(cli, "build_frameworks") as build:
            self.run_cli([f"--directory={other}", "--frameworks=dist", "static"])
        config = build.call_args[0][0]
        self.assertEqual(config.build_dir, os.path.abspath(other))
        self.assertEqual(config.frameworks_dir, os.path.join(os.path.abspath(other), "dist"))
        self.assertFalse(config.xcframework)

    def test_abbreviated_flags_are_unknown(self):
        with patch.object(cli, "build_frameworks") as build:
            self.assertEqual(self.run_cli(["--dir=/elsewhere", "--frame=out", "static"]), 0)
        config = build.call_args[0][0]
        self.assertEqual(config.build_dir, os.path.abspath(self.build_dir))
        self.assertEqual(config.frameworks_dir, os.path.join(os.path.abspath(self.build_dir), "frameworks"))
        self.assertIn("Unknown argument: --dir=/elsewhere", self.out.getvalue())
        self.assertIn("Unknown argument: --frame=out", self.out.getvalue())

    def test_frameworks_dir_equal_to_build_dir_is_rejected(self):
        make_build_tree(self.build_dir, targets=["iPhoneOS13.0-arm64.sdk"], family_libs=["iPhone"])
        toolchain = FakeToolchain()
        self.assertEqual(self.run_cli(["--frameworks=.", "static"], toolchain), 1)
        self.assertIn("ERROR:", self.out.getvalue())
        self.assertTrue(os.path.isdir(os.path.join(self.build_dir, "lib")))
        self.assertTrue(os.path.isdir(os.path.join(self.build_dir, "bin")))
        self.assertEqual(toolchain.calls, [])

    def test_directory_defaults_to_invocation_dir(self):
        with patch.object(cli, "build_frameworks") as build:
            self.run_cli(["dynamic"])
        self.assertEqual(build.call_args[0][0].build_dir, os.path.abspath(self.build_dir))

    def test_missing_prerequisite_exit_code(self):
        self.assertEqual(self.run_cli(["static"]), 1)
        self.assertIn("Please run build-libssl.sh first!", self.out.getvalue())

    def test_tool_failure_exit_code(self):
        make_build_tree(self.build_dir, family_libs=["iPhone"])
        toolchain = FakeToolchain(fail_tool="libtool", fail_code=2)
        self.assertEqual(self.run_cli(["static"], toolchain), 2)
        self.assertIn("ERROR:", self.out.getvalue())

    def test_static_run(self):
        make_build_tree(self.build_dir, targets=["iPhoneOS13.0-arm64.sdk"], family_libs=["iPhone"])
        self.assertEqual(self.run_cli(["static"]), 0)
        self.assertTrue(os.path.isdir(os.path.join(self.build_dir, "frameworks", "iPhone", "openssl.framework")))

    def test_main_exits_with_status(self):
        with redirect_stdout(self.out), self.assertRaises(SystemExit) as ctx:
            cli.main([f"--directory={self.build_dir}", "static"])
        self.assertEqual(ctx.exception.code, 1)


if __name__ == "__main__":
    unittest.main()
