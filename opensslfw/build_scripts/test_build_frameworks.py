#!/usr/bin/env python3
"""
End-to-end tests of the framework pipeline with a fake toolchain.

Run with: python3 -m pytest opensslfw/build_scripts/test_build_frameworks.py
"""

import io
import os
import tempfile
import unittest
from contextlib import redirect_stdout

from opensslfw.build_scripts.build_frameworks import PrerequisiteError, build_frameworks
from opensslfw.build_scripts.build_xcframework import PackagingError
from opensslfw.build_scripts.test_support import FakeToolchain, make_build_tree
from opensslfw.utils.apple.config import load_framework_config
from opensslfw.utils.cmd.cmd_util import ToolError

IPHONE_TARGETS = ["iPhoneOS13.0-arm64.sdk", "iPhoneSimulator13.0-x86_64.sdk"]
ALL_TARGETS = IPHONE_TARGETS + ["MacOSX10.15-x86_64.sdk", "MacOSX11.0-arm64.sdk"]


def snapshot(root):
    """Relative path -> file bytes or symlink target, for the whole tree."""
    tree = {}
    for dirpath, dirnames, filenames in os.walk(root):
        for name in dirnames + filenames:
            path = os.path.join(dirpath, name)
            rel = os.path.relpath(path, root)
            if os.path.islink(path):
                tree[rel] = ("link", os.readlink(path))
            elif os.path.isdir(path):
                tree[rel] = ("dir",)
            else:
                with open(path, "rb") as f:
                    tree[rel] = ("file", f.read())
    return tree


class PipelineTestCase(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.build_dir = self.tmp.name
        self.toolchain = FakeToolchain()
        self.out = io.StringIO()

    def tearDown(self):
        self.tmp.cleanup()

    def run_pipeline(self, link_type="static", xcframework=False):
        config = load_framework_config(self.build_dir, link_type=link_type, xcframework=xcframework, environ={})
        with self.toolchain.patch(), redirect_stdout(self.out):
            return config, build_frameworks(config)


class TestStaticPipeline(PipelineTestCase):
    def test_iphone_scenario(self):
        make_build_tree(self.build_dir, targets=IPHONE_TARGETS, family_libs=["iPhone"])

        config, results = self.run_pipeline("static")

        fw_dir = os.path.join(self.build_dir, "frameworks", "iPhone", "openssl.framework")
        self.assertEqual(results, [fw_dir])
        self.assertEqual(os.listdir(config.frameworks_dir), ["iPhone"])
        with open(os.path.join(fw_dir, "openssl")) as f:
            binary = f.read()
        self.assertIn("crypto_iPhone.o", binary)
        self.assertIn("ssl_iPhone.o", binary)
        self.assertTrue(os.path.isfile(os.path.join(fw_dir, "Headers", "ssl.h")))
        for family in ("AppleTV", "MacOSX", "Watch", "Catalyst"):
            self.assertIn(f"Skipped framework for {family}", self.out.getvalue())

    def test_rebuild_is_deterministic(self):
        make_build_tree(self.build_dir, targets=ALL_TARGETS, family_libs=["iPhone", "MacOSX"])

        config, _ = self.run_pipeline("static")
        first = snapshot(config.frameworks_dir)
        self.run_pipeline("static")
        second = snapshot(config.frameworks_dir)

        self.assertEqual(first, second)
        self.assertIn(os.path.join("MacOSX", "openssl.framework", "Versions", "Current"), first)
        self.assertIn("Removing previous openssl.framework copies", self.out.getvalue())

    def test_previous_output_is_removed(self):
        make_build_tree(self.build_dir, family_libs=["iPhone"])
        leftover = os.path.join(self.build_dir, "frameworks", "Watch", "openssl.framework")
        os.makedirs(leftover)

        config, _ = self.run_pipeline("static")

        self.assertFalse(os.path.exists(os.path.dirname(leftover)))

    def test_missing_lib_dir(self):
        os.makedirs(os.path.join(self.build_dir, "bin"))
        with self.assertRaises(PrerequisiteError) as ctx:
            self.run_pipeline("static")
        self.assertIn("build-libssl.sh", str(ctx.exception))
        self.assertEqual(self.toolchain.calls, [])


class TestXCFrameworkPipeline(PipelineTestCase):
    def assert_only_xcframework(self, config):
        self.assertEqual(os.listdir(config.frameworks_dir), ["openssl.xcframework"])

    def test_xcstatic(self):
        make_build_tree(self.build_dir, targets=ALL_TARGETS)

        config, results = self.run_pipeline("static", xcframework=True)

        self.assertEqual(results, [config.xcframework_path])
        self.assert_only_xcframework(config)
        xcodebuild = [command for command, _ in self.toolchain.calls if command[0] == "xcodebuild"]
        self.assertEqual(len(xcodebuild), 1)
        frameworks = [xcodebuild[0][i + 1] for i, part in enumerate(xcodebuild[0]) if part == "-framework"]
        self.assertEqual(
            frameworks,
            sorted(os.path.join(config.frameworks_dir, name, "openssl.framework") for name in ALL_TARGETS),
        )
        self.assertEqual(sorted(os.listdir(config.xcframework_path)), sorted(ALL_TARGETS))
        mac_slice = os.path.join(config.xcframework_path, "MacOSX11.0-arm64.sdk", "openssl.framework")
        self.assertTrue(os.path.islink(os.path.join(mac_slice, "Headers")))

    def test_xcdynamic(self):
        make_build_tree(self.build_dir, targets=ALL_TARGETS)

        config, _ = self.run_pipeline("dynamic", xcframework=True)

        self.assert_only_xcframework(config)
        tools = self.toolchain.tools()
        self.assertEqual(tools.count("ld"), len(ALL_TARGETS))
        self.assertEqual(tools.count("lipo"), len(ALL_TARGETS))
        self.assertEqual(tools[-1], "xcodebuild")
        for name in ALL_TARGETS:
            self.assertFalse(os.path.exists(os.path.join(self.build_dir, "bin", name, "openssl.dylib")))

    def test_nothing_to_package(self):
        make_build_tree(self.build_dir)
        with self.assertRaises(PackagingError):
            self.run_pipeline("static", xcframework=True)
        self.assertNotIn("xcodebuild", self.toolchain.tools())

    def test_union_failure_is_fatal(self):
        make_build_tree(self.build_dir, targets=IPHONE_TARGETS)
        self.toolchain.fail_tool = "xcodebuild"
        self.toolchain.fail_code = 70

        with self.assertRaises(ToolError) as ctx:
            self.run_pipeline("static", xcframework=True)

        self.assertEqual(ctx.exception.returncode, 70)
        frameworks_dir = os.path.join(self.build_dir, "frameworks")
        self.assertEqual(sorted(os.listdir(frameworks_dir)), IPHONE_TARGETS)


class TestDynamicPipeline(PipelineTestCase):
    def test_per_family_universal_binaries(self):
        make_build_tree(self.build_dir, targets=ALL_TARGETS)

        config, results = self.run_pipeline("dynamic")

        self.assertEqual(
            results,
            [
                os.path.join(config.frameworks_dir, "iPhone", "openssl.framework"),
                os.path.join(config.frameworks_dir, "MacOSX", "openssl.framework"),
            ],
        )
        with open(os.path.join(results[0], "openssl")) as f:
            binary = f.read()
        self.assertIn("arch=arm64\n", binary)
        self.assertIn("arch=x86_64\n", binary)
        self.assertTrue(os.path.islink(os.path.join(results[1], "openssl")))
        for name in ALL_TARGETS:
            self.assertFalse(os.path.exists(os.path.join(self.build_dir, "bin", name, "openssl.dylib")))

    def test_link_failure_leaves_partial_output(self):
        make_build_tree(self.build_dir, targets=ALL_TARGETS)
        self.toolchain.fail_tool = "install_name_tool"

        with self.assertRaises(ToolError):
            self.run_pipeline("dynamic")

        self.assertNotIn("lipo", self.toolchain.tools())
        self.assertEqual(self.toolchain.tools().count("install_name_tool"), 1)
        # first target in lexicographic order was linked before the failure
        self.assertTrue(os.path.isfile(os.path.join(self.build_dir, "bin", "MacOSX10.15-x86_64.sdk", "openssl.dylib")))
        self.assertFalse(os.path.exists(os.path.join(self.build_dir, "bin", IPHONE_TARGETS[0], "openssl.dylib")))


if __name__ == "__main__":
    unittest.main()
