#!/usr/bin/env python3
# -- coding: utf-8 --
#
# build_utils.py
# opensslfw
#
# Copyright 2024 opensslfw Project Authors. All rights reserved.
# Use of this source code is governed by a MIT-style
# license that can be found at
#
# https://opensource.org/license/MIT
#
# The above copyright notice and this permission
# notice shall be included in all copies or
# substantial portions of the Software.

"""
Toolchain helpers shared by the framework build steps.

Every external tool goes through check_command(), which raises ToolError on
a nonzero exit. Nothing here changes the process working directory: tools
that need one (ar -x) get it through the cwd argument.

Tools used:
- ar: extract object members from static archives
- ld / install_name_tool: link and stamp dynamic libraries
- libtool: merge static archives
- lipo: create universal binaries
- otool: inspect load commands for bitcode
- xcodebuild: create XCFrameworks
"""

import glob
import os
import shutil
from typing import List

from opensslfw.utils.cmd.cmd_util import check_command, exec_command

COMPAT_VERSION = "1.0.0"
CURRENT_VERSION = "1.0.0"

# Load command marker that shows embedded bitcode, per link type
BITCODE_PATTERNS = {
    "dynamic": "__LLVM",
    "static": "__bitcode",
}


def get_developer_dir() -> str:
    """Active Xcode developer directory, from xcode-select."""
    return check_command(["xcode-select", "-print-path"]).strip()


def get_sdk_path(developer_dir: str, sdk_platform: str, sdk_version: str) -> str:
    """
    Path of the SDK a target links against.

    Example:
        get_sdk_path('/Applications/Xcode.app/Contents/Developer', 'iPhoneOS', '13.0')
        # .../Platforms/iPhoneOS.platform/Developer/SDKs/iPhoneOS13.0.sdk
    """
    cross_top = os.path.join(developer_dir, "Platforms", f"{sdk_platform}.platform", "Developer")
    return os.path.join(cross_top, "SDKs", f"{sdk_platform}{sdk_version}.sdk")


def extract_archive(src_lib: str, dst_dir: str):
    """Extract every member of a static archive into dst_dir."""
    check_command(["ar", "-x", os.path.abspath(src_lib)], cwd=dst_dir)


def link_dylib(obj_files: List[str], dst_dylib: str, arch: str, min_sdk_args: List[str], sdk_path: str):
    """
    Link object files into one application-extension-safe dynamic library.

    Args:
        obj_files: Object files to link
        dst_dylib: Output .dylib path
        arch: Architecture passed to ld -arch
        min_sdk_args: Minimum OS directive, see Platform.min_sdk_args
        sdk_path: SDK used as -syslibroot
    """
    cmd = ["ld"] + list(obj_files)
    cmd += ["-dylib", "-bitcode_bundle", "-lSystem", "-arch", arch]
    cmd += list(min_sdk_args)
    cmd += [
        "-syslibroot", sdk_path,
        "-compatibility_version", COMPAT_VERSION,
        "-current_version", CURRENT_VERSION,
        "-application_extension",
        "-o", dst_dylib,
    ]
    check_command(cmd)


def set_install_name(dylib: str, install_name: str):
    check_command(["install_name_tool", "-id", install_name, dylib])


def libtool_libs(src_libs: List[str], dst_lib: str):
    """
    Combine multiple static libraries into a single static library.

    Args:
        src_libs: Source library file paths to merge
        dst_lib: Destination library file path for the merged output
    """
    os.makedirs(os.path.dirname(dst_lib), exist_ok=True)
    check_command(["libtool", "-static", "-o", dst_lib] + list(src_libs))


def lipo_libs(src_libs: List[str], dst_lib: str):
    """
    Create a universal (fat) binary from architecture-specific binaries.

    Example:
        lipo_libs(['arm64/openssl.dylib', 'x86_64/openssl.dylib'], 'openssl')
    """
    os.makedirs(os.path.dirname(dst_lib), exist_ok=True)
    check_command(["lipo", "-create"] + list(src_libs) + ["-output", dst_lib])


def make_xcframework(frameworks: List[str], dst_framework: str):
    """
    Create an XCFramework from per-target frameworks.

    Args:
        frameworks: Paths of the .framework bundles to combine
        dst_framework: Destination XCFramework path (.xcframework)

    Note:
        Requires Xcode command-line tools to be installed.
    """
    cmd = ["xcodebuild", "-create-xcframework"]
    for framework in frameworks:
        cmd += ["-framework", framework]
    cmd += ["-output", dst_framework]
    check_command(cmd)


def has_bitcode(binary: str, link_type: str) -> bool:
    """
    Check whether a binary carries bitcode, using otool -l.

    An otool failure is reported and treated as no bitcode.
    """
    err_code, output = exec_command(["otool", "-l", binary])
    if err_code != 0:
        print(f"   ⚠️  Warning: otool failed for {binary}: {output.strip()}")
        return False
    return BITCODE_PATTERNS[link_type] in output


def check_bitcode(fw_dir: str, binary: str, link_type: str):
    if has_bitcode(binary, link_type):
        print(f"INFO: {fw_dir} contains Bitcode")
    else:
        print(f"INFO: {fw_dir} doesn't contain Bitcode")


def copy_headers(src_dir: str, dst_dir: str):
    """
    Copy the public headers tree into a framework's Headers directory.

    Raises FileNotFoundError when src_dir does not exist.
    """
    if not os.path.isdir(src_dir):
        raise FileNotFoundError(f"Header directory not found: {src_dir}")
    os.makedirs(dst_dir, exist_ok=True)
    shutil.copytree(src_dir, dst_dir, dirs_exist_ok=True)


def copy_file(src: str, dst: str):
    """Copy a file, following symlinks, creating dst's directory if needed."""
    os.makedirs(os.path.dirname(dst), exist_ok=True)
    shutil.copyfile(src, dst)


def first_existing(pattern: str):
    """First match of a glob pattern in sorted order, or None."""
    matches = sorted(glob.glob(pattern))
    return matches[0] if matches else None
