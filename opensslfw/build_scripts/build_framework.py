#!/usr/bin/env python3
# -- coding: utf-8 --
#
# build_framework.py
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
Framework bundle creation.

A framework is a bundle directory containing:
- The merged binary, named after the framework
- Headers/ with the public OpenSSL headers
- Info.plist copied from assets/<family>/

Static frameworks merge libcrypto and libssl with libtool. Dynamic
frameworks combine per-architecture dylibs with lipo. MacOSX frameworks are
then rewritten into the versioned Versions/A layout.

Missing inputs skip the framework with a notice; they are not errors.
"""

import os
import shutil
from typing import List, Optional

from opensslfw.build_scripts import build_utils
from opensslfw.build_scripts.build_dylibs import dylib_path
from opensslfw.build_scripts.target import TargetBuild
from opensslfw.utils.apple.config import FrameworkConfig

# The only family shipped with the versioned bundle layout
LEGACY_LAYOUT_SYSTEM = "MacOSX"


def family_static_libs(config: FrameworkConfig, family: str) -> List[str]:
    """
    Archives merged by the compile step for a whole family.

    Returns [crypto, ssl]; an entry is the unmatched pattern when the
    archive is missing, so callers can check existence uniformly.
    """
    libs = []
    for lib in ("crypto", "ssl"):
        pattern = os.path.join(config.lib_dir, f"lib{lib}-{family}*.a")
        libs.append(build_utils.first_existing(pattern) or pattern)
    return libs


def target_static_libs(target: TargetBuild) -> List[str]:
    return [target.crypto_lib, target.ssl_lib]


def dylibs_for_targets(config: FrameworkConfig, targets: List[TargetBuild]) -> List[str]:
    return [dylib_path(config, target) for target in targets]


def make_mac_symlinks(fw_dir: str, binary_name: str):
    """
    Rewrite a framework into the versioned macOS layout.

    Result:
        Versions/A/<binary>
        Versions/A/Headers/
        Versions/A/Resources/Info.plist
        Versions/Current -> A
        <binary> -> Versions/Current/<binary>
        Headers -> Versions/Current/Headers
        Resources -> Versions/Current/Resources
    """
    versions_a = os.path.join(fw_dir, "Versions", "A")
    resources = os.path.join(versions_a, "Resources")
    os.makedirs(resources)

    shutil.move(os.path.join(fw_dir, binary_name), os.path.join(versions_a, binary_name))
    shutil.move(os.path.join(fw_dir, "Headers"), os.path.join(versions_a, "Headers"))
    shutil.move(os.path.join(fw_dir, "Info.plist"), os.path.join(resources, "Info.plist"))

    os.symlink("A", os.path.join(fw_dir, "Versions", "Current"))
    for entry in (binary_name, "Headers", "Resources"):
        os.symlink(os.path.join("Versions", "Current", entry), os.path.join(fw_dir, entry))


def _finish_framework(config: FrameworkConfig, fw_dir: str, family: str):
    """Headers, Info.plist, bitcode report and layout, shared by both link types."""
    build_utils.copy_headers(config.include_dir, os.path.join(fw_dir, "Headers"))
    build_utils.copy_file(config.info_plist_path(family), os.path.join(fw_dir, "Info.plist"))
    print(f"Created {fw_dir}")

    build_utils.check_bitcode(fw_dir, os.path.join(fw_dir, config.framework_name), config.link_type)

    if family == LEGACY_LAYOUT_SYSTEM:
        make_mac_symlinks(fw_dir, config.framework_name)


def build_static_framework(config: FrameworkConfig, fw_dir: str, family: str, libs: List[str]) -> Optional[str]:
    """
    Create a static framework from a libcrypto/libssl pair.

    Args:
        config: Run configuration
        fw_dir: Destination .framework path
        family: Platform family, selects the Info.plist
        libs: [crypto archive, ssl archive]

    Returns:
        str: fw_dir, or None when an archive is missing and the framework was skipped
    """
    if len(libs) != 2 or not all(os.path.isfile(lib) for lib in libs):
        print(f"Skipped framework for {family}")
        return None

    print(f"\nCreating static framework for {family}, using {os.path.dirname(os.path.dirname(libs[0]))}")
    os.makedirs(os.path.join(fw_dir, "Headers"), exist_ok=True)
    build_utils.libtool_libs(libs, os.path.join(fw_dir, config.framework_name))
    _finish_framework(config, fw_dir, family)
    return fw_dir


def build_dynamic_framework(config: FrameworkConfig, fw_dir: str, family: str, dylibs: List[str]) -> Optional[str]:
    """
    Create a dynamic framework holding a universal binary.

    Args:
        config: Run configuration
        fw_dir: Destination .framework path
        family: Platform family, selects the Info.plist
        dylibs: Per-architecture dylibs; missing paths are ignored

    Returns:
        str: fw_dir, or None when no dylib exists and the framework was skipped
    """
    print("\nTargets:")
    for dylib in dylibs:
        print(f"   {dylib}")

    present = [dylib for dylib in dylibs if os.path.isfile(dylib)]
    if not present:
        print(f"Skipped framework for {family}")
        return None

    print(f"Creating dynamic framework for {family}")
    os.makedirs(os.path.join(fw_dir, "Headers"), exist_ok=True)
    build_utils.lipo_libs(present, os.path.join(fw_dir, config.framework_name))
    _finish_framework(config, fw_dir, family)
    return fw_dir
