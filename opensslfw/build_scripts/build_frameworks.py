#!/usr/bin/env python3
# -- coding: utf-8 --
#
# build_frameworks.py
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
Framework build pipeline.

Steps of a run:
1. Check that the compile step left BUILD_DIR/lib behind
2. Remove the previous frameworks directory
3. (dynamic) Link one dylib per target
4. Build per-family frameworks, or per-target frameworks unioned into an
   XCFramework
5. (dynamic) Remove the intermediate dylibs

Output:
    - Per family: <frameworks>/<family>/<name>.framework
    - XCFramework: <frameworks>/<name>.xcframework
"""

import os
import shutil
import time
from typing import List

from opensslfw.build_scripts.build_dylibs import build_dylibs, remove_dylibs
from opensslfw.build_scripts.build_framework import (
    build_dynamic_framework,
    build_static_framework,
    dylibs_for_targets,
    family_static_libs,
)
from opensslfw.build_scripts.build_xcframework import package_per_target
from opensslfw.build_scripts.target import ALL_SYSTEMS, discover_targets, targets_for_family
from opensslfw.utils.apple.config import FrameworkConfig


class PrerequisiteError(Exception):
    """Exception raised when the compile step output is missing"""
    pass


def check_prerequisites(config: FrameworkConfig):
    if not os.path.isdir(config.lib_dir):
        raise PrerequisiteError("Please run build-libssl.sh first!")


def clean_frameworks_dir(config: FrameworkConfig):
    if os.path.isdir(config.frameworks_dir):
        print(f"Removing previous {config.framework_bundle_name} copies")
        shutil.rmtree(config.frameworks_dir)


def family_framework_path(config: FrameworkConfig, family: str) -> str:
    return os.path.join(config.frameworks_dir, family, config.framework_bundle_name)


def build_family_frameworks(config: FrameworkConfig, targets) -> List[str]:
    """
    Build one framework per platform family.

    Returns:
        list: Paths of the frameworks that were created
    """
    frameworks = []
    for family in ALL_SYSTEMS:
        fw_dir = family_framework_path(config, family)
        if config.link_type == "dynamic":
            dylibs = dylibs_for_targets(config, targets_for_family(targets, family))
            created = build_dynamic_framework(config, fw_dir, family, dylibs)
        else:
            created = build_static_framework(config, fw_dir, family, family_static_libs(config, family))
        if created:
            frameworks.append(created)
    return frameworks


def build_frameworks(config: FrameworkConfig) -> List[str]:
    """
    Run the whole pipeline for one configuration.

    Returns:
        list: The created framework paths, or the XCFramework path alone

    Raises:
        PrerequisiteError: BUILD_DIR/lib is missing
        ToolError: An external tool failed; the output tree is left as is
        PackagingError: XCFramework requested but no framework was built
    """
    check_prerequisites(config)

    before_time = time.time()
    kind = f"xc{config.link_type}" if config.xcframework else config.link_type
    print(f"==================build_frameworks ({kind})========================")

    clean_frameworks_dir(config)

    targets = discover_targets(config.bin_dir)

    if config.link_type == "dynamic":
        build_dylibs(config, targets)

    if config.xcframework:
        results = [package_per_target(config, targets)]
    else:
        results = build_family_frameworks(config, targets)

    if config.link_type == "dynamic":
        remove_dylibs(config, targets)

    print(time.strftime("%Y-%m-%d %H:%M:%S", time.localtime()))
    after_time = time.time()
    print(f"use time: {int(after_time - before_time)} s")
    return results
