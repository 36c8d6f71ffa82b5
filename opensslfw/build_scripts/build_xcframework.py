#!/usr/bin/env python3
# -- coding: utf-8 --
#
# build_xcframework.py
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
XCFramework packaging.

Builds one framework per exact target into <frameworks>/<target>/, unions
them with xcodebuild -create-xcframework, then removes the per-target
directories so only <name>.xcframework remains.
"""

import os
import shutil
from typing import List

from opensslfw.build_scripts import build_utils
from opensslfw.build_scripts.build_framework import (
    build_dynamic_framework,
    build_static_framework,
    dylibs_for_targets,
    target_static_libs,
)
from opensslfw.build_scripts.target import ALL_SYSTEMS, TargetBuild, targets_for_family
from opensslfw.utils.apple.config import FrameworkConfig


class PackagingError(Exception):
    """Exception raised when no XCFramework can be produced"""
    pass


def build_target_frameworks(config: FrameworkConfig, targets: List[TargetBuild]) -> List[str]:
    """
    Build one framework per target, family by family.

    Returns:
        list: Paths of the frameworks that were created
    """
    frameworks = []
    for family in ALL_SYSTEMS:
        for target in targets_for_family(targets, family):
            fw_dir = os.path.join(config.frameworks_dir, target.name, config.framework_bundle_name)
            if config.link_type == "dynamic":
                created = build_dynamic_framework(config, fw_dir, family, dylibs_for_targets(config, [target]))
            else:
                created = build_static_framework(config, fw_dir, family, target_static_libs(target))
            if created:
                frameworks.append(created)
    return frameworks


def remove_intermediate_frameworks(config: FrameworkConfig):
    """Delete every directory under the frameworks root except the XCFramework."""
    keep = os.path.basename(config.xcframework_path)
    for entry in sorted(os.listdir(config.frameworks_dir)):
        path = os.path.join(config.frameworks_dir, entry)
        if entry != keep and os.path.isdir(path) and not os.path.islink(path):
            shutil.rmtree(path)


def build_xcframework(config: FrameworkConfig, frameworks: List[str]) -> str:
    """
    Union per-target frameworks into the XCFramework.

    Returns:
        str: Path of the XCFramework

    Raises:
        PackagingError: No framework was built
        ToolError: xcodebuild failed
    """
    if not frameworks:
        raise PackagingError(f"No {config.framework_bundle_name} was built, nothing to put in an XCFramework")

    print()
    build_utils.make_xcframework(sorted(frameworks), config.xcframework_path)

    # The per-target frameworks live on inside the XCFramework.
    remove_intermediate_frameworks(config)
    print(f"Created {config.xcframework_path}")
    return config.xcframework_path


def package_per_target(config: FrameworkConfig, targets: List[TargetBuild]) -> str:
    return build_xcframework(config, build_target_frameworks(config, targets))
