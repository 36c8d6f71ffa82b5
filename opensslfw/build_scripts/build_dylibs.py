#!/usr/bin/env python3
# -- coding: utf-8 --
#
# build_dylibs.py
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
Assemble one dynamic library per target for dynamic frameworks.

For every target under bin/, the members of libcrypto.a and libssl.a are
extracted into <target>/obj and linked into <target>/<name>.dylib with the
target's architecture and minimum OS directive. Any tool failure aborts
the run.
"""

import glob
import os
import shutil
from typing import List

from opensslfw.build_scripts import build_utils
from opensslfw.build_scripts.target import TargetBuild
from opensslfw.utils.apple.config import FrameworkConfig


def install_name(config: FrameworkConfig) -> str:
    name = config.framework_name
    return f"@rpath/{name}.framework/{name}"


def dylib_path(config: FrameworkConfig, target: TargetBuild) -> str:
    return os.path.join(target.directory, config.dylib_name)


def build_dylib(config: FrameworkConfig, target: TargetBuild, developer_dir: str) -> str:
    """
    Link a single target's archives into a dylib.

    Returns:
        str: Path of the produced dylib
    """
    platform = target.platform
    print(f"Assembling .dylib for {target.platform_name} {target.sdk_version} ({target.arch})")

    sdk_path = build_utils.get_sdk_path(developer_dir, platform.sdk_platform, target.sdk_version)

    obj_dir = target.obj_dir
    if os.path.exists(obj_dir):
        shutil.rmtree(obj_dir)
    os.makedirs(obj_dir)
    build_utils.extract_archive(target.crypto_lib, obj_dir)
    build_utils.extract_archive(target.ssl_lib, obj_dir)

    obj_files = sorted(glob.glob(os.path.join(obj_dir, "*.o")))
    dst_dylib = dylib_path(config, target)
    build_utils.link_dylib(
        obj_files,
        dst_dylib,
        target.arch,
        platform.min_sdk_args(config.min_versions),
        sdk_path,
    )
    build_utils.set_install_name(dst_dylib, install_name(config))
    return dst_dylib


def build_dylibs(config: FrameworkConfig, targets: List[TargetBuild]) -> List[str]:
    """
    Build the dylib of every target, in the given order.

    Returns:
        list: Paths of the produced dylibs
    """
    print("==================build_dylibs========================")
    developer_dir = build_utils.get_developer_dir()
    return [build_dylib(config, target, developer_dir) for target in targets]


def remove_dylibs(config: FrameworkConfig, targets: List[TargetBuild]):
    """Delete the intermediate dylibs once the frameworks hold them."""
    for target in targets:
        path = dylib_path(config, target)
        if os.path.isfile(path):
            os.remove(path)
