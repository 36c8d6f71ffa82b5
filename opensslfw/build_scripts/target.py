#!/usr/bin/env python3
# -- coding: utf-8 --
#
# target.py
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
Target discovery for prebuilt OpenSSL outputs.

The compile step leaves one directory per target under bin/, named
<platform><sdk version>-<arch>.sdk, e.g. iPhoneSimulator13.0-x86_64.sdk.
This module turns those names into TargetBuild records and resolves the
Platform of each target once, so later steps never re-inspect the name.
"""

import os
import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, NamedTuple, Optional

# Platform families in build order. A target belongs to the family its
# platform name starts with, and assets/<family>/Info.plist describes it.
ALL_SYSTEMS = ["iPhone", "AppleTV", "MacOSX", "Watch", "Catalyst"]

TARGET_DIR_PATTERN = re.compile(r"^([A-Za-z]+)([0-9]+(?:\.[0-9]+)*)-([A-Za-z0-9_]+)\.sdk$")

CRYPTO_LIB = "libcrypto.a"
SSL_LIB = "libssl.a"


class Platform(Enum):
    IPHONE_OS = "iPhoneOS"
    IPHONE_SIMULATOR = "iPhoneSimulator"
    APPLETV_OS = "AppleTVOS"
    APPLETV_SIMULATOR = "AppleTVSimulator"
    MACOSX = "MacOSX"
    CATALYST = "Catalyst"
    WATCH_OS = "WatchOS"
    WATCH_SIMULATOR = "WatchSimulator"

    @classmethod
    def from_name(cls, name: str) -> "Platform":
        """
        Resolve a platform name from a target directory.

        Simulators are checked before their device counterparts since the
        device prefix is shared. Unknown names fall back to iPhoneOS.
        """
        for prefix, platform in _PLATFORM_PREFIXES:
            if name.startswith(prefix):
                return platform
        return cls.IPHONE_OS

    @property
    def sdk_platform(self) -> str:
        """Name of the Xcode platform whose SDK links this target."""
        if self is Platform.CATALYST:
            return Platform.MACOSX.value
        return self.value

    def min_sdk_args(self, min_versions: Dict[str, str]) -> List[str]:
        """
        Minimum OS directive for ld.

        Args:
            min_versions: Versions keyed by ios, macos, catalyst, tvos, watchos

        Returns:
            list: ld arguments, e.g. ['-ios_version_min', '12.0']
        """
        if self is Platform.APPLETV_SIMULATOR:
            return ["-tvos_simulator_version_min", min_versions["tvos"]]
        if self is Platform.APPLETV_OS:
            return ["-tvos_version_min", min_versions["tvos"]]
        if self is Platform.MACOSX:
            return ["-macosx_version_min", min_versions["macos"]]
        if self is Platform.CATALYST:
            return ["-platform_version", "mac-catalyst", "13.0", min_versions["catalyst"]]
        if self is Platform.IPHONE_SIMULATOR:
            return ["-ios_simulator_version_min", min_versions["ios"]]
        if self is Platform.WATCH_OS:
            return ["-watchos_version_min", min_versions["watchos"]]
        if self is Platform.WATCH_SIMULATOR:
            return ["-watchos_simulator_version_min", min_versions["watchos"]]
        return ["-ios_version_min", min_versions["ios"]]


_PLATFORM_PREFIXES = [
    ("AppleTVSimulator", Platform.APPLETV_SIMULATOR),
    ("AppleTV", Platform.APPLETV_OS),
    ("MacOSX", Platform.MACOSX),
    ("Catalyst", Platform.CATALYST),
    ("iPhoneSimulator", Platform.IPHONE_SIMULATOR),
    ("WatchOS", Platform.WATCH_OS),
    ("WatchSimulator", Platform.WATCH_SIMULATOR),
]


class TargetIdentity(NamedTuple):
    platform: str
    sdk_version: str
    arch: str


@dataclass(frozen=True)
class TargetBuild:
    """One compiled target found under bin/."""
    name: str
    directory: str
    platform_name: str
    sdk_version: str
    arch: str

    @property
    def platform(self) -> Platform:
        return Platform.from_name(self.platform_name)

    @property
    def family(self) -> Optional[str]:
        for system in ALL_SYSTEMS:
            if self.platform_name.startswith(system):
                return system
        return None

    @property
    def crypto_lib(self) -> str:
        return os.path.join(self.directory, "lib", CRYPTO_LIB)

    @property
    def ssl_lib(self) -> str:
        return os.path.join(self.directory, "lib", SSL_LIB)

    @property
    def obj_dir(self) -> str:
        return os.path.join(self.directory, "obj")


def parse_target_dir(name: str) -> Optional[TargetIdentity]:
    """
    Split a target directory name into platform, SDK version and arch.

    Returns:
        TargetIdentity, or None when the name does not match
        <platform><version>-<arch>.sdk
    """
    match = TARGET_DIR_PATTERN.match(name)
    if not match:
        return None
    return TargetIdentity(match.group(1), match.group(2), match.group(3))


def discover_targets(bin_dir: str) -> List[TargetBuild]:
    """
    List the target directories under bin_dir in lexicographic order.

    Entries whose names do not parse are skipped with a warning; they never
    take over the identity of a previous entry.
    """
    if not os.path.isdir(bin_dir):
        print(f"   ⚠️  Warning: no target directory at {bin_dir}")
        return []

    targets = []
    for name in sorted(os.listdir(bin_dir)):
        directory = os.path.join(bin_dir, name)
        if not os.path.isdir(directory):
            continue
        identity = parse_target_dir(name)
        if identity is None:
            print(f"   ⚠️  Warning: skipping {name}, not a <platform><version>-<arch>.sdk directory")
            continue
        targets.append(
            TargetBuild(
                name=name,
                directory=directory,
                platform_name=identity.platform,
                sdk_version=identity.sdk_version,
                arch=identity.arch,
            )
        )
    return targets


def targets_for_family(targets: List[TargetBuild], family: str) -> List[TargetBuild]:
    """Targets whose platform name starts with the family name, order kept."""
    return [t for t in targets if t.platform_name.startswith(family)]
