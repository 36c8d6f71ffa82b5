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
Framework packaging configuration for opensslfw.

Collects run-scoped settings from built-in defaults, an optional
FRAMEWORK.toml in the build directory, environment variables and the
command line into a single FrameworkConfig that every build step receives.
"""

import os
import re
import sys
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib


CONFIG_FILE_NAME = "FRAMEWORK.toml"

LINK_TYPES = ("static", "dynamic")

DEFAULT_FRAMEWORK_NAME = "openssl"
DEFAULT_FRAMEWORKS_DIR = "frameworks"

# Minimum OS versions used for the link step of dynamic frameworks
DEFAULT_MIN_VERSIONS = {
    "ios": "12.0",
    "macos": "10.15",
    "catalyst": "10.15",
    "tvos": "12.0",
    "watchos": "4.0",
}

MIN_VERSION_ENV_VARS = {
    "ios": "IOS_MIN_SDK_VERSION",
    "macos": "MACOS_MIN_SDK_VERSION",
    "catalyst": "CATALYST_MIN_SDK_VERSION",
    "tvos": "TVOS_MIN_SDK_VERSION",
    "watchos": "WATCHOS_MIN_SDK_VERSION",
}

PACKAGE_ASSETS_DIR = os.path.join(
    os.path.dirname(os.path.dirname(os.path.dirname(os.path.realpath(__file__)))),
    "assets",
)


class ConfigError(Exception):
    """Exception raised for an unreadable or invalid FRAMEWORK.toml"""
    pass


def expand_env(value):
    """
    Expand environment variables in configuration values.

    Supports ${VAR_NAME} and $VAR_NAME syntax, unknown variables are kept as is.
    """
    if not isinstance(value, str):
        return value

    pattern1 = re.compile(r'\$\{([^}]+)\}')
    value = pattern1.sub(lambda m: os.environ.get(m.group(1), m.group(0)), value)

    pattern2 = re.compile(r'\$([A-Za-z_][A-Za-z0-9_]*)')
    value = pattern2.sub(lambda m: os.environ.get(m.group(1), m.group(0)), value)

    return value


@dataclass(frozen=True)
class FrameworkConfig:
    """Settings for one packaging run."""
    build_dir: str
    frameworks_dir: str
    link_type: str = "static"
    xcframework: bool = False
    framework_name: str = DEFAULT_FRAMEWORK_NAME
    min_versions: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_MIN_VERSIONS))
    assets_dir: str = PACKAGE_ASSETS_DIR

    @property
    def lib_dir(self) -> str:
        return os.path.join(self.build_dir, "lib")

    @property
    def bin_dir(self) -> str:
        return os.path.join(self.build_dir, "bin")

    @property
    def include_dir(self) -> str:
        return os.path.join(self.build_dir, "include", self.framework_name)

    @property
    def dylib_name(self) -> str:
        return f"{self.framework_name}.dylib"

    @property
    def framework_bundle_name(self) -> str:
        return f"{self.framework_name}.framework"

    @property
    def xcframework_path(self) -> str:
        return os.path.join(self.frameworks_dir, f"{self.framework_name}.xcframework")

    def info_plist_path(self, family: str) -> str:
        return os.path.join(self.assets_dir, family, "Info.plist")


def load_config_file(build_dir: str) -> Dict[str, Any]:
    """
    Read the [framework] table of FRAMEWORK.toml in the build directory.

    Returns an empty dict when the file does not exist.
    """
    config_file = os.path.join(build_dir, CONFIG_FILE_NAME)
    if not os.path.isfile(config_file):
        return {}

    try:
        with open(config_file, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(f"Failed to read {config_file}: {e}")

    section = data.get("framework", {})
    if not isinstance(section, dict):
        raise ConfigError(f"[framework] in {config_file} must be a table")
    return section


def resolve_frameworks_dir(build_dir: str, frameworks: str) -> str:
    """
    Place the frameworks root under build_dir.

    The value is appended to build_dir even when it is absolute or starts
    with ~. A root that is build_dir itself or lies outside it is rejected.
    """
    relative = os.path.expanduser(frameworks or "").lstrip(os.sep)
    frameworks_dir = os.path.normpath(os.path.join(build_dir, relative))
    if frameworks_dir == build_dir or os.path.commonpath([build_dir, frameworks_dir]) != build_dir:
        raise ConfigError(
            f"Frameworks directory '{frameworks}' must be a subdirectory of {build_dir}"
        )
    return frameworks_dir


def load_framework_config(
    build_dir: str,
    frameworks: str = DEFAULT_FRAMEWORKS_DIR,
    link_type: str = "static",
    xcframework: bool = False,
    environ: Optional[Dict[str, str]] = None,
) -> FrameworkConfig:
    """
    Build the FrameworkConfig for a run.

    Precedence, lowest first: defaults, FRAMEWORK.toml, environment, arguments.

    Args:
        build_dir: Root build directory holding lib/, bin/ and include/
        frameworks: Output directory, always placed under build_dir
        link_type: 'static' or 'dynamic'
        xcframework: Whether to union per-target frameworks into an XCFramework
        environ: Environment mapping, defaults to os.environ
    """
    if link_type not in LINK_TYPES:
        raise ConfigError(f"Unsupported link type: {link_type}")
    if environ is None:
        environ = os.environ

    build_dir = os.path.abspath(os.path.expanduser(build_dir))
    frameworks_dir = resolve_frameworks_dir(build_dir, frameworks)

    section = load_config_file(build_dir)

    min_versions = dict(DEFAULT_MIN_VERSIONS)
    file_versions = section.get("min_sdk", {})
    if not isinstance(file_versions, dict):
        raise ConfigError("[framework.min_sdk] must be a table")
    for key, value in file_versions.items():
        if key not in DEFAULT_MIN_VERSIONS:
            print(f"   ⚠️  Warning: unknown min_sdk key '{key}' in {CONFIG_FILE_NAME}")
            continue
        min_versions[key] = str(expand_env(value))
    for key, env_name in MIN_VERSION_ENV_VARS.items():
        if environ.get(env_name):
            min_versions[key] = environ[env_name]

    framework_name = expand_env(section.get("name", DEFAULT_FRAMEWORK_NAME))

    assets_dir = section.get("assets_dir")
    if assets_dir:
        assets_dir = os.path.join(build_dir, os.path.expanduser(expand_env(assets_dir)))
    else:
        assets_dir = PACKAGE_ASSETS_DIR

    return FrameworkConfig(
        build_dir=build_dir,
        frameworks_dir=frameworks_dir,
        link_type=link_type,
        xcframework=xcframework,
        framework_name=framework_name,
        min_versions=min_versions,
        assets_dir=assets_dir,
    )
