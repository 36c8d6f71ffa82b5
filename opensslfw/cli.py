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

import argparse
import sys

from opensslfw.build_scripts.build_frameworks import PrerequisiteError, build_frameworks
from opensslfw.build_scripts.build_xcframework import PackagingError
from opensslfw.utils.apple.config import ConfigError, load_framework_config
from opensslfw.utils.cmd.cmd_util import ToolError
from opensslfw.utils.context.command import CliCommand
from opensslfw.utils.context.context import CliContext
from opensslfw.utils.context.namespace import CliNameSpace

COMMANDS = ["static", "xcstatic", "dynamic", "xcdynamic"]


# Root Class for Command Line Interface
class Cli(CliCommand):
    def description(self) -> str:
        return """Package prebuilt OpenSSL libraries as Apple frameworks.

The command builds the requested library type from the targets that were
built with the "build-libssl.sh" script, which must be used first in order
to build the object files.

COMMANDS:
    static      Build per-platform frameworks meant for static linking
    xcstatic    Build an XCFramework meant for static linking
    dynamic     Build per-platform frameworks meant for dynamic linking
    xcdynamic   Build an XCFramework meant for dynamic linking

EXAMPLES:
    opensslfw static
    opensslfw --directory=~/openssl-build xcdynamic
    opensslfw --frameworks=dist xcstatic

ENVIRONMENT VARIABLES:
    IOS_MIN_SDK_VERSION, MACOS_MIN_SDK_VERSION, CATALYST_MIN_SDK_VERSION,
    TVOS_MIN_SDK_VERSION, WATCHOS_MIN_SDK_VERSION
                Minimum OS versions used when linking dynamic frameworks
        """

    def parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog="opensslfw",
            allow_abbrev=False,
            formatter_class=argparse.RawDescriptionHelpFormatter,
            description=self.description(),
        )
        parser.add_argument(
            "commands",
            metavar="static|xcstatic|dynamic|xcdynamic",
            nargs="*",
            help="Kind of framework to build, exactly one is used",
        )
        parser.add_argument(
            "--directory",
            type=str,
            default=None,
            help="Root build directory where libssl was built (default: current directory)",
        )
        parser.add_argument(
            "--frameworks",
            type=str,
            default="frameworks",
            help="Directory for the finished frameworks, relative to the build directory (default: frameworks)",
        )
        return parser

    def cli(self, argv=None) -> CliNameSpace:
        # unknown options only produce a warning
        args, unknown = self.parser().parse_known_intermixed_args(argv, namespace=CliNameSpace())
        args.unknown = unknown
        return args

    def resolve_command(self, args: CliNameSpace):
        """First recognised command wins, everything else is reported and ignored."""
        command = None
        for word in args.commands:
            if word not in COMMANDS:
                print(f"Unknown argument: {word}")
            elif command is not None:
                print(f"Only one command can be specified, and you've already provided '{command}'.")
                print(f"Therefore ignoring '{word}' and any subsequent commands you might have provided.")
            else:
                command = word
        for word in args.unknown:
            print(f"Unknown argument: {word}")
        return command

    def exec(self, context: CliContext, args: CliNameSpace) -> int:
        command = self.resolve_command(args)
        if command is None:
            self.parser().print_help()
            return 0

        xcframework = command.startswith("xc")
        link_type = command[2:] if xcframework else command

        try:
            config = load_framework_config(
                args.directory or context.invocation_dir,
                frameworks=args.frameworks,
                link_type=link_type,
                xcframework=xcframework,
            )
            build_frameworks(config)
        except PrerequisiteError as e:
            print(e)
            return 1
        except ToolError as e:
            print(f"ERROR: {e}")
            return e.returncode if e.returncode > 0 else 1
        except (ConfigError, PackagingError, OSError) as e:
            print(f"ERROR: {e}")
            return 1
        return 0


def main(argv=None):
    cmd = Cli()
    sys.exit(cmd.exec(CliContext(), cmd.cli(argv)))


if __name__ == "__main__":
    main()
