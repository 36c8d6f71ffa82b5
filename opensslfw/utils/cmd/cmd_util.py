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

import subprocess


class ToolError(Exception):
    """Exception raised when an external toolchain command exits nonzero"""

    def __init__(self, command, returncode, output=""):
        self.command = [str(part) for part in command]
        self.returncode = returncode
        self.output = output
        super().__init__(
            f"'{' '.join(self.command)}' failed with exit code {returncode}"
        )


def decode_bytes(input: bytes) -> str:
    try:
        return bytes.decode(input, "UTF-8")
    except UnicodeDecodeError:
        return bytes.decode(input, "latin-1")


def exec_command(command, cwd=None):
    """
    Run a command synchronously and capture its output.

    Args:
        command: Argument list, the first item being the executable
        cwd: Directory to run the command in (the process cwd is never changed)

    Returns:
        tuple: (exit_code, output) with stdout and stderr combined
    """
    try:
        compile_popen = subprocess.Popen(
            [str(part) for part in command],
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
        )
    except FileNotFoundError as e:
        # same code a shell reports for a missing executable
        return 127, str(e)
    stdout, _ = compile_popen.communicate()
    err_code = compile_popen.returncode
    err_msg = decode_bytes(stdout) if stdout else ""
    return err_code, err_msg


def check_command(command, cwd=None):
    """
    Run a command and raise ToolError unless it exits zero.

    Returns:
        str: The command's combined output
    """
    print(" ".join(str(part) for part in command))
    err_code, err_msg = exec_command(command, cwd=cwd)
    if err_code != 0:
        print(f"!!!!!!!!!!! {command[0]} failed, cmd:['{' '.join(map(str, command))}'] !!!!!!!!!!!!!!!")
        if err_msg:
            print(err_msg)
        raise ToolError(command, err_code, err_msg)
    return err_msg
