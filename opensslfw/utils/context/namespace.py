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


# Parsed command line values, plus whatever the command leaves unconsumed
class CliNameSpace(argparse.Namespace):
    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.unknown = []
