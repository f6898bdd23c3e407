#!/usr/bin/env python3
"""
Entry point for running the bridge straight from a checkout, e.g. from a
polybar/waybar custom module, without installing the console script.
"""

import sys

from spotbar.cli import main

if __name__ == "__main__":
    sys.exit(main())
