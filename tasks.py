#!/usr/bin/env python3
"""Thin loader delegating to the stdio intent runner."""

import sys

from interface.stdio_server import main

if __name__ == "__main__":
    sys.exit(main())
