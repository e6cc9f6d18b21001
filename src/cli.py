#!/usr/bin/env python3
"""
Command line interface for stationreach
"""

import sys
import os

# Add src to path
sys.path.insert(0, os.path.dirname(__file__))

from stationreach.pipeline.reach import cli_main

if __name__ == "__main__":
    cli_main()
