#!/usr/bin/env python3
# filename: install.py
# -*- coding: utf-8 -*-
"""
Entry point for the Nginx Proxy Manager installer.
"""

import sys

from npm_installer.cli import main

if __name__ == "__main__":
    sys.exit(main())
