#!/usr/bin/env python3
"""Run docker-restore from a source checkout: sudo ./docker-restore.py --dry-run"""
import sys

from docker_restore.main import main

if __name__ == "__main__":
    sys.exit(main())
