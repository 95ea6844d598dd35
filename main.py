#!/usr/bin/env python3
"""
YarnCacher - Main entry point

Usage:
    yarn-cacher <path-to-package.json> \
        <azure-storage-connection-string> \
        <azure-blob-container> \
        [yarn-path]

Restores Yarn's global cache from an archive in Azure Blob Storage when one
exists for the current package.json, runs `yarn install`, and publishes the
cache as a new archive when none existed.
"""

import sys

from interfaces.cli import main as cli_main


def main():
    sys.exit(cli_main(sys.argv[1:]))


if __name__ == '__main__':
    main()
