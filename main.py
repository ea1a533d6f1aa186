#!/usr/bin/env python3
"""Spinnaker managed delivery tools: CLI entrypoint."""

from spinmd.spinmd import main

if __name__ == "__main__":
    main()
