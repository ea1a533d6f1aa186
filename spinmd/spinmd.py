#!/usr/bin/env python3
"""Spinnaker managed delivery tools: CLI entrypoint."""

import argparse

from spinmd.commands.diff import register_diff_command
from spinmd.commands.export import register_export_command
from spinmd.commands.fmt import register_fmt_command
from spinmd.commands.manage import register_manage_commands
from spinmd.commands.publish import register_publish_commands
from spinmd.config import DEFAULT_CONFIG_DIR, DEFAULT_CONFIG_FILE
from spinmd.logging_setup import setup_cli_logging


def build_parser():
    parser = argparse.ArgumentParser(description="Spinnaker managed delivery tools")
    parser.add_argument("--dir", default=DEFAULT_CONFIG_DIR, help="Directory for the delivery config file")
    parser.add_argument("--file", default=DEFAULT_CONFIG_FILE, help="Delivery config file name")
    parser.add_argument(
        "--baseurl",
        default=None,
        help="Base URL of the Spinnaker API (fallback: SPINNAKER_API_BASE_URL, then gate.endpoint in ~/.spin/config)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging of API requests")
    subparsers = parser.add_subparsers(dest="command", required=True)

    register_export_command(subparsers)
    register_publish_commands(subparsers)
    register_diff_command(subparsers)
    register_manage_commands(subparsers)
    register_fmt_command(subparsers)
    return parser


def main():
    args = build_parser().parse_args()
    setup_cli_logging(args.verbose)
    args.func(args)


if __name__ == "__main__":
    main()
