"""Argument parsing functionality for depfetch."""

import argparse


def build_parser():
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="depfetch",
        description=(
            "depfetch - resolve Maven/Android dependencies and copy the artifacts "
            "into a target directory"
        ),
        add_help=True,
    )

    parser.add_argument("-P", "--property",
                        dest="PROPERTIES",
                        help="Set a resolver property (KEY=VALUE), e.g. -PTARGET_DIR=out. "
                             "Can be used multiple times.",
                        action="append",
                        type=str,
                        default=[])
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML, YML, or JSON)",
                        action="store",
                        type=str)
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str.upper,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'])
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("-q", "--quiet",
                        dest="QUIET",
                        help="Do not print the report to stdout.",
                        action="store_true")
    return parser


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    return build_parser().parse_args(argv)
