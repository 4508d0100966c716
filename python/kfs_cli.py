#!/usr/bin/env python3
"""Build, run and inspect the kfs kernel image."""

import argparse
import logging
import os
import sys

import build_profile
from kernel_builder import (
    ACTION_ALIASES, Action, InvocationFailed, KernelBuilder, MissingArtifact, parse_action,
)

logger = logging.getLogger(__name__)


def exit_status(error: InvocationFailed) -> int:
    """Map a failed invocation to this process's exit status."""
    if error.exit_code < 0:
        # Child killed by a signal
        return 128 - error.exit_code
    return error.exit_code


def main(argv=None, environ=None):
    parser = argparse.ArgumentParser(
        prog="kfs-make",
        description="Build, run and inspect the kfs kernel image",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s build                 # debug build
  RELEASE=1 %(prog)s run         # release build, then boot under QEMU
  %(prog)s -C ~/src/kfs re       # clean + build in another checkout
        """
    )
    parser.add_argument(
        "action",
        nargs="?",
        default=Action.HELP.value,
        choices=[a.value for a in Action] + list(ACTION_ALIASES),
        help="Action to run (default: help)",
    )
    parser.add_argument("-C", "--directory", help="Project directory to run the tools in")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    args = parser.parse_args(argv)

    logging.basicConfig(format="%(levelname)s %(name)s: %(message)s")
    logging.getLogger().setLevel(logging.DEBUG if args.verbose else logging.INFO)

    if args.directory and not os.path.isdir(args.directory):
        print(f"Error: Project directory not found: {args.directory}", file=sys.stderr)
        return 1

    profile = build_profile.from_environment(environ)
    action = parse_action(args.action)
    logger.debug(f"Profile: {profile.name} ({profile.artifact_path})")

    builder = KernelBuilder(profile, cwd=args.directory)
    try:
        builder.dispatch(action)
    except InvocationFailed as e:
        print(f"Error: {e}", file=sys.stderr)
        return exit_status(e)
    except KeyboardInterrupt:
        print("Error: interrupted", file=sys.stderr)
        return 130
    except MissingArtifact as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
