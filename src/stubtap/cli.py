"""
StubTap CLI

Command-line interface for serving YAML-defined stubs.

Commands:
    serve       - Start the stub server from a definitions file
    check       - Validate a definitions file and list its stubs

Examples:
    # Serve stubs on port 9090
    stubtap serve stubs.yaml --port 9090

    # Validate a definitions file
    stubtap check stubs.yaml
"""

import argparse
import logging
import sys
from typing import List, Optional

from .loader import StubLoader
from .server import StubServer


def cmd_serve(args):
    """
    Start the stub server.

    Args:
        args: Parsed command-line arguments
    """
    try:
        definitions = StubLoader(args.definitions).load()
    except (FileNotFoundError, ValueError) as e:
        print(f"❌ Failed to load stubs: {e}")
        sys.exit(1)

    config = definitions.config
    if args.host:
        config.host = args.host
    if args.port:
        config.port = args.port
    if args.log_level:
        config.log_level = args.log_level
    if args.no_admin:
        config.admin_enabled = False
    if args.verbose:
        config.verbose_mode = True

    server = StubServer(config=config, stubs=definitions.stubs)

    print(f"🚀 StubTap server starting...")
    print(f"   Host: {config.host}:{config.port}")
    print(f"   Stubs loaded: {len(definitions.stubs)}")
    if config.admin_enabled:
        print(f"   Admin API: http://{config.host}:{config.port}{config.admin_prefix}/stubs")
    print()

    server.start()


def cmd_check(args):
    """
    Validate a definitions file and print its stubs.

    Args:
        args: Parsed command-line arguments
    """
    try:
        definitions = StubLoader(args.definitions).load()
    except (FileNotFoundError, ValueError) as e:
        print(f"❌ Invalid definitions: {e}")
        sys.exit(1)

    print(f"✅ {args.definitions}: {len(definitions.stubs)} stubs")
    for index, stub in enumerate(definitions.stubs):
        sequence = f", sequence of {len(stub.action_sequence)}" if stub.action_sequence else ""
        print(f"   [{index}] {stub.condition.description} -> {stub.action.name}{sequence}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stubtap",
        description="StubTap - HTTP server test double serving YAML-defined stubs"
    )
    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    serve_parser = subparsers.add_parser('serve', help='Start the stub server')
    serve_parser.add_argument('definitions', help='Stub definitions YAML file')
    serve_parser.add_argument('--host', help='Host to bind (default: from file or 127.0.0.1)')
    serve_parser.add_argument('-p', '--port', type=int, help='Port to bind (default: from file or 8080)')
    serve_parser.add_argument('--log-level', choices=['debug', 'info', 'warning', 'error'],
                              help='Logging level (default: info)')
    serve_parser.add_argument('--no-admin', action='store_true', help='Disable admin API')
    serve_parser.add_argument('--verbose', action='store_true', help='Print one line per request')
    serve_parser.set_defaults(func=cmd_serve)

    check_parser = subparsers.add_parser('check', help='Validate a definitions file')
    check_parser.add_argument('definitions', help='Stub definitions YAML file')
    check_parser.set_defaults(func=cmd_check)

    return parser


def main(argv: Optional[List[str]] = None):
    logging.basicConfig(format="%(asctime)s %(name)s %(levelname)s %(message)s")

    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    args.func(args)


if __name__ == '__main__':
    main()
