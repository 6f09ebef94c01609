"""
MockAPI CLI

Command-line interface for the MockAPI mock server.

Commands:
    serve       - Start the mock HTTP server from a config file
    init        - Write a sample config file
    validate    - Validate a config file

Examples:
    # Start the server
    mockapi serve mockapi.json --port 3000

    # Serve a profile with hot reload and Swagger docs
    mockapi serve mockapi.yaml --profile demo --watch --swagger

    # Create a sample YAML config
    mockapi init --format yaml
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .config import ConfigLoader, ConfigError, render_sample
from .mock import MockServer, MockConfig


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def validate_port(port: int) -> int:
    """
    Check that a port is in the valid TCP range.

    Raises:
        ValueError: If the port is outside 1-65535
    """
    if port < 1 or port > 65535:
        raise ValueError(f"Invalid port: {port}. Port must be between 1 and 65535.")
    return port


def cmd_serve(args):
    """
    Start mock HTTP server from a config file.

    Args:
        args: Parsed command-line arguments
    """
    config_path = Path(args.config)
    if not config_path.exists():
        print(f"Config file not found: {args.config}")
        sys.exit(1)

    try:
        port = validate_port(args.port)
    except ValueError as e:
        print(str(e))
        sys.exit(1)

    logging.basicConfig(level=getattr(logging, args.log_level.upper()), format=LOG_FORMAT)

    if args.faker_seed is not None:
        print(f"Faker seeded with {args.faker_seed} (locale: {args.faker_locale})")

    config = MockConfig(
        host=args.host,
        port=port,
        profile=args.profile,
        watch=args.watch,
        cors=not args.no_cors,
        swagger=args.swagger,
        log_level=args.log_level,
        log_requests=not args.no_logs,
        faker_locale=args.faker_locale,
        faker_seed=args.faker_seed,
        admin_enabled=not args.no_admin
    )

    # Create server
    try:
        server = MockServer(str(config_path), config=config)
    except ConfigError as e:
        print(f"Failed to load config: {e}")
        sys.exit(1)

    # Start server (blocking)
    try:
        server.start()
    except KeyboardInterrupt:
        print("\nMock server stopped")


def cmd_init(args):
    """
    Write a sample config file.

    Args:
        args: Parsed command-line arguments
    """
    fmt = args.format.lower()
    filename = args.output
    if filename is None:
        filename = 'mockapi.yaml' if fmt in ('yaml', 'yml') else 'mockapi.json'

    output = Path(filename)
    if output.exists():
        print(f"File {filename} already exists")
        sys.exit(1)

    try:
        output.write_text(render_sample(fmt), encoding='utf-8')
    except OSError as e:
        print(f"Failed to create config file: {e}")
        sys.exit(1)

    print(f"Created sample config file: {filename}")
    print(f"\nTo start the server, run:")
    print(f"   mockapi serve {filename}")


def cmd_validate(args):
    """
    Validate a config file and report what it declares.

    Args:
        args: Parsed command-line arguments
    """
    try:
        definition = ConfigLoader(args.config).load()
    except ConfigError as e:
        print(f"Config validation failed: {e}")
        sys.exit(1)

    print("Config file is valid")

    if definition.profiled:
        print(f"Found profiles: {', '.join(definition.profile_names)}")
        print(f"Default profile: {definition.default_profile}")
    else:
        routes = definition.select_profile()
        print(f"Found {len(routes)} routes:")
        for route, _ in routes:
            print(f"   {route}")


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with all sub-commands."""
    parser = argparse.ArgumentParser(
        prog='mockapi',
        description="MockAPI - spin up a mock API server from a single JSON or YAML file",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Start the server on port 4000
  %(prog)s serve mockapi.json --port 4000

  # Serve the "demo" profile and reload on change
  %(prog)s serve mockapi.yaml --profile demo --watch

  # Create a sample config
  %(prog)s init --format yaml

  # Validate a config
  %(prog)s validate mockapi.json
        """
    )

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # --- SERVE command ---
    serve_parser = subparsers.add_parser('serve', help='Start mock HTTP server')
    serve_parser.add_argument('config', help='Path to the JSON or YAML config file')
    serve_parser.add_argument('--host', default='127.0.0.1', help='Host to bind (default: 127.0.0.1)')
    serve_parser.add_argument('-p', '--port', type=int, default=3000, help='Port to bind (default: 3000)')
    serve_parser.add_argument('--profile', help='Profile to use (if config has multiple profiles)')
    serve_parser.add_argument('-w', '--watch', action='store_true', help='Reload routes when the config file changes')
    serve_parser.add_argument('--no-cors', action='store_true', help='Disable CORS headers')
    serve_parser.add_argument('--swagger', action='store_true', help='Serve Swagger docs at /docs')
    serve_parser.add_argument('--log-level', default='info', choices=['debug', 'info', 'warning', 'error'],
                              help='Log level (default: info)')
    serve_parser.add_argument('--no-logs', action='store_true', help='Disable request logging')
    serve_parser.add_argument('--faker-locale', default='en_US', help='Faker locale (default: en_US)')
    serve_parser.add_argument('--faker-seed', type=int, help='Faker seed for reproducible data')
    serve_parser.add_argument('--no-admin', action='store_true', help='Disable admin API')

    # --- INIT command ---
    init_parser = subparsers.add_parser('init', help='Create a sample config file')
    init_parser.add_argument('-f', '--format', default='json', choices=['json', 'yaml', 'yml'],
                             help='Config format (default: json)')
    init_parser.add_argument('-o', '--output', help='Output file (default: mockapi.json or mockapi.yaml)')

    # --- VALIDATE command ---
    validate_parser = subparsers.add_parser('validate', help='Validate a config file')
    validate_parser.add_argument('config', help='Path to the JSON or YAML config file')

    return parser


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Dispatch to command handler
    if args.command == 'serve':
        cmd_serve(args)
    elif args.command == 'init':
        cmd_init(args)
    elif args.command == 'validate':
        cmd_validate(args)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == '__main__':
    main()
