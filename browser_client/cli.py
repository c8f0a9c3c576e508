#!/usr/bin/env python3
"""browser-client command line: install browsers and talk to the driver directly.

Usage:
	browser-client install chromium firefox
	browser-client version
	browser-client driver --help
"""

import argparse
import json
import subprocess
import sys
from importlib.metadata import PackageNotFoundError, version

from browser_client.config import CONFIG

BROWSERS = ('chromium', 'firefox', 'webkit')


def _driver_base_command() -> list[str]:
	"""The configured driver command without its `run-driver` verb."""
	command = list(CONFIG.BROWSER_CLIENT_DRIVER_PATH)
	if command and command[-1] == 'run-driver':
		command = command[:-1]
	return command


def _package_version() -> str:
	try:
		return version('browser-client')
	except PackageNotFoundError:
		return 'unknown'


def build_parser() -> argparse.ArgumentParser:
	parser = argparse.ArgumentParser(
		prog='browser-client',
		description='Browser automation client driven through a driver process',
		formatter_class=argparse.RawDescriptionHelpFormatter,
		epilog="""
Examples:
  browser-client install                 # Install every browser engine
  browser-client install chromium        # Install only Chromium
  browser-client version --json
  browser-client driver --version        # Anything after 'driver' goes to the driver
""",
	)
	subparsers = parser.add_subparsers(dest='command', help='Command to execute')

	p = subparsers.add_parser('install', help='Install browser engines through the driver')
	p.add_argument('browsers', nargs='*', metavar='browser', help=f'One of {", ".join(BROWSERS)}')
	p.add_argument('--with-deps', action='store_true', help='Also install system dependencies (Linux)')

	p = subparsers.add_parser('version', help='Show client version and driver command')
	p.add_argument('--json', action='store_true', help='Output as JSON')

	p = subparsers.add_parser('driver', help='Run the driver with the remaining arguments')
	p.add_argument('args', nargs=argparse.REMAINDER, help='Arguments passed through to the driver')

	return parser


def main(argv: list[str] | None = None) -> int:
	"""Main entry point."""
	parser = build_parser()
	args = parser.parse_args(argv)

	if not args.command:
		parser.print_help()
		return 0

	if args.command == 'version':
		info = {'version': _package_version(), 'driver': ' '.join(CONFIG.BROWSER_CLIENT_DRIVER_PATH)}
		if args.json:
			print(json.dumps(info))
		else:
			print(f'browser-client {info["version"]}')
			print(f'driver: {info["driver"]}')
		return 0

	if args.command == 'install':
		unknown = [name for name in args.browsers if name not in BROWSERS]
		if unknown:
			parser.error(f'unknown browser: {", ".join(unknown)}')
		cmd = [*_driver_base_command(), 'install', *args.browsers]
		if args.with_deps:
			cmd.append('--with-deps')
		print(f'📦 Installing {", ".join(args.browsers) or "all browsers"}...')
		result = subprocess.run(cmd)
		if result.returncode != 0:
			print('\n❌ Installation failed', file=sys.stderr)
			return result.returncode
		print('\n✅ Installation complete!')
		return 0

	if args.command == 'driver':
		return subprocess.run([*_driver_base_command(), *args.args]).returncode

	parser.print_help()
	return 1


if __name__ == '__main__':
	sys.exit(main())
