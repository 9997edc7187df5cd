#!/usr/bin/env python3
"""Main entry point for Mushcord Installer."""

import argparse
import sys

from mushcord_installer import __version__, buildinfo, constants
from mushcord_installer.commands import discover, openasar, patch, update
from mushcord_installer.config import InstallerSettings
from mushcord_installer.utils.formatter import get_color_formatter, set_output_format
from mushcord_installer.utils.logger import setup_logger

COMMANDS = {
    'list': discover.execute_list,
    'status': discover.execute_status,
    'install': patch.execute_install,
    'repair': patch.execute_repair,
    'uninstall': patch.execute_uninstall,
    'install-openasar': openasar.execute_install,
    'uninstall-openasar': openasar.execute_uninstall,
    'update-self': update.execute,
}


def create_parser():
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        prog='mushcord-installer',
        description=f'{constants.NAME}: install Mushcord into Discord and keep it up to date',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__} ({buildinfo.INSTALLER_TAG}, {buildinfo.INSTALLER_GIT_HASH})'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose output'
    )

    parser.add_argument(
        '--log-file',
        type=str,
        help='Log file path (default: installer.log in the Mushcord data folder)'
    )

    parser.add_argument(
        '--format',
        choices=['table', 'json'],
        default='table',
        help='Output format (default: table)'
    )

    parser.add_argument(
        '--no-color',
        action='store_true',
        help='Disable colored output'
    )

    # Options for commands that act on one install
    target = argparse.ArgumentParser(add_help=False)
    target.add_argument(
        '--location',
        type=str,
        help='Discord install folder to use instead of discovering one'
    )
    target.add_argument(
        '--branch',
        choices=['auto', *constants.CHANNELS],
        default='auto',
        help='Discord channel to pick among discovered installs (default: auto)'
    )

    subparsers = parser.add_subparsers(
        dest='command',
        help='Available commands',
        metavar='COMMAND'
    )

    subparsers.add_parser('list', help='List discovered Discord installs')
    subparsers.add_parser('status', help='Show installs, installed and latest versions')
    subparsers.add_parser('install', parents=[target], help='Download Mushcord and patch Discord')
    subparsers.add_parser('repair', parents=[target], help='Reinstall the latest Mushcord and patch again')
    subparsers.add_parser('uninstall', parents=[target], help='Restore Discord\'s original files')
    subparsers.add_parser('install-openasar', parents=[target], help='Replace Discord\'s core with OpenAsar')
    subparsers.add_parser('uninstall-openasar', parents=[target], help='Restore Discord\'s original core')

    update_parser = subparsers.add_parser('update-self', help='Update this installer to its latest release')
    update_parser.add_argument(
        '--no-relaunch',
        action='store_true',
        help='Do not restart the installer after updating'
    )

    return parser


def main(argv=None):
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    # Setup logging
    log_file = args.log_file or str(InstallerSettings.from_environment().log_file)
    logger = setup_logger(verbose=args.verbose, log_file=log_file)

    set_output_format(args.format)

    color_formatter = get_color_formatter()
    if args.no_color:
        color_formatter.enabled = False

    if not args.command:
        parser.print_help()
        return 1

    try:
        return COMMANDS[args.command](args)

    except KeyboardInterrupt:
        logger.info("Operation cancelled by user")
        print(color_formatter.warning("\nOperation cancelled by user"))
        return 130
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        print(color_formatter.error(f"Error: {e}"))
        if args.verbose:
            logger.exception("Full traceback:")
        return 1


if __name__ == '__main__':
    sys.exit(main())
