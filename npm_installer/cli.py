# npm_installer/cli.py
# -*- coding: utf-8 -*-
"""
Command-line interface for the Nginx Proxy Manager installer.
"""

import argparse
import logging
import os
import sys
from typing import List, Optional

from npm_common.command_utils import log_installer
from npm_common.logging_config import setup_logging
from npm_common.system_utils import get_primary_ip_address
from npm_installer import config
from npm_installer.config_loader import load_app_settings
from npm_installer.config_models import AppSettings
from npm_installer.orchestrator import PipelineOrchestrator

BANNER_RULE = "=" * 51


def parse_args(args: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Args:
        args: Command-line arguments. If None, sys.argv[1:] is used.

    Returns:
        Parsed arguments.
    """
    parser = argparse.ArgumentParser(
        description="Install Nginx Proxy Manager on Ubuntu 24.04 without Docker"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose output"
    )
    parser.add_argument(
        "--config",
        metavar="PATH",
        default=None,
        help="YAML file overriding the default settings",
    )
    parser.add_argument(
        "--log-file",
        metavar="PATH",
        default=None,
        help="Also write a JSON-lines log of the run to this file",
    )
    parser.add_argument(
        "--list",
        action="store_true",
        help="List the installation stages in order and exit",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {config.SCRIPT_VERSION}",
    )
    return parser.parse_args(args)


def print_banner(logger: logging.Logger) -> None:
    logger.info(BANNER_RULE)
    logger.info("    Nginx Proxy Manager Installation for Ubuntu 24.04")
    logger.info(BANNER_RULE)


def print_summary(app_settings: AppSettings, logger: logging.Logger) -> None:
    """Print how to reach the admin interface after a successful run."""
    ip_address = get_primary_ip_address(app_settings, logger) or "<server-ip>"
    admin_port = app_settings.services.admin_port

    log_installer(BANNER_RULE, "success", logger, app_settings)
    log_installer("Installation completed successfully!", "success", logger, app_settings)
    log_installer(BANNER_RULE, "success", logger, app_settings)
    logger.info("Access Nginx Proxy Manager at:")
    logger.info(f"URL: http://{ip_address}:{admin_port}")
    logger.info("Default credentials:")
    logger.info(f"Email: {config.DEFAULT_ADMIN_EMAIL}")
    logger.info(f"Password: {config.DEFAULT_ADMIN_PASSWORD}")
    log_installer(
        "Remember to change your password on first login!",
        "warning",
        logger,
        app_settings,
    )
    logger.info("If you encounter any issues, check the logs with:")
    logger.info(f"sudo journalctl -u {app_settings.services.backend} -f")


def main(args: Optional[List[str]] = None) -> int:
    """
    Main entry point for the installer.

    Args:
        args: Command-line arguments. If None, sys.argv[1:] is used.

    Returns:
        Exit code (0 for success, 1 for failure).
    """
    parsed_args = parse_args(args)

    logger = setup_logging(
        log_level="DEBUG" if parsed_args.verbose else "INFO",
        log_file_path=parsed_args.log_file,
    )

    try:
        app_settings = load_app_settings(
            config_file=parsed_args.config, current_logger=logger
        )
        orchestrator = PipelineOrchestrator(app_settings, logger)

        if parsed_args.list:
            stages = orchestrator.get_available_stages()
            logger.info("Installation stages:")
            for index, name in enumerate(orchestrator.resolve_order(), start=1):
                logger.info(
                    f"  {index:2d}. {name}: {stages[name].get_description()}"
                )
            return 0

        if os.geteuid() != 0:
            log_installer(
                "This script must be run as root or with sudo",
                "error",
                logger,
                app_settings,
            )
            return 1

        print_banner(logger)
        if not orchestrator.run():
            return 1

        print_summary(app_settings, logger)
        return 0

    except Exception as e:
        logger.exception(f"Error: {str(e)}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
