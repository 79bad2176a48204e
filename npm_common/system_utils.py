# npm_common/system_utils.py
# -*- coding: utf-8 -*-
"""
System-level utility functions for the installer.

This module wraps the service manager (systemctl, journalctl), socket
inspection (ss, lsof), host facts (primary IP address, distribution
codename) and resolver discovery from /etc/resolv.conf.
"""

import logging
import socket
import subprocess
from pathlib import Path
from typing import List, Optional

from npm_common.command_utils import (
    get_command_output,
    get_symbols,
    log_installer,
    run_command,
    run_elevated_command,
)
from npm_installer.config_models import AppSettings

module_logger = logging.getLogger(__name__)


def systemd_reload(
    app_settings: AppSettings, current_logger: Optional[logging.Logger] = None
) -> None:
    """
    Reload the systemd daemon.

    Raises:
        subprocess.CalledProcessError: If ``systemctl daemon-reload`` fails.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)
    log_installer(
        f"{symbols.get('gear', '⚙️')} Reloading systemd daemon...",
        "debug",
        logger_to_use,
        app_settings,
    )
    run_elevated_command(
        ["systemctl", "daemon-reload"],
        app_settings,
        current_logger=logger_to_use,
    )


def is_service_active(
    service_name: str,
    app_settings: Optional[AppSettings],
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    """
    Return True if ``systemctl is-active --quiet <service>`` succeeds.
    """
    try:
        result = run_command(
            ["systemctl", "is-active", "--quiet", service_name],
            app_settings,
            check=False,
            current_logger=current_logger,
        )
    except FileNotFoundError:
        return False
    return result.returncode == 0


def stop_service(
    service_name: str,
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
    disable: bool = False,
) -> bool:
    """
    Stop a service and optionally disable it.

    Returns:
        bool: True if every systemctl call exited with status 0.
    """
    actions = ["stop", "disable"] if disable else ["stop"]
    ok = True
    for action in actions:
        try:
            result = run_elevated_command(
                ["systemctl", action, service_name],
                app_settings,
                check=False,
                current_logger=current_logger,
            )
        except FileNotFoundError:
            return False
        ok = ok and result.returncode == 0
    return ok


def enable_and_start_service(
    service_name: str,
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    """
    Run ``systemctl enable --now <service>``.

    Returns:
        bool: True if systemctl exited with status 0.
    """
    try:
        result = run_elevated_command(
            ["systemctl", "enable", "--now", service_name],
            app_settings,
            check=False,
            current_logger=current_logger,
        )
    except FileNotFoundError:
        return False
    return result.returncode == 0


def list_listening_sockets(
    app_settings: Optional[AppSettings],
    current_logger: Optional[logging.Logger] = None,
) -> str:
    """Return the raw ``ss -tuln`` output, or an empty string."""
    return get_command_output(
        ["ss", "-tuln"], app_settings, current_logger
    ) or ""


def is_port_listening(
    port: int,
    app_settings: Optional[AppSettings],
    current_logger: Optional[logging.Logger] = None,
    ss_output: Optional[str] = None,
) -> bool:
    """
    Return True if a TCP or UDP socket is listening on ``port``.

    The local address column of ``ss -tuln`` is matched on ``:<port> ``, so
    port 81 does not match 8081 or 810.
    """
    output = (
        ss_output
        if ss_output is not None
        else list_listening_sockets(app_settings, current_logger)
    )
    needle = f":{port} "
    for line in output.splitlines():
        if needle in f"{line} ":
            return True
    return False


def get_port_process(
    port: int,
    app_settings: Optional[AppSettings],
    current_logger: Optional[logging.Logger] = None,
) -> Optional[str]:
    """
    Return the command name of the first process listening on ``port``,
    according to ``lsof -i :<port>``.
    """
    output = get_command_output(
        ["lsof", "-i", f":{port}"], app_settings, current_logger
    )
    if not output:
        return None
    for line in output.splitlines():
        if "LISTEN" in line:
            fields = line.split()
            if fields:
                return fields[0]
    return None


def read_journal(
    service_name: str,
    lines: int,
    app_settings: Optional[AppSettings],
    current_logger: Optional[logging.Logger] = None,
) -> List[str]:
    """Return the last ``lines`` journal lines of a unit."""
    output = get_command_output(
        ["journalctl", "-u", service_name, "--no-pager", "-n", str(lines)],
        app_settings,
        current_logger,
    )
    return output.splitlines() if output else []


def get_primary_ip_address(
    app_settings: Optional[AppSettings] = None,
    current_logger: Optional[logging.Logger] = None,
) -> Optional[str]:
    """
    Get the primary IP address of the machine.

    Uses the first address from ``hostname -I`` and falls back to the source
    address of a UDP socket aimed at a public resolver (nothing is sent).
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)

    output = get_command_output(["hostname", "-I"], app_settings, logger_to_use)
    if output:
        return output.split()[0]

    try:
        s = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            s.connect(("8.8.8.8", 80))
            return str(s.getsockname()[0])
        finally:
            s.close()
    except OSError as e:
        log_installer(
            f"{symbols.get('warning', '!')} Could not determine primary IP address: {e}",
            "warning",
            logger_to_use,
            app_settings,
        )
        return None


def get_distro_codename(
    app_settings: Optional[AppSettings],
    current_logger: Optional[logging.Logger] = None,
) -> Optional[str]:
    """
    Get the distribution codename (e.g., 'noble') from ``lsb_release -sc``.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)

    try:
        result: subprocess.CompletedProcess = run_command(
            ["lsb_release", "-sc"],
            app_settings,
            capture_output=True,
            check=True,
            current_logger=logger_to_use,
        )
    except FileNotFoundError:
        log_installer(
            f"{symbols.get('warning', '!')} lsb_release command not found. Cannot determine distribution codename.",
            "warning",
            logger_to_use,
            app_settings,
        )
        return None
    except subprocess.CalledProcessError:
        return None
    return result.stdout.strip() or None


def parse_nameservers(resolv_conf_text: str) -> List[str]:
    """
    Extract nameserver addresses from resolv.conf content.

    IPv6 addresses are wrapped in brackets, as nginx requires.
    """
    servers: List[str] = []
    for line in resolv_conf_text.splitlines():
        fields = line.split()
        if len(fields) >= 2 and fields[0] == "nameserver":
            address = fields[1]
            servers.append(f"[{address}]" if ":" in address else address)
    return servers


def build_resolver_directive(resolv_conf: Path) -> str:
    """
    Build the nginx ``resolver`` directive from a resolv.conf file.

    Returns:
        str: e.g. ``"resolver 1.1.1.1 [2606:4700::1111] ;"``. Every server,
        including the last, is followed by a space.
    """
    text = resolv_conf.read_text(encoding="utf-8") if resolv_conf.is_file() else ""
    servers = parse_nameservers(text)
    joined = "".join(f"{server} " for server in servers)
    return f"resolver {joined};"
