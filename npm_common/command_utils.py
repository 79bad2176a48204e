# npm_common/command_utils.py
# -*- coding: utf-8 -*-
"""
Utilities for executing shell commands and logging their output.
"""

import logging
import os
import shutil
import subprocess
from typing import Dict, List, Optional, Union

from npm_installer.config_models import SYMBOLS_DEFAULT, AppSettings

module_logger = logging.getLogger(__name__)


def get_symbols(app_settings: Optional[AppSettings]) -> Dict[str, str]:
    return (
        app_settings.symbols
        if app_settings and app_settings.symbols
        else SYMBOLS_DEFAULT
    )


def log_installer(
    message: str,
    level: str = "info",
    current_logger: Optional[logging.Logger] = None,
    app_settings: Optional[AppSettings] = None,
    exc_info: bool = False,
) -> None:
    """
    Logs an installer message at the requested level.

    Besides the standard levels, "success" is accepted. It is logged at INFO
    with the ``ok`` flag set so the console formatter renders it with the
    ``[OK]`` tag, and "step" renders a stage header.

    Args:
        message (str): The log message to be recorded.
        level (str): One of "debug", "info", "success", "step", "warning",
            "error" or "critical". Defaults to "info".
        current_logger (Optional[logging.Logger]): A logger instance to use for
            logging. If not provided, a module-level logger will be used.
        app_settings (Optional[AppSettings]): Optional installer settings.
        exc_info (bool): Whether to include exception details in the log.
    """
    effective_logger = current_logger if current_logger else module_logger

    if level == "warning":
        effective_logger.warning(message, exc_info=exc_info)
    elif level == "error":
        effective_logger.error(message, exc_info=exc_info)
    elif level == "critical":
        effective_logger.critical(message, exc_info=exc_info)
    elif level == "debug":
        effective_logger.debug(message, exc_info=exc_info)
    elif level == "success":
        effective_logger.info(message, exc_info=exc_info, extra={"ok": True})
    elif level == "step":
        effective_logger.info(message, exc_info=exc_info, extra={"step": True})
    else:
        effective_logger.info(message, exc_info=exc_info)


def _get_elevated_command_prefix() -> List[str]:
    """
    Returns ``["sudo"]`` unless the process already runs as root.
    """
    return [] if os.geteuid() == 0 else ["sudo"]


def run_command(
    command: Union[List[str], str],
    app_settings: Optional[AppSettings],
    check: bool = True,
    shell: bool = False,
    capture_output: bool = False,
    text: bool = True,
    cmd_input: Optional[str] = None,
    current_logger: Optional[logging.Logger] = None,
    cwd: Optional[str] = None,
    env: Optional[Dict[str, str]] = None,
) -> subprocess.CompletedProcess:
    """
    Executes a system command and logs the process details and results.

    Args:
        command (Union[List[str], str]): The command to execute. If shell mode
            is enabled and the input is a list, elements are joined into a
            single string.
        app_settings (Optional[AppSettings]): Installer settings, used for
            logging symbols.
        check (bool): Raise CalledProcessError on a non-zero exit code.
        shell (bool): Run the command through the shell.
        capture_output (bool): Capture stdout and stderr.
        text (bool): Decode output streams as text.
        cmd_input (Optional[str]): Data passed to the command's stdin.
        current_logger (Optional[logging.Logger]): Logger for command details.
        cwd (Optional[str]): Working directory for the command.
        env (Optional[Dict[str, str]]): Environment for the command.

    Returns:
        subprocess.CompletedProcess: The completed process.

    Raises:
        subprocess.CalledProcessError: If the command fails and check is True.
        FileNotFoundError: If the executable is not found.
    """
    effective_logger = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)
    command_to_log_str: str
    command_to_run: Union[List[str], str]

    if shell:
        if isinstance(command, list):
            command_to_run = " ".join(command)
        else:
            command_to_run = command
        command_to_log_str = str(command_to_run)
    else:
        if isinstance(command, str):
            log_installer(
                f"{symbols.get('warning', '!')} Running string command '{command}' without shell=True. Consider list format.",
                "warning",
                effective_logger,
                app_settings,
            )
            command_to_run = command.split()
            command_to_log_str = command
        else:
            command_to_run = [str(part) for part in command]
            command_to_log_str = subprocess.list2cmdline(command_to_run)

    log_installer(
        f"{symbols.get('gear', '⚙️')} Executing: {command_to_log_str} {f'(in {cwd})' if cwd else ''}",
        "debug",
        effective_logger,
        app_settings,
    )
    try:
        result = subprocess.run(
            command_to_run,
            check=check,
            shell=shell,
            capture_output=capture_output,
            text=text,
            input=cmd_input,
            cwd=cwd,
            env=env,
        )
        if capture_output:
            if result.stdout and result.stdout.strip():
                log_installer(
                    f"   stdout: {result.stdout.strip()}",
                    "debug",
                    effective_logger,
                    app_settings,
                )
            if (
                result.stderr
                and result.stderr.strip()
                and (not check or result.returncode == 0)
            ):
                log_installer(
                    f"   stderr: {result.stderr.strip()}",
                    "debug",
                    effective_logger,
                    app_settings,
                )
        return result
    except subprocess.CalledProcessError as e:
        stdout_info = (
            e.stdout.strip()
            if e.stdout and hasattr(e.stdout, "strip")
            else "N/A"
        )
        stderr_info = (
            e.stderr.strip()
            if e.stderr and hasattr(e.stderr, "strip")
            else "N/A"
        )
        cmd_executed_str = (
            subprocess.list2cmdline(e.cmd)
            if isinstance(e.cmd, list)
            else str(e.cmd)
        )

        log_installer(
            f"{symbols.get('error', '❌')} Command `{cmd_executed_str}` failed (rc {e.returncode}).",
            "error",
            effective_logger,
            app_settings,
        )
        if stdout_info != "N/A":
            log_installer(
                f"   stdout: {stdout_info}",
                "error",
                effective_logger,
                app_settings,
            )
        if stderr_info != "N/A":
            log_installer(
                f"   stderr: {stderr_info}",
                "error",
                effective_logger,
                app_settings,
            )
        raise
    except FileNotFoundError as e:
        log_installer(
            f"{symbols.get('error', '❌')} Command not found: {e.filename}. Ensure it's installed and in PATH.",
            "error",
            effective_logger,
            app_settings,
        )
        raise


def run_elevated_command(
    command: List[str],
    app_settings: Optional[AppSettings],
    check: bool = True,
    capture_output: bool = False,
    cmd_input: Optional[str] = None,
    current_logger: Optional[logging.Logger] = None,
    cwd: Optional[str] = None,
    env: Optional[Dict[str, str]] = None,
) -> subprocess.CompletedProcess:
    """
    Executes a command with elevated permissions.

    The command is prefixed with ``sudo`` only when the current process is not
    already root, then handed to :func:`run_command`.
    """
    prefix = _get_elevated_command_prefix()
    elevated_command_list = prefix + list(command)
    return run_command(
        elevated_command_list,
        app_settings,
        check=check,
        shell=False,
        capture_output=capture_output,
        text=True,
        cmd_input=cmd_input,
        current_logger=current_logger,
        cwd=cwd,
        env=env,
    )


def command_exists(command_name: str) -> bool:
    """
    Check if a command exists in the system's PATH.
    """
    return shutil.which(command_name) is not None


def get_command_output(
    command: List[str],
    app_settings: Optional[AppSettings],
    current_logger: Optional[logging.Logger] = None,
) -> Optional[str]:
    """
    Runs a command and returns its stripped stdout, or None if it failed or
    could not be found.
    """
    try:
        result = run_command(
            command,
            app_settings,
            check=False,
            capture_output=True,
            current_logger=current_logger,
        )
    except FileNotFoundError:
        return None
    if result.returncode != 0:
        return None
    return (result.stdout or "").strip()
