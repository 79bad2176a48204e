# npm_common/file_utils.py
# -*- coding: utf-8 -*-
"""
File system utility functions: backups, removal of links or directories,
in-place text substitution, tree copies and recursive permission changes.
"""

import datetime
import logging
import os
import re
import shutil
from pathlib import Path
from typing import Iterable, List, Optional

from npm_installer.config_models import AppSettings

from .command_utils import get_symbols, log_installer

module_logger = logging.getLogger(__name__)

BACKUP_TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"


def backup_file(
    file_path: Path,
    backup_dir: Path,
    app_settings: Optional[AppSettings],
    current_logger: Optional[logging.Logger] = None,
) -> Optional[Path]:
    """
    Copy a file into ``backup_dir`` with a timestamp suffix.

    The copy is named ``<name>.<YYYYmmddHHMMSS>`` and preserves the file's
    bytes and metadata. A missing source is not an error; nothing is copied.

    Parameters:
        file_path (Path): The file to back up.
        backup_dir (Path): Directory receiving the copy. Created if needed.
        app_settings (Optional[AppSettings]): Installer settings.
        current_logger (Optional[logging.Logger]): Logger to use.

    Returns:
        Optional[Path]: The path of the backup, or None if the source file
            did not exist.

    Raises:
        OSError: If the copy itself fails.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)

    if not file_path.is_file():
        log_installer(
            f"{symbols.get('info', 'ℹ️')} {file_path} does not exist. No backup needed.",
            "debug",
            logger_to_use,
            app_settings,
        )
        return None

    timestamp = datetime.datetime.now().strftime(BACKUP_TIMESTAMP_FORMAT)
    backup_path = backup_dir / f"{file_path.name}.{timestamp}"
    backup_dir.mkdir(parents=True, exist_ok=True)
    shutil.copy2(file_path, backup_path)
    log_installer(
        f"{symbols.get('success', '✅')} Backed up {file_path} to {backup_path}",
        "debug",
        logger_to_use,
        app_settings,
    )
    return backup_path


def latest_backup(file_path: Path, backup_dir: Path) -> Optional[Path]:
    """Return the newest timestamped backup of ``file_path`` in ``backup_dir``."""
    if not backup_dir.is_dir():
        return None
    candidates = sorted(
        p
        for p in backup_dir.glob(f"{file_path.name}.*")
        if re.fullmatch(r"\d{14}", p.name[len(file_path.name) + 1 :])
    )
    return candidates[-1] if candidates else None


def remove_path(
    path: Path,
    app_settings: Optional[AppSettings],
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    """
    Remove ``path`` whatever it is.

    A symbolic link is unlinked (never followed), a real directory is removed
    recursively and any other file is unlinked.

    Returns:
        bool: True if something was removed, False if the path did not exist.
    """
    logger_to_use = current_logger if current_logger else module_logger

    if path.is_symlink():
        log_installer(
            f"Removing symbolic link {path}",
            "debug",
            logger_to_use,
            app_settings,
        )
        path.unlink()
        return True
    if path.is_dir():
        log_installer(
            f"Removing directory {path}",
            "debug",
            logger_to_use,
            app_settings,
        )
        shutil.rmtree(path)
        return True
    if path.exists():
        path.unlink()
        return True
    return False


def ensure_symlink(
    target: Path,
    link_path: Path,
    app_settings: Optional[AppSettings],
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    """
    Point ``link_path`` at ``target``, replacing an existing link or file.

    A real directory at ``link_path`` is left untouched and a warning is
    logged, since replacing it would discard its contents.

    Returns:
        bool: True if the link now points at ``target``.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)

    if link_path.is_symlink() or link_path.is_file():
        link_path.unlink()
    elif link_path.is_dir():
        log_installer(
            f"{symbols.get('warning', '!')} {link_path} is a directory, not linking it to {target}.",
            "warning",
            logger_to_use,
            app_settings,
        )
        return False

    link_path.parent.mkdir(parents=True, exist_ok=True)
    os.symlink(target, link_path)
    log_installer(
        f"Linked {link_path} -> {target}",
        "debug",
        logger_to_use,
        app_settings,
    )
    return True


def replace_in_file(
    file_path: Path,
    pattern: str,
    replacement: str,
    app_settings: Optional[AppSettings],
    current_logger: Optional[logging.Logger] = None,
    regex: bool = False,
) -> int:
    """
    Substitute every occurrence of ``pattern`` in a text file, in place.

    With ``regex=True`` the pattern is compiled in multiline mode so that
    ``^`` anchors match at the start of each line.

    Returns:
        int: The number of substitutions made. Zero if the file is missing.
    """
    logger_to_use = current_logger if current_logger else module_logger

    if not file_path.is_file():
        log_installer(
            f"{file_path} not found, skipping substitution of '{pattern}'",
            "debug",
            logger_to_use,
            app_settings,
        )
        return 0

    content = file_path.read_text(encoding="utf-8")
    if regex:
        new_content, count = re.subn(
            pattern, replacement, content, flags=re.MULTILINE
        )
    else:
        count = content.count(pattern)
        new_content = content.replace(pattern, replacement)

    if count:
        file_path.write_text(new_content, encoding="utf-8")
    return count


def copy_directory_contents(
    source_dir: Path,
    dest_dir: Path,
    app_settings: Optional[AppSettings],
    current_logger: Optional[logging.Logger] = None,
) -> List[Path]:
    """
    Copy every entry of ``source_dir`` into ``dest_dir`` (``cp -r src/* dest``).

    Existing files in ``dest_dir`` are overwritten and existing directories
    merged. Symbolic links are copied as links.

    Returns:
        List[Path]: The top-level destination paths written.

    Raises:
        FileNotFoundError: If ``source_dir`` does not exist.
    """
    logger_to_use = current_logger if current_logger else module_logger

    if not source_dir.is_dir():
        raise FileNotFoundError(f"Source directory not found: {source_dir}")

    dest_dir.mkdir(parents=True, exist_ok=True)
    written: List[Path] = []
    for entry in sorted(source_dir.iterdir()):
        destination = dest_dir / entry.name
        if entry.is_dir() and not entry.is_symlink():
            shutil.copytree(
                entry, destination, symlinks=True, dirs_exist_ok=True
            )
        else:
            if destination.is_symlink():
                destination.unlink()
            shutil.copy2(entry, destination, follow_symlinks=False)
        written.append(destination)

    log_installer(
        f"Copied {len(written)} entries from {source_dir} to {dest_dir}",
        "debug",
        logger_to_use,
        app_settings,
    )
    return written


def chmod_recursive(path: Path, mode: int) -> None:
    """
    Apply ``mode`` to ``path`` and everything below it (``chmod -R``).

    Symbolic links are skipped.
    """
    if not path.exists():
        return
    os.chmod(path, mode)
    if not path.is_dir() or path.is_symlink():
        return
    for root, dirs, files in os.walk(path):
        for name in dirs + files:
            entry = os.path.join(root, name)
            if not os.path.islink(entry):
                os.chmod(entry, mode)


def make_directories(paths: Iterable[Path]) -> None:
    """Create each directory (``mkdir -p``)."""
    for path in paths:
        path.mkdir(parents=True, exist_ok=True)


def cleanup_glob(
    directory_path: Path,
    pattern: str,
    app_settings: Optional[AppSettings],
    current_logger: Optional[logging.Logger] = None,
) -> List[Path]:
    """
    Remove every entry of ``directory_path`` matching ``pattern``.

    Failures are logged and skipped.

    Returns:
        List[Path]: The paths actually removed.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)
    removed: List[Path] = []

    if not directory_path.is_dir():
        return removed

    for entry in sorted(directory_path.glob(pattern)):
        try:
            remove_path(entry, app_settings, logger_to_use)
            removed.append(entry)
        except OSError as e:
            log_installer(
                f"{symbols.get('warning', '!')} Could not remove {entry}: {e}",
                "warning",
                logger_to_use,
                app_settings,
            )
    return removed
