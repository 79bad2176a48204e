# npm_common/debian/apt_manager.py
# -*- coding: utf-8 -*-
import logging
import os
import subprocess
import tempfile
from pathlib import Path
from typing import Dict, List, Optional, Union

from npm_common.command_utils import (
    command_exists,
    run_command,
    run_elevated_command,
)
from npm_installer.config_models import AppSettings

APT_SOURCES_DIR = Path("/etc/apt/sources.list.d")


class AptManager:
    """
    A centralized manager for Debian/Ubuntu apt packages using command-line
    tools. Third-party repositories are written in the deb822 source format.
    """

    def __init__(
        self,
        logger: Optional[logging.Logger] = None,
        sources_dir: Path = APT_SOURCES_DIR,
    ):
        """
        Initializes the AptManager.
        Args:
            logger: An optional logging object.
            sources_dir: Directory receiving repository .sources files.
        """
        self.logger = logger or logging.getLogger(__name__)
        self.sources_dir = sources_dir
        if not command_exists("apt-get"):
            self.logger.critical(
                "'apt-get' command not found. This manager cannot function."
            )
            raise FileNotFoundError(
                "'apt-get' not found. Is this a Debian-based system?"
            )

    def update(
        self, app_settings: AppSettings, raise_error: bool = False
    ) -> bool:
        """
        Updates the list of available packages using 'apt-get update'.

        Args:
            app_settings: The installer settings.
            raise_error: Whether to raise an exception on failure.

        Returns:
            True if successful, False otherwise.
        """
        self.logger.info("Updating package lists...")
        try:
            run_elevated_command(
                ["apt-get", "update", "-yq"],
                app_settings,
                current_logger=self.logger,
            )
            return True
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            self.logger.error(f"Failed to update apt cache: {e}")
            if raise_error:
                raise
            return False

    def is_installed(self, pkg_name: str, app_settings: AppSettings) -> bool:
        """Return True if dpkg reports the package as installed."""
        # Exit status 1 means dpkg has never heard of the package.
        result = run_command(
            ["dpkg-query", "-W", "-f=${db:Status-Status}", pkg_name],
            app_settings,
            capture_output=True,
            check=False,
            current_logger=self.logger,
        )
        if result.returncode != 0:
            return False
        return (result.stdout or "").strip() == "installed"

    def missing_packages(
        self, packages: List[str], app_settings: AppSettings
    ) -> List[str]:
        """Return the subset of ``packages`` that is not installed."""
        return [
            pkg_name
            for pkg_name in packages
            if not self.is_installed(pkg_name, app_settings)
        ]

    def install(
        self,
        packages: Union[List[str], str],
        app_settings: AppSettings,
        update_first: bool = False,
    ) -> bool:
        """
        Installs one or more packages using 'apt-get install', skipping
        those already installed.

        Args:
            packages: A single package name or a list of package names.
            app_settings: The installer settings.
            update_first: Whether to update the package lists before installing.

        Returns:
            True if successful, False otherwise.
        """
        if not isinstance(packages, list):
            packages = [packages]

        if update_first:
            if not self.update(app_settings):
                return False

        packages_to_install = self.missing_packages(packages, app_settings)

        if not packages_to_install:
            self.logger.info("All requested packages are already installed.")
            return True

        self.logger.info(
            f"Installing packages: {' '.join(packages_to_install)}"
        )
        try:
            cmd = ["apt-get", "install", "-yq"] + packages_to_install
            run_elevated_command(
                cmd, app_settings, current_logger=self.logger
            )
            return True
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            self.logger.error(f"Failed to install packages: {e}")
            return False

    def add_repository(
        self,
        repo_name: str,
        repo_details: Dict[str, str],
        app_settings: AppSettings,
        update_after: bool = True,
    ) -> bool:
        """
        Adds a new apt repository by creating a deb822-style .sources file.

        Args:
            repo_name: The name for the repository file.
            repo_details: Ordered deb822 fields (Types, URIs, Suites, ...).
            app_settings: The installer settings.
            update_after: Whether to update package lists after adding.

        Returns:
            True if successful, False otherwise.
        """
        repo_file_path = self.sources_dir / f"{repo_name}.sources"
        self.logger.info(f"Adding repository '{repo_name}' ({repo_file_path})")

        deb822_content = "".join(
            f"{key}: {value}\n" for key, value in repo_details.items()
        )

        try:
            self.sources_dir.mkdir(parents=True, exist_ok=True)
            repo_file_path.write_text(deb822_content, encoding="utf-8")
            os.chmod(repo_file_path, 0o644)
        except OSError as e:
            self.logger.error(
                f"Failed to create repository file '{repo_file_path}': {e}"
            )
            return False

        if update_after:
            return self.update(app_settings)
        return True

    def add_gpg_key_from_url(
        self, key_url: str, keyring_path: Path, app_settings: AppSettings
    ) -> bool:
        """
        Downloads an ASCII-armored GPG key and stores it, dearmored, in
        ``keyring_path``.

        Args:
            key_url: The URL of the GPG key.
            keyring_path: The binary keyring file to write.
            app_settings: The installer settings.

        Returns:
            True if successful, False otherwise.
        """
        self.logger.info(f"Adding GPG key from {key_url} to {keyring_path}")

        try:
            keyring_path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.TemporaryDirectory() as tmp_dir:
                armored_path = Path(tmp_dir) / "key.asc"
                run_command(
                    ["curl", "-fsSL", key_url, "-o", str(armored_path)],
                    app_settings,
                    current_logger=self.logger,
                )
                run_elevated_command(
                    [
                        "gpg",
                        "--batch",
                        "--yes",
                        "--dearmor",
                        "-o",
                        str(keyring_path),
                        str(armored_path),
                    ],
                    app_settings,
                    current_logger=self.logger,
                )
            os.chmod(keyring_path, 0o644)
            return True
        except (subprocess.CalledProcessError, FileNotFoundError, OSError) as e:
            self.logger.error(f"Failed to add GPG key: {e}")
            return False
