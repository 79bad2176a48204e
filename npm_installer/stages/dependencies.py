# npm_installer/stages/dependencies.py
# -*- coding: utf-8 -*-
"""
Installs the system packages and toolchain Nginx Proxy Manager needs:
base packages, Node.js, pnpm, Certbot, OpenResty and the SQLite CLI.
"""

import logging
import subprocess
from typing import Optional

from npm_common.command_utils import (
    command_exists,
    get_command_output,
    run_command,
    run_elevated_command,
)
from npm_common.debian.apt_manager import AptManager
from npm_common.file_utils import ensure_symlink
from npm_common.system_utils import get_distro_codename
from npm_installer import config
from npm_installer.base_stage import BaseStage
from npm_installer.config_models import AppSettings, PipelineContext
from npm_installer.registry import StageRegistry


@StageRegistry.register(
    name="dependencies",
    metadata={
        "dependencies": [],
        "estimated_time": 300,
        "title": "Checking and installing dependencies",
        "description": "Base packages, Node.js, pnpm, Certbot, OpenResty and SQLite",
    },
)
class DependencyInstaller(BaseStage):
    """
    Ensures every package and tool used by the later stages is present.

    Each tool is checked first and only installed when missing, so re-runs
    on a provisioned host only refresh the package lists.
    """

    def __init__(
        self,
        app_settings: AppSettings,
        logger: Optional[logging.Logger] = None,
    ):
        super().__init__(app_settings, logger)
        self.apt_manager = AptManager(logger=self.logger)

    def run(self, context: PipelineContext) -> None:
        self.log("Updating package lists...")
        self.apt_manager.update(self.app_settings)

        self._install_base_packages()
        self._install_nodejs()
        self._install_pnpm()
        self._install_certbot()
        self._install_openresty()
        self._install_sqlite()

        self.log("All dependencies are installed", "success")

    def _install_base_packages(self) -> None:
        missing = self.apt_manager.missing_packages(
            config.BASE_PACKAGES, self.app_settings
        )
        if not missing:
            self.log("All basic dependencies are already installed", "success")
            return

        self.log(f"Installing dependencies: {' '.join(missing)}")
        if not self.apt_manager.install(missing, self.app_settings):
            self.log(
                f"Some dependencies failed to install: {' '.join(missing)}",
                "error",
            )

    def _install_nodejs(self) -> None:
        toolchain = self.app_settings.toolchain
        if command_exists("node"):
            self.log(f"Node.js {self._node_version()} is already installed", "success")
        else:
            self.log(f"Installing Node.js {toolchain.nodejs_major}.x")
            try:
                setup_script = run_command(
                    ["curl", "-fsSL", toolchain.nodesource_setup_url],
                    self.app_settings,
                    capture_output=True,
                    current_logger=self.logger,
                )
                run_elevated_command(
                    ["bash", "-"],
                    self.app_settings,
                    cmd_input=setup_script.stdout,
                    current_logger=self.logger,
                )
            except (subprocess.CalledProcessError, FileNotFoundError) as e:
                self.fail(f"Could not set up the NodeSource repository: {e}")
            if not self.apt_manager.install("nodejs", self.app_settings):
                self.fail("Failed to install Node.js")
            self.log(f"Node.js {self._node_version()} installed", "success")

        if not self._node_version().startswith(f"v{toolchain.nodejs_major}"):
            self.log(
                f"Node.js version is not {toolchain.nodejs_major}.x. We recommend using "
                f"Node.js {toolchain.nodejs_major} for better compatibility.",
                "warning",
            )

    def _node_version(self) -> str:
        return get_command_output(
            ["node", "-v"], self.app_settings, self.logger
        ) or "unknown"

    def _install_pnpm(self) -> None:
        if command_exists("pnpm"):
            version = get_command_output(
                ["pnpm", "--version"], self.app_settings, self.logger
            )
            self.log(f"pnpm {version} is already installed", "success")
            return

        self.log("Installing pnpm")
        try:
            run_elevated_command(
                ["npm", "install", "-g", f"pnpm@{self.app_settings.toolchain.pnpm_version}"],
                self.app_settings,
                current_logger=self.logger,
            )
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            self.fail(f"Failed to install pnpm: {e}")
        self.log("pnpm installed", "success")

    def _install_certbot(self) -> None:
        if command_exists("certbot"):
            self.log("Certbot is already installed", "success")
            return

        self.log("Installing Certbot")
        if not self.apt_manager.install("certbot", self.app_settings):
            self.fail("Failed to install Certbot")
        paths = self.app_settings.paths
        ensure_symlink(
            paths.certbot_binary,
            paths.certbot_dir / "bin" / "certbot",
            self.app_settings,
            self.logger,
        )
        self.log("Certbot installed", "success")

    def _install_openresty(self) -> None:
        if command_exists("openresty"):
            self.log("Openresty is already installed", "success")
            return

        self.log("Installing Openresty")
        toolchain = self.app_settings.toolchain
        keyring_path = self.app_settings.paths.keyring_dir / "openresty.gpg"
        if not self.apt_manager.add_gpg_key_from_url(
            toolchain.openresty_key_url, keyring_path, self.app_settings
        ):
            self.fail("Failed to add the Openresty signing key")

        codename = get_distro_codename(self.app_settings, self.logger)
        if not codename:
            self.fail("Could not determine the distribution codename for the Openresty repository")

        repo_details = {
            "Types": "deb",
            "URIs": toolchain.openresty_repo_url,
            "Suites": codename,
            "Components": "main",
            "Signed-By": str(keyring_path),
        }
        if not self.apt_manager.add_repository(
            "openresty", repo_details, self.app_settings
        ):
            self.fail("Failed to add the Openresty repository")

        if not self.apt_manager.install("openresty", self.app_settings):
            self.fail("Failed to install Openresty")
        self.log("Openresty installed", "success")

    def _install_sqlite(self) -> None:
        if command_exists("sqlite3"):
            self.log("SQLite3 is already installed", "success")
            return

        self.log("Installing SQLite3")
        if not self.apt_manager.install("sqlite3", self.app_settings):
            self.fail("Failed to install SQLite3")
        self.log("SQLite3 installed", "success")
