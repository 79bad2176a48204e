# npm_installer/stages/initialize_backend.py
# -*- coding: utf-8 -*-
"""
Backend configuration: points the backend at the SQLite database and
installs its Node.js dependencies.
"""

import subprocess

from npm_common.command_utils import run_command
from npm_common.file_utils import remove_path
from npm_installer import config
from npm_installer.base_stage import BaseStage
from npm_installer.config_models import PipelineContext
from npm_installer.registry import StageRegistry


@StageRegistry.register(
    name="initialize_backend",
    metadata={
        "dependencies": ["build_frontend"],
        "estimated_time": 120,
        "title": "Initializing backend",
        "description": "Write production.json and install backend packages",
    },
)
class BackendInitializer(BaseStage):
    """
    An existing ``production.json`` is never overwritten, even when it
    points somewhere other than the configured database.
    """

    def run(self, context: PipelineContext) -> None:
        self.log("Configuring database configuration file...")
        paths = self.app_settings.paths
        config_dir = paths.app_dir / "config"

        remove_path(config_dir / "default.json", self.app_settings, self.logger)

        config_dir.mkdir(parents=True, exist_ok=True)
        production_config = config_dir / "production.json"
        if production_config.exists():
            self.log(
                f"{production_config} already exists and was kept. It may not match "
                f"the database at {paths.database_file}.",
                "warning",
            )
        else:
            production_config.write_text(
                config.PRODUCTION_CONFIG_TEMPLATE.format(
                    database_file=paths.database_file
                ),
                encoding="utf-8",
            )

        self.log("Installing backend dependencies...")
        try:
            run_command(
                ["pnpm", "install"],
                self.app_settings,
                cwd=str(paths.app_dir),
                current_logger=self.logger,
            )
        except (subprocess.CalledProcessError, FileNotFoundError):
            self.fail("Failed to install backend dependencies")

        self.log("Backend initialized successfully", "success")
