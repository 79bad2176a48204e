# npm_installer/stages/cleanup_previous.py
# -*- coding: utf-8 -*-
"""
Removes the artifacts of a previous installation after backing up its
database.
"""

import filecmp

from npm_common.file_utils import backup_file, latest_backup, remove_path
from npm_installer.base_stage import BaseStage
from npm_installer.config_models import PipelineContext
from npm_installer.registry import StageRegistry


@StageRegistry.register(
    name="cleanup_previous",
    metadata={
        "dependencies": ["service_conflicts"],
        "estimated_time": 5,
        "title": "Cleaning previous installations",
        "description": "Back up the database, then remove the old app, unit file and migrations link",
    },
)
class PreviousInstallCleaner(BaseStage):
    """
    The data directory itself is kept: only the application directory, the
    backend unit file and the migrations link are removed. Running the stage
    again on a cleaned host changes nothing.
    """

    def previous_install_detected(self) -> bool:
        paths = self.app_settings.paths
        return (
            paths.app_dir.is_dir()
            or paths.data_dir.is_dir()
            or self.app_settings.unit_file_path.is_file()
        )

    def run(self, context: PipelineContext) -> None:
        if not self.previous_install_detected():
            self.log("No previous installation detected", "success")
            return

        self.log("Previous installation detected")
        paths = self.app_settings.paths

        if paths.database_file.is_file():
            self._backup_database()

        self.log("Removing files from previous installation...")
        remove_path(paths.app_dir, self.app_settings, self.logger)
        remove_path(self.app_settings.unit_file_path, self.app_settings, self.logger)

        if paths.migrations_link.is_symlink():
            self.log(f"Removing {paths.migrations_link} symbolic link...")
        elif paths.migrations_link.is_dir():
            self.log(f"Removing {paths.migrations_link} directory...")
        remove_path(paths.migrations_link, self.app_settings, self.logger)

        self.log("Cleanup completed", "success")

    def _backup_database(self) -> None:
        paths = self.app_settings.paths
        previous = latest_backup(paths.database_file, paths.backup_dir)
        if previous and filecmp.cmp(paths.database_file, previous, shallow=False):
            self.log(f"Database unchanged since backup {previous}", "success")
            return

        self.log("Creating database backup...")
        try:
            backup_path = backup_file(
                paths.database_file,
                paths.backup_dir,
                self.app_settings,
                self.logger,
            )
        except OSError as e:
            self.fail(f"Could not back up {paths.database_file}: {e}")
        self.log(f"Database backup created: {backup_path}", "success")
