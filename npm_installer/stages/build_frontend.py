# npm_installer/stages/build_frontend.py
# -*- coding: utf-8 -*-
import subprocess

from npm_common.command_utils import run_command
from npm_common.file_utils import copy_directory_contents
from npm_installer.base_stage import BaseStage
from npm_installer.config_models import PipelineContext
from npm_installer.registry import StageRegistry


@StageRegistry.register(
    name="build_frontend",
    metadata={
        "dependencies": ["fetch_release"],
        "estimated_time": 240,
        "title": "Building frontend",
        "description": "Install frontend packages with pnpm, build and copy the bundle",
    },
)
class FrontendBuilder(BaseStage):
    """Builds the admin UI from the extracted release."""

    def run(self, context: PipelineContext) -> None:
        if context.source_dir is None:
            self.fail("No extracted release available to build")
        frontend_dir = context.source_dir / "frontend"
        if not frontend_dir.is_dir():
            self.fail("Frontend directory not found")

        self.log("Installing frontend dependencies...")
        if not self._pnpm(["install"], frontend_dir):
            self.fail("Failed to install frontend dependencies")

        self.log("Upgrading packages...")
        if not self._pnpm(["upgrade"], frontend_dir):
            self.log("pnpm upgrade failed, continuing with the locked versions", "warning")

        self.log("Building frontend...")
        if not self._pnpm(["run", "build"], frontend_dir):
            self.fail("Failed to build frontend")

        app_frontend = self.app_settings.paths.app_dir / "frontend"
        try:
            copy_directory_contents(frontend_dir / "dist", app_frontend, self.app_settings, self.logger)
            copy_directory_contents(
                frontend_dir / "app-images", app_frontend / "images", self.app_settings, self.logger
            )
        except FileNotFoundError as e:
            self.fail(f"Frontend build output is incomplete: {e}")

        self.log("Frontend built successfully", "success")

    def _pnpm(self, args, cwd) -> bool:
        try:
            run_command(
                ["pnpm"] + args,
                self.app_settings,
                cwd=str(cwd),
                current_logger=self.logger,
            )
        except (subprocess.CalledProcessError, FileNotFoundError):
            return False
        return True
