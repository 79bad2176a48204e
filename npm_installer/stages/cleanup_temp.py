# npm_installer/stages/cleanup_temp.py
# -*- coding: utf-8 -*-
from npm_common.file_utils import cleanup_glob
from npm_installer.base_stage import BaseStage
from npm_installer.config_models import PipelineContext
from npm_installer.registry import StageRegistry


@StageRegistry.register(
    name="cleanup_temp",
    metadata={
        "dependencies": ["start_services"],
        "estimated_time": 2,
        "title": "Cleaning temporary files",
        "description": "Remove extracted release trees from the temp directory",
    },
)
class TempCleaner(BaseStage):
    """Removal failures are warnings; this stage never aborts the run."""

    def run(self, context: PipelineContext) -> None:
        self.log("Removing temporary files...")
        pattern = f"{self.app_settings.release.source_dir_prefix}*"
        removed = cleanup_glob(
            self.app_settings.paths.temp_dir, pattern, self.app_settings, self.logger
        )
        self.log(f"Removed {len(removed)} temporary path(s)", "debug")
        context.source_dir = None
        self.log("Cleanup completed", "success")
