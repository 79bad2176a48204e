# npm_installer/stages/service_unit.py
# -*- coding: utf-8 -*-
import subprocess

from npm_common.system_utils import systemd_reload
from npm_installer import config
from npm_installer.base_stage import BaseStage
from npm_installer.config_models import AppSettings, PipelineContext
from npm_installer.registry import StageRegistry


def render_unit_file(app_settings: AppSettings) -> str:
    """Render the backend systemd unit for the configured paths."""
    paths = app_settings.paths
    return config.SERVICE_UNIT_TEMPLATE.format(
        nginx_temp_dir=paths.nginx_temp_dir,
        node_binary=paths.node_binary,
        app_dir=paths.app_dir,
        restart_sec=app_settings.services.restart_sec,
    )


@StageRegistry.register(
    name="service_unit",
    metadata={
        "dependencies": ["initialize_backend"],
        "estimated_time": 2,
        "title": "Configuring systemd service",
        "description": "Write the backend unit file and reload systemd",
    },
)
class ServiceUnitWriter(BaseStage):
    def run(self, context: PipelineContext) -> None:
        unit_file = self.app_settings.unit_file_path
        self.log(f"Creating {unit_file.name}...")
        unit_file.parent.mkdir(parents=True, exist_ok=True)
        unit_file.write_text(render_unit_file(self.app_settings), encoding="utf-8")

        try:
            systemd_reload(self.app_settings, self.logger)
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            self.fail(f"systemctl daemon-reload failed: {e}")

        self.log("Systemd service configured", "success")
