# npm_installer/stages/start_services.py
# -*- coding: utf-8 -*-
import time

from npm_common.system_utils import enable_and_start_service, is_service_active
from npm_installer.base_stage import BaseStage
from npm_installer.config_models import PipelineContext
from npm_installer.registry import StageRegistry


@StageRegistry.register(
    name="start_services",
    metadata={
        "dependencies": ["permissions"],
        "estimated_time": 10,
        "title": "Starting services",
        "description": "Enable and start OpenResty, then the backend",
    },
)
class ServiceStarter(BaseStage):
    """
    Starts the web server before the backend, with a fixed wait after each,
    then requires both to report active.
    """

    def run(self, context: PipelineContext) -> None:
        services = self.app_settings.services
        waits = {
            services.web_server: services.web_server_start_wait,
            services.backend: services.backend_start_wait,
        }

        for name, wait in waits.items():
            self.log(f"Starting {name} service...")
            if not enable_and_start_service(name, self.app_settings, self.logger):
                self.fail(
                    f"Failed to start {name} service.",
                    remedy=f"journalctl -u {name}",
                )
            time.sleep(wait)

        for name in waits:
            if is_service_active(name, self.app_settings, self.logger):
                self.log(f"{name} service is running", "success")
            else:
                self.fail(
                    f"{name} service did not start correctly",
                    remedy=f"journalctl -u {name}",
                )

        self.log("Services started successfully", "success")
