# npm_installer/stages/service_conflicts.py
# -*- coding: utf-8 -*-
"""
Stops services that would collide with OpenResty or the backend and warns
about foreign processes holding the reserved ports.
"""

from npm_common.system_utils import (
    get_port_process,
    is_port_listening,
    is_service_active,
    list_listening_sockets,
    stop_service,
)
from npm_installer.base_stage import BaseStage
from npm_installer.config_models import PipelineContext
from npm_installer.registry import StageRegistry


@StageRegistry.register(
    name="service_conflicts",
    metadata={
        "dependencies": ["dependencies"],
        "estimated_time": 5,
        "title": "Checking existing services",
        "description": "Stop conflicting services and report busy ports",
    },
)
class ServiceConflictChecker(BaseStage):
    """Never fatal: port conflicts are reported as warnings only."""

    def run(self, context: PipelineContext) -> None:
        services = self.app_settings.services

        for name in services.conflicting:
            if is_service_active(name, self.app_settings, self.logger):
                self.log(
                    f"{name} service is running and may conflict with {services.web_server}",
                    "warning",
                )
                self.log(f"Stopping and disabling {name} service...")
                if stop_service(name, self.app_settings, self.logger, disable=True):
                    self.log(f"{name} stopped and disabled", "success")
                else:
                    self.log(f"Could not stop or disable {name}, continuing", "warning")

        for name in (services.web_server, services.backend):
            if is_service_active(name, self.app_settings, self.logger):
                self.log(f"Stopping {name} service...")
                if not stop_service(name, self.app_settings, self.logger):
                    self.log(f"Could not stop {name}, continuing", "warning")

        self._check_ports()

    def _check_ports(self) -> None:
        ss_output = list_listening_sockets(self.app_settings, self.logger)
        for port in self.app_settings.services.reserved_ports:
            if not is_port_listening(
                port, self.app_settings, self.logger, ss_output=ss_output
            ):
                continue
            self.log(
                f"Port {port} is already in use. This may conflict with Nginx Proxy Manager.",
                "warning",
            )
            process = get_port_process(port, self.app_settings, self.logger)
            if process:
                self.log(
                    f"Port {port} is being used by process: {process}",
                    "warning",
                )
