# npm_installer/stages/verify.py
# -*- coding: utf-8 -*-
"""
Post-install health checks.
"""

from dataclasses import dataclass, field
from typing import List, Tuple

from npm_common.system_utils import (
    is_port_listening,
    is_service_active,
    read_journal,
)
from npm_installer.base_stage import BaseStage
from npm_installer.config_models import PipelineContext
from npm_installer.registry import StageRegistry


@dataclass
class HealthReport:
    """Outcome of the three verification checks."""

    services_active: bool = False
    log_errors_found: bool = False
    log_error_lines: List[str] = field(default_factory=list)
    admin_port_open: bool = False

    @property
    def healthy(self) -> bool:
        return self.services_active and self.admin_port_open


@StageRegistry.register(
    name="verify",
    metadata={
        "dependencies": ["cleanup_temp"],
        "estimated_time": 2,
        "title": "Verifying installation",
        "description": "Check services, backend logs and the admin port",
    },
)
class InstallationVerifier(BaseStage):
    """
    Inactive services or a closed admin port are fatal. Errors in the
    backend journal only produce a warning.
    """

    def run(self, context: PipelineContext) -> None:
        self.check()
        self.log(
            "Verification completed. The installation appears to be working correctly.",
            "success",
        )

    def check(self) -> HealthReport:
        report = HealthReport()
        services = self.app_settings.services

        self.log("Checking service status...")
        for name in (services.web_server, services.backend):
            if not is_service_active(name, self.app_settings, self.logger):
                self.fail(f"{name} service is not running!", remedy=f"journalctl -u {name}")
        report.services_active = True

        self.log(f"Checking {services.backend} logs for errors...")
        report.log_errors_found, report.log_error_lines = self._scan_journal()
        if report.log_errors_found:
            self.log(f"Errors found in {services.backend} logs:", "warning")
            for line in report.log_error_lines:
                self.log(line, "warning")
        else:
            self.log(f"No errors found in {services.backend} logs", "success")

        self.log(f"Checking if port {services.admin_port} is open...")
        if not is_port_listening(services.admin_port, self.app_settings, self.logger):
            self.fail(f"Port {services.admin_port} is not open!")
        report.admin_port_open = True
        self.log(
            f"Port {services.admin_port} is open and ready for admin panel access",
            "success",
        )
        return report

    def _scan_journal(self) -> Tuple[bool, List[str]]:
        """
        Search the wider scan window for the error marker and, on a hit,
        return the matching lines from the most recent part of the journal.
        """
        services = self.app_settings.services
        marker = services.log_error_marker
        scanned = read_journal(
            services.backend, services.log_scan_lines, self.app_settings, self.logger
        )
        if not any(marker in line for line in scanned):
            return False, []
        recent = read_journal(
            services.backend, services.log_report_lines, self.app_settings, self.logger
        )
        return True, [line for line in recent if marker in line]
