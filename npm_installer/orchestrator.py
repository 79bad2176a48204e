"""
Orchestrator for the installation pipeline.

This module provides the PipelineOrchestrator class, which is responsible
for loading the stage modules, resolving the stage order and executing the
stages one after another.
"""

import importlib
import logging
import pkgutil
from typing import Dict, List, Optional, Type

from npm_common.command_utils import get_symbols, log_installer
from npm_installer import config
from npm_installer.base_stage import BaseStage
from npm_installer.config_models import AppSettings, PipelineContext
from npm_installer.errors import FatalInstallError
from npm_installer.registry import StageRegistry


class PipelineOrchestrator:
    """
    Runs the registered stages strictly in sequence.

    The first fatal error stops the pipeline. Nothing that already ran is
    undone, and a failed run is retried by running the whole pipeline again.
    """

    def __init__(
        self,
        app_settings: AppSettings,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            app_settings: The installer settings.
            logger: Optional logger instance. If not provided, a new logger will be created.
        """
        self.app_settings = app_settings
        self.logger = logger or logging.getLogger(self.__class__.__name__)
        self.context = PipelineContext()
        self.failed_stage: Optional[str] = None

        self._import_stage_modules()

    def _import_stage_modules(self) -> None:
        """
        Import every module of ``npm_installer.stages`` so the stage classes
        register themselves with the StageRegistry.
        """
        import npm_installer.stages

        for _, module_name, _ in pkgutil.iter_modules(
            npm_installer.stages.__path__
        ):
            importlib.import_module(f"npm_installer.stages.{module_name}")
            self.logger.debug(f"Imported stage module: {module_name}")

    def get_available_stages(self) -> Dict[str, Type[BaseStage]]:
        return StageRegistry.get_all_stages()

    def resolve_order(self, stage_names: Optional[List[str]] = None) -> List[str]:
        """
        Resolve the execution order for ``stage_names`` (all stages by
        default), dependencies first.
        """
        names = stage_names if stage_names else list(config.STAGE_ORDER)
        return StageRegistry.resolve_dependencies(names)

    def run(self, stage_names: Optional[List[str]] = None) -> bool:
        """
        Run the pipeline.

        Args:
            stage_names: Stages to run together with their dependencies.
                All stages when omitted.

        Returns:
            True if every stage completed, False after the first fatal error.
        """
        symbols = get_symbols(self.app_settings)
        order = self.resolve_order(stage_names)
        self.logger.debug(f"Stage order: {', '.join(order)}")

        for name in order:
            stage_class = StageRegistry.get_stage(name)
            log_installer(
                stage_class.get_title(), "step", self.logger, self.app_settings
            )
            try:
                stage = stage_class(self.app_settings, self.logger)
                stage.run(self.context)
            except FatalInstallError as e:
                self.failed_stage = e.stage or name
                self._report_fatal(str(e), self.failed_stage, e.remedy)
                return False
            except Exception as e:
                self.failed_stage = name
                log_installer(
                    f"{symbols.get('critical', '🔥')} Unexpected error in stage '{name}': {e}",
                    "error",
                    self.logger,
                    self.app_settings,
                    exc_info=True,
                )
                return False

        return True

    def _report_fatal(
        self, message: str, stage: str, remedy: Optional[str]
    ) -> None:
        log_installer(
            f"{message} (stage: {stage})",
            "error",
            self.logger,
            self.app_settings,
        )
        if remedy:
            log_installer(
                f"Check with: {remedy}",
                "error",
                self.logger,
                self.app_settings,
            )
