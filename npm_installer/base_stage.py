"""
Base stage class for all pipeline stages.

This module provides the base class that every installation stage inherits
from. It defines the common interface the orchestrator relies on.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, NoReturn, Optional

from npm_common.command_utils import log_installer
from npm_installer.config_models import AppSettings, PipelineContext
from npm_installer.errors import FatalInstallError


class BaseStage(ABC):
    """
    Base class for all pipeline stages.

    A stage performs one step of the installation recipe in :meth:`run`.
    Stages report unrecoverable problems by raising
    :class:`FatalInstallError` (via :meth:`fail`) and report recoverable
    ones with warnings.
    """

    # Set by the registry decorator.
    name: str = ""
    metadata: Dict[str, Any] = {
        "dependencies": [],  # Stage that must run before this one
        "estimated_time": 0,  # Estimated duration in seconds
        "title": "",  # Header printed when the stage starts
        "description": "",
    }

    def __init__(
        self,
        app_settings: AppSettings,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the stage.

        Args:
            app_settings: The installer settings.
            logger: Optional logger instance. If not provided, a new logger will be created.
        """
        self.app_settings = app_settings
        self.logger = logger or logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def run(self, context: PipelineContext) -> None:
        """
        Execute the stage.

        Args:
            context: Run state shared with the other stages.

        Raises:
            FatalInstallError: If the installation cannot continue.
        """
        pass

    def log(self, message: str, level: str = "info") -> None:
        log_installer(message, level, self.logger, self.app_settings)

    def fail(self, message: str, remedy: Optional[str] = None) -> NoReturn:
        """Abort the pipeline from this stage."""
        raise FatalInstallError(message, stage=self.name, remedy=remedy)

    @classmethod
    def get_title(cls) -> str:
        return str(cls.metadata.get("title") or cls.name)

    @classmethod
    def get_description(cls) -> str:
        return str(cls.metadata.get("description", ""))
