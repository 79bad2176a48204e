# npm_installer/errors.py
# -*- coding: utf-8 -*-
"""
Exceptions raised by pipeline stages.
"""

from typing import Optional


class FatalInstallError(Exception):
    """
    Raised by a stage when the installation cannot continue.

    The orchestrator reports the message together with the stage name and,
    when given, a command the operator can run to investigate. The process
    then exits with status 1.
    """

    def __init__(
        self,
        message: str,
        stage: Optional[str] = None,
        remedy: Optional[str] = None,
    ):
        self.stage = stage
        self.remedy = remedy
        super().__init__(message)
