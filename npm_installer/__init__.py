"""
Installer for Nginx Proxy Manager on Ubuntu 24.04.

The installation runs as a fixed sequence of stages (see
``npm_installer.stages``) driven by the PipelineOrchestrator.
"""

from npm_installer.config import SCRIPT_VERSION

__version__ = SCRIPT_VERSION
