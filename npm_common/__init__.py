"""
Shared helpers for the Nginx Proxy Manager installer: command execution,
filesystem, service manager, network and logging utilities.
"""
