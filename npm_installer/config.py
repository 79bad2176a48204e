# npm_installer/config.py
# -*- coding: utf-8 -*-
"""
Centralized static constants and definitions for the Nginx Proxy Manager
installer.

This module defines truly static values, such as the base package list,
logging symbols, the backend production configuration body, and the systemd
unit template.

Mutable runtime configuration (paths, URLs, service names, ports, sleeps)
is handled by 'npm_installer/config_models.py' and
'npm_installer/config_loader.py'.
"""

from pathlib import Path

SCRIPT_VERSION: str = "2.0"

PROJECT_ROOT: Path = Path(__file__).resolve().parent.parent

SYMBOLS: dict[str, str] = {
    "success": "✅",
    "error": "❌",
    "warning": "⚠️",
    "info": "ℹ️",
    "step": "➡️",
    "gear": "⚙️",
    "package": "📦",
    "rocket": "🚀",
    "sparkles": "✨",
    "critical": "🔥",
    "debug": "🐛",
}

BASE_PACKAGES: list[str] = [
    "curl",
    "wget",
    "gnupg2",
    "ca-certificates",
    "lsb-release",
    "python3",
    "python3-pip",
    "python3-venv",
    "openssl",
    "git",
    "logrotate",
    "build-essential",
    "sudo",
    "sqlite3",
]

# Pipeline order. Each stage depends on the one before it.
STAGE_ORDER: list[str] = [
    "dependencies",
    "service_conflicts",
    "cleanup_previous",
    "fetch_release",
    "build_frontend",
    "initialize_backend",
    "service_unit",
    "permissions",
    "start_services",
    "cleanup_temp",
    "verify",
]

# Relative to the data directory.
DATA_SUBDIRS: list[str] = [
    "nginx",
    "custom_ssl",
    "logs",
    "access",
    "nginx/default_host",
    "nginx/default_www",
    "nginx/proxy_host",
    "nginx/redirection_host",
    "nginx/stream",
    "nginx/dead_host",
    "nginx/temp",
]

DUMMY_CERT_SUBJECT: str = (
    "/O=Nginx Proxy Manager/OU=Dummy Certificate/CN=localhost"
)
DUMMY_CERT_DAYS: int = 3650

PRODUCTION_CONFIG_TEMPLATE: str = """\
{{
  "database": {{
    "engine": "knex-native",
    "knex": {{
      "client": "sqlite3",
      "connection": {{
        "filename": "{database_file}"
      }}
    }}
  }}
}}
"""

SERVICE_UNIT_TEMPLATE: str = """\
[Unit]
Description=Nginx Proxy Manager
After=network.target

[Service]
Type=simple
Environment=NODE_ENV=production
ExecStartPre=/bin/mkdir -p {nginx_temp_dir}/body
ExecStart={node_binary} {app_dir}/index.js
WorkingDirectory={app_dir}
Restart=always
RestartSec={restart_sec}

[Install]
WantedBy=multi-user.target
"""

DEFAULT_ADMIN_EMAIL: str = "admin@example.com"
DEFAULT_ADMIN_PASSWORD: str = "changeme"
