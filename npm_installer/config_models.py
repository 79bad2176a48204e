# npm_installer/config_models.py
# -*- coding: utf-8 -*-
"""
Pydantic models for installer configuration.

This module defines the structured settings for the installer, including
defaults, type annotations, and descriptions. Every fixed path, URL, service
name, port and wait time used by the pipeline is declared here so it can be
overridden from a YAML file, the environment, or the command line.
"""

from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from npm_installer.config import SYMBOLS

SYMBOLS_DEFAULT: Dict[str, str] = dict(SYMBOLS)

# --- Default Static Values (can be overridden by config file/env/cli) ---
APP_DIR_DEFAULT: Path = Path("/app")
DATA_DIR_DEFAULT: Path = Path("/data")
BACKUP_DIR_DEFAULT: Path = Path("/root/npm-backup")
MIGRATIONS_LINK_DEFAULT: Path = Path("/migrations")

RELEASE_API_URL_DEFAULT: str = "https://api.github.com/repos/NginxProxyManager/nginx-proxy-manager/releases/latest"
TARBALL_URL_TEMPLATE_DEFAULT: str = "https://codeload.github.com/NginxProxyManager/nginx-proxy-manager/tar.gz/v{release}"

NODESOURCE_SETUP_URL_DEFAULT: str = "https://deb.nodesource.com/setup_18.x"
OPENRESTY_KEY_URL_DEFAULT: str = "https://openresty.org/package/pubkey.gpg"
OPENRESTY_REPO_URL_DEFAULT: str = "http://openresty.org/package/ubuntu"


class PathSettings(BaseSettings):
    """Filesystem locations touched by the installer."""
    model_config = SettingsConfigDict(
        env_prefix='NPM_INSTALL_PATH_',
        extra='ignore'
    )

    app_dir: Path = Field(default=APP_DIR_DEFAULT, description="Application (backend + frontend) directory.")
    data_dir: Path = Field(default=DATA_DIR_DEFAULT, description="Persistent data directory holding the SQLite database.")
    backup_dir: Path = Field(default=BACKUP_DIR_DEFAULT, description="Where database backups are copied before cleanup.")
    migrations_link: Path = Field(default=MIGRATIONS_LINK_DEFAULT,
                                  description="Absolute path the backend reads migrations from; symlinked to <app_dir>/migrations.")
    temp_dir: Path = Field(default=Path("/tmp"), description="Download and extraction directory.")
    systemd_unit_dir: Path = Field(default=Path("/lib/systemd/system"), description="Directory for the backend unit file.")

    openresty_prefix: Path = Field(default=Path("/usr/local/openresty"), description="OpenResty installation prefix.")
    nginx_config_dir: Path = Field(default=Path("/etc/nginx"), description="Nginx configuration directory (linked to OpenResty).")
    nginx_temp_dir: Path = Field(default=Path("/tmp/nginx"), description="Nginx client body temp directory root.")
    nginx_run_dir: Path = Field(default=Path("/run/nginx"), description="Nginx runtime directory.")
    nginx_cache_dir: Path = Field(default=Path("/var/cache/nginx"), description="Nginx proxy cache directory.")
    nginx_lib_cache_dir: Path = Field(default=Path("/var/lib/nginx/cache"), description="Nginx public/private cache root.")
    web_root: Path = Field(default=Path("/var/www/html"), description="Static web root for default pages.")
    letsencrypt_ini: Path = Field(default=Path("/etc/letsencrypt.ini"), description="Certbot defaults file.")
    logrotate_file: Path = Field(default=Path("/etc/logrotate.d/nginx-proxy-manager"), description="Logrotate policy file.")
    certbot_dir: Path = Field(default=Path("/opt/certbot"), description="Certbot virtualenv location expected by the backend.")
    keyring_dir: Path = Field(default=Path("/usr/share/keyrings"), description="Directory for apt signing keys.")
    resolv_conf: Path = Field(default=Path("/etc/resolv.conf"), description="Resolver file used to build the nginx resolver directive.")

    python_link: Path = Field(default=Path("/usr/bin/python"), description="Compatibility link to python3.")
    python3_binary: Path = Field(default=Path("/usr/bin/python3"))
    nginx_sbin_link: Path = Field(default=Path("/usr/sbin/nginx"), description="Compatibility link to the OpenResty nginx binary.")
    certbot_binary: Path = Field(default=Path("/usr/bin/certbot"))
    node_binary: Path = Field(default=Path("/usr/bin/node"))

    @property
    def database_file(self) -> Path:
        return self.data_dir / "database.sqlite"

    @property
    def openresty_nginx_dir(self) -> Path:
        return self.openresty_prefix / "nginx"

    @property
    def openresty_nginx_conf(self) -> Path:
        return self.openresty_nginx_dir / "conf" / "nginx.conf"


class ReleaseSettings(BaseSettings):
    """Upstream release resolution and download settings."""
    model_config = SettingsConfigDict(
        env_prefix='NPM_INSTALL_RELEASE_',
        extra='ignore'
    )

    api_url: str = Field(default=RELEASE_API_URL_DEFAULT, description="Latest-release metadata endpoint.")
    tarball_url_template: str = Field(default=TARBALL_URL_TEMPLATE_DEFAULT,
                                      description="Source tarball URL. Supports placeholder {release}.")
    source_dir_prefix: str = Field(default="nginx-proxy-manager-",
                                   description="Prefix of the directory the tarball extracts to.")
    request_timeout: int = Field(default=30, description="Timeout in seconds for metadata requests.")
    download_timeout: int = Field(default=300, description="Timeout in seconds for the tarball download.")


class ToolchainSettings(BaseSettings):
    """Versions and sources for the runtime toolchain."""
    model_config = SettingsConfigDict(
        env_prefix='NPM_INSTALL_TOOLCHAIN_',
        extra='ignore'
    )

    nodejs_major: int = Field(default=18, description="Required Node.js major version.")
    nodesource_setup_url: str = Field(default=NODESOURCE_SETUP_URL_DEFAULT)
    pnpm_version: str = Field(default="8.15", description="pnpm version installed globally via npm.")
    openresty_key_url: str = Field(default=OPENRESTY_KEY_URL_DEFAULT)
    openresty_repo_url: str = Field(default=OPENRESTY_REPO_URL_DEFAULT)
    certbot_dns_plugin: str = Field(default="certbot-dns-cloudflare",
                                    description="Certbot DNS plugin installed with pip.")


class ServiceSettings(BaseSettings):
    """Service names, ports and the fixed waits used when starting them."""
    model_config = SettingsConfigDict(
        env_prefix='NPM_INSTALL_SERVICE_',
        extra='ignore'
    )

    web_server: str = Field(default="openresty", description="Reverse proxy service name.")
    backend: str = Field(default="npm", description="Backend service (and unit file) name.")
    conflicting: List[str] = Field(default_factory=lambda: ["nginx"],
                                   description="Services stopped and disabled because they conflict with OpenResty.")
    reserved_ports: List[int] = Field(default_factory=lambda: [80, 81, 443])
    admin_port: int = Field(default=81, description="Admin web interface port.")
    restart_sec: int = Field(default=10, description="RestartSec in the backend unit.")
    web_server_start_wait: float = Field(default=2, description="Seconds to wait after starting the web server.")
    backend_start_wait: float = Field(default=5, description="Seconds to wait after starting the backend.")
    log_scan_lines: int = Field(default=50, description="Journal lines scanned for errors during verification.")
    log_report_lines: int = Field(default=10, description="Journal lines reported when errors are found.")
    log_error_marker: str = Field(default="error", description="Case-sensitive marker searched for in the journal.")


class AppSettings(BaseSettings):
    """Main installer settings."""
    model_config = SettingsConfigDict(env_prefix='NPM_INSTALL_', extra='ignore')

    log_prefix: str = Field(default="[NPM-SETUP]",
                            description="Prefix for log messages from the installer.")

    paths: PathSettings = Field(default_factory=PathSettings)
    release: ReleaseSettings = Field(default_factory=ReleaseSettings)
    toolchain: ToolchainSettings = Field(default_factory=ToolchainSettings)
    services: ServiceSettings = Field(default_factory=ServiceSettings)

    symbols: Dict[str, str] = Field(default_factory=lambda: dict(SYMBOLS_DEFAULT))

    @property
    def unit_file_path(self) -> Path:
        return self.paths.systemd_unit_dir / f"{self.services.backend}.service"


class PipelineContext(BaseModel):
    """Run state shared between stages of one pipeline run."""

    release: str = ""
    source_dir: Optional[Path] = None
