# tests/conftest.py
import importlib
import logging
import pkgutil
from unittest.mock import MagicMock

import pytest

import npm_installer.stages
from npm_installer.config_models import (
    AppSettings,
    PathSettings,
    PipelineContext,
    ServiceSettings,
)
from npm_installer.registry import StageRegistry


def _import_stage_modules():
    for _, module_name, _ in pkgutil.iter_modules(npm_installer.stages.__path__):
        importlib.import_module(f"npm_installer.stages.{module_name}")


@pytest.fixture
def host_root(tmp_path):
    """Stand-in for the host's filesystem root."""
    root = tmp_path / "host"
    root.mkdir()
    return root


@pytest.fixture
def app_settings(host_root):
    """AppSettings with every path under tmp_path and no start-up waits."""
    paths = PathSettings(
        app_dir=host_root / "app",
        data_dir=host_root / "data",
        backup_dir=host_root / "root" / "npm-backup",
        migrations_link=host_root / "migrations",
        temp_dir=host_root / "tmp",
        systemd_unit_dir=host_root / "lib" / "systemd" / "system",
        openresty_prefix=host_root / "usr" / "local" / "openresty",
        nginx_config_dir=host_root / "etc" / "nginx",
        nginx_temp_dir=host_root / "tmp" / "nginx",
        nginx_run_dir=host_root / "run" / "nginx",
        nginx_cache_dir=host_root / "var" / "cache" / "nginx",
        nginx_lib_cache_dir=host_root / "var" / "lib" / "nginx" / "cache",
        web_root=host_root / "var" / "www" / "html",
        letsencrypt_ini=host_root / "etc" / "letsencrypt.ini",
        logrotate_file=host_root / "etc" / "logrotate.d" / "nginx-proxy-manager",
        certbot_dir=host_root / "opt" / "certbot",
        keyring_dir=host_root / "usr" / "share" / "keyrings",
        resolv_conf=host_root / "etc" / "resolv.conf",
        python_link=host_root / "usr" / "bin" / "python",
        python3_binary=host_root / "usr" / "bin" / "python3",
        nginx_sbin_link=host_root / "usr" / "sbin" / "nginx",
        certbot_binary=host_root / "usr" / "bin" / "certbot",
        node_binary=host_root / "usr" / "bin" / "node",
    )
    services = ServiceSettings(web_server_start_wait=0, backend_start_wait=0)
    return AppSettings(paths=paths, services=services)


@pytest.fixture
def mock_logger():
    """Mock logger instance."""
    return MagicMock(spec=logging.Logger)


@pytest.fixture
def context():
    return PipelineContext()


@pytest.fixture
def clean_registry():
    """Run a test against an empty StageRegistry, restoring it afterwards."""
    _import_stage_modules()
    saved = dict(StageRegistry._registry)
    StageRegistry._registry.clear()
    yield StageRegistry
    StageRegistry._registry.clear()
    StageRegistry._registry.update(saved)
