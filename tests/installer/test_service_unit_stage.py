# tests/installer/test_service_unit_stage.py
import subprocess

import pytest

from npm_installer.config_models import AppSettings
from npm_installer.errors import FatalInstallError
from npm_installer.stages.service_unit import ServiceUnitWriter, render_unit_file

MODULE = "npm_installer.stages.service_unit"


def test_default_unit_matches_installed_layout():
    unit = render_unit_file(AppSettings())

    assert "Type=simple" in unit
    assert "Environment=NODE_ENV=production" in unit
    assert "ExecStartPre=/bin/mkdir -p /tmp/nginx/body" in unit
    assert "ExecStart=/usr/bin/node /app/index.js" in unit
    assert "WorkingDirectory=/app" in unit
    assert "Restart=always" in unit
    assert "RestartSec=10" in unit
    assert "WantedBy=multi-user.target" in unit


def test_writes_unit_and_reloads(mocker, app_settings, mock_logger, context):
    mock_reload = mocker.patch(f"{MODULE}.systemd_reload")

    ServiceUnitWriter(app_settings, mock_logger).run(context)

    unit_file = app_settings.unit_file_path
    assert unit_file.name == "npm.service"
    assert unit_file.read_text() == render_unit_file(app_settings)
    mock_reload.assert_called_once_with(app_settings, mock_logger)


def test_reload_failure_is_fatal(mocker, app_settings, mock_logger, context):
    mocker.patch(
        f"{MODULE}.systemd_reload",
        side_effect=subprocess.CalledProcessError(1, ["systemctl", "daemon-reload"]),
    )

    with pytest.raises(FatalInstallError):
        ServiceUnitWriter(app_settings, mock_logger).run(context)
