# tests/common/test_command_utils.py
import subprocess
from unittest.mock import MagicMock

import pytest

from npm_common.command_utils import (
    get_command_output,
    get_symbols,
    log_installer,
    run_command,
    run_elevated_command,
)
from npm_installer.config_models import SYMBOLS_DEFAULT


@pytest.fixture
def mock_subprocess_run(mocker):
    return mocker.patch("npm_common.command_utils.subprocess.run")


def test_get_symbols_falls_back_to_defaults():
    assert get_symbols(None) == SYMBOLS_DEFAULT


def test_log_installer_success_sets_ok_flag(mock_logger):
    log_installer("Done", "success", mock_logger)
    mock_logger.info.assert_called_once_with(
        "Done", exc_info=False, extra={"ok": True}
    )


def test_log_installer_step_sets_step_flag(mock_logger):
    log_installer("Starting services", "step", mock_logger)
    mock_logger.info.assert_called_once_with(
        "Starting services", exc_info=False, extra={"step": True}
    )


@pytest.mark.parametrize("level", ["warning", "error", "critical", "debug"])
def test_log_installer_standard_levels(mock_logger, level):
    log_installer("message", level, mock_logger)
    getattr(mock_logger, level).assert_called_once_with(
        "message", exc_info=False
    )


def test_run_command_passes_arguments(mock_subprocess_run, app_settings, mock_logger):
    mock_subprocess_run.return_value = subprocess.CompletedProcess(
        ["echo", "hi"], 0, stdout="hi\n", stderr=""
    )

    result = run_command(
        ["echo", "hi"],
        app_settings,
        capture_output=True,
        current_logger=mock_logger,
        cwd="/srv",
    )

    assert result.stdout == "hi\n"
    mock_subprocess_run.assert_called_once_with(
        ["echo", "hi"],
        check=True,
        shell=False,
        capture_output=True,
        text=True,
        input=None,
        cwd="/srv",
        env=None,
    )


def test_run_command_logs_and_reraises_failure(
    mock_subprocess_run, app_settings, mock_logger
):
    mock_subprocess_run.side_effect = subprocess.CalledProcessError(
        2, ["false"], output="", stderr="boom"
    )

    with pytest.raises(subprocess.CalledProcessError):
        run_command(["false"], app_settings, current_logger=mock_logger)

    logged = [call.args[0] for call in mock_logger.error.call_args_list]
    assert any("Command `false` failed (rc 2)" in msg for msg in logged)
    assert any("stderr: boom" in msg for msg in logged)


def test_run_command_reraises_missing_executable(
    mock_subprocess_run, app_settings, mock_logger
):
    mock_subprocess_run.side_effect = FileNotFoundError(2, "No such file", "pnpm")

    with pytest.raises(FileNotFoundError):
        run_command(["pnpm", "install"], app_settings, current_logger=mock_logger)

    mock_logger.error.assert_called_once()
    assert "Command not found: pnpm" in mock_logger.error.call_args.args[0]


def test_run_elevated_command_adds_sudo_for_non_root(mocker, app_settings):
    mocker.patch("npm_common.command_utils.os.geteuid", return_value=1000)
    mock_run = mocker.patch("npm_common.command_utils.run_command")

    run_elevated_command(["systemctl", "daemon-reload"], app_settings)

    assert mock_run.call_args.args[0] == ["sudo", "systemctl", "daemon-reload"]


def test_run_elevated_command_as_root_has_no_prefix(mocker, app_settings):
    mocker.patch("npm_common.command_utils.os.geteuid", return_value=0)
    mock_run = mocker.patch("npm_common.command_utils.run_command")

    run_elevated_command(["systemctl", "daemon-reload"], app_settings)

    assert mock_run.call_args.args[0] == ["systemctl", "daemon-reload"]


def test_get_command_output_strips(mocker, app_settings):
    mocker.patch(
        "npm_common.command_utils.run_command",
        return_value=MagicMock(returncode=0, stdout="v18.20.4\n"),
    )
    assert get_command_output(["node", "-v"], app_settings) == "v18.20.4"


def test_get_command_output_none_on_failure(mocker, app_settings):
    mocker.patch(
        "npm_common.command_utils.run_command",
        return_value=MagicMock(returncode=1, stdout=""),
    )
    assert get_command_output(["node", "-v"], app_settings) is None


def test_get_command_output_none_when_missing(mocker, app_settings):
    mocker.patch(
        "npm_common.command_utils.run_command", side_effect=FileNotFoundError()
    )
    assert get_command_output(["lsof"], app_settings) is None
