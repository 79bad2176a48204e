# tests/installer/test_verify_stage.py
import pytest

from npm_installer.errors import FatalInstallError
from npm_installer.stages.verify import HealthReport, InstallationVerifier

MODULE = "npm_installer.stages.verify"

CLEAN_JOURNAL = [
    "systemd[1]: Started npm.service - Nginx Proxy Manager.",
    "node[901]: [Global   ] › ℹ  info      Backend PID 901 listening on port 3000 ...",
]


@pytest.fixture
def mock_active(mocker):
    return mocker.patch(f"{MODULE}.is_service_active", return_value=True)


@pytest.fixture
def mock_port(mocker):
    return mocker.patch(f"{MODULE}.is_port_listening", return_value=True)


@pytest.fixture
def journal(mocker):
    entries = {50: CLEAN_JOURNAL, 10: CLEAN_JOURNAL}
    mocker.patch(
        f"{MODULE}.read_journal",
        side_effect=lambda service, lines, *args: entries[lines],
    )
    return entries


@pytest.fixture
def verifier(app_settings, mock_logger):
    return InstallationVerifier(app_settings, mock_logger)


def test_healthy_install(mock_active, mock_port, journal, verifier, mock_logger):
    report = verifier.check()

    assert report == HealthReport(services_active=True, admin_port_open=True)
    assert report.healthy
    mock_logger.warning.assert_not_called()
    mock_port.assert_called_once_with(81, verifier.app_settings, mock_logger)


@pytest.mark.parametrize("down", ["openresty", "npm"])
def test_inactive_service_is_fatal(mock_active, mock_port, journal, verifier, down):
    mock_active.side_effect = lambda name, *args: name != down

    with pytest.raises(FatalInstallError, match=f"{down} service is not running"):
        verifier.check()
    mock_port.assert_not_called()


def test_closed_admin_port_is_fatal(mock_active, mock_port, journal, verifier):
    mock_port.return_value = False

    with pytest.raises(FatalInstallError, match="Port 81 is not open"):
        verifier.check()


def test_journal_errors_only_warn(mock_active, mock_port, journal, verifier, mock_logger, context):
    journal[50] = CLEAN_JOURNAL + ["node[901]: error: SQLITE_CANTOPEN"]
    journal[10] = ["node[901]: error: SQLITE_CANTOPEN", "node[901]: ready"]

    report = verifier.check()

    assert report.log_errors_found
    assert report.log_error_lines == ["node[901]: error: SQLITE_CANTOPEN"]
    assert report.healthy
    warnings = [call.args[0] for call in mock_logger.warning.call_args_list]
    assert warnings == ["Errors found in npm logs:", "node[901]: error: SQLITE_CANTOPEN"]

    verifier.run(context)


def test_error_marker_is_case_sensitive(mock_active, mock_port, journal, verifier):
    journal[50] = ["node[901]: Error handler registered"]

    report = verifier.check()

    assert not report.log_errors_found


def test_old_errors_outside_report_window(mock_active, mock_port, journal, verifier, mock_logger):
    journal[50] = ["node[900]: error: old failure"] + CLEAN_JOURNAL

    report = verifier.check()

    assert report.log_errors_found
    assert report.log_error_lines == []
    mock_logger.warning.assert_called_once_with("Errors found in npm logs:", exc_info=False)
