# tests/installer/test_start_services_stage.py
import pytest

from npm_installer.errors import FatalInstallError
from npm_installer.stages.start_services import ServiceStarter

MODULE = "npm_installer.stages.start_services"


@pytest.fixture
def mock_start(mocker):
    return mocker.patch(f"{MODULE}.enable_and_start_service", return_value=True)


@pytest.fixture
def mock_active(mocker):
    return mocker.patch(f"{MODULE}.is_service_active", return_value=True)


@pytest.fixture
def mock_sleep(mocker):
    return mocker.patch(f"{MODULE}.time.sleep")


def test_starts_web_server_before_backend(
    mock_start, mock_active, mock_sleep, app_settings, mock_logger, context
):
    app_settings.services.web_server_start_wait = 2
    app_settings.services.backend_start_wait = 5

    ServiceStarter(app_settings, mock_logger).run(context)

    assert [c.args[0] for c in mock_start.call_args_list] == ["openresty", "npm"]
    assert [c.args[0] for c in mock_sleep.call_args_list] == [2, 5]
    assert [c.args[0] for c in mock_active.call_args_list] == ["openresty", "npm"]


def test_web_server_start_failure(mock_start, mock_active, mock_sleep, app_settings, mock_logger, context):
    mock_start.return_value = False

    with pytest.raises(FatalInstallError) as exc:
        ServiceStarter(app_settings, mock_logger).run(context)

    assert exc.value.remedy == "journalctl -u openresty"
    assert mock_start.call_count == 1


def test_backend_start_failure(mock_start, mock_active, mock_sleep, app_settings, mock_logger, context):
    mock_start.side_effect = lambda name, *args: name != "npm"

    with pytest.raises(FatalInstallError) as exc:
        ServiceStarter(app_settings, mock_logger).run(context)

    assert exc.value.remedy == "journalctl -u npm"


def test_inactive_after_start_is_fatal(mock_start, mock_active, mock_sleep, app_settings, mock_logger, context):
    mock_active.side_effect = lambda name, *args: name != "npm"

    with pytest.raises(FatalInstallError, match="npm service did not start correctly"):
        ServiceStarter(app_settings, mock_logger).run(context)
