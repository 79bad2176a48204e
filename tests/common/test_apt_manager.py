# tests/common/test_apt_manager.py
import logging
import subprocess
from unittest.mock import MagicMock, patch

import pytest

from npm_common.debian.apt_manager import AptManager


@pytest.fixture
def apt_manager(tmp_path):
    """Fixture to initialize AptManager with mocked dependencies."""
    mock_logger = MagicMock()
    mock_app_settings = MagicMock()
    with (
        patch(
            "npm_common.debian.apt_manager.run_elevated_command"
        ) as mock_run_elevated,
        patch("npm_common.debian.apt_manager.run_command") as mock_run_cmd,
        patch("npm_common.debian.apt_manager.command_exists", return_value=True),
    ):
        manager = AptManager(logger=mock_logger, sources_dir=tmp_path / "sources.list.d")
        yield (
            manager,
            mock_logger,
            mock_run_elevated,
            mock_run_cmd,
            mock_app_settings,
        )


def test_requires_apt_get():
    with patch("npm_common.debian.apt_manager.command_exists", return_value=False):
        with pytest.raises(FileNotFoundError):
            AptManager(logger=MagicMock())


def test_install_new_package(apt_manager):
    """Test installation of a new package."""
    manager, logger, mock_run_elevated, mock_run_cmd, mock_app_settings = apt_manager
    mock_run_cmd.return_value = MagicMock(returncode=1, stdout="")

    assert manager.install(["pkg1"], mock_app_settings) is True

    logger.info.assert_any_call("Installing packages: pkg1")
    mock_run_elevated.assert_called_once_with(
        ["apt-get", "install", "-yq", "pkg1"],
        mock_app_settings,
        current_logger=logger,
    )


def test_install_already_installed(apt_manager):
    """Test installation of an already installed package."""
    manager, logger, mock_run_elevated, mock_run_cmd, mock_app_settings = apt_manager
    mock_run_cmd.return_value = MagicMock(returncode=0, stdout="installed")

    assert manager.install("pkg1", mock_app_settings) is True

    logger.info.assert_any_call("All requested packages are already installed.")
    mock_run_elevated.assert_not_called()


def test_install_failure_returns_false(apt_manager):
    manager, logger, mock_run_elevated, mock_run_cmd, mock_app_settings = apt_manager
    mock_run_cmd.return_value = MagicMock(returncode=0, stdout="not-installed")
    mock_run_elevated.side_effect = subprocess.CalledProcessError(100, "apt-get")

    assert manager.install(["openresty"], mock_app_settings) is False
    logger.error.assert_called_once()


def test_missing_packages(apt_manager):
    manager, _, _, mock_run_cmd, mock_app_settings = apt_manager
    mock_run_cmd.side_effect = [
        MagicMock(returncode=0, stdout="installed"),
        MagicMock(returncode=1, stdout=""),
        MagicMock(returncode=0, stdout="config-files"),
    ]

    assert manager.missing_packages(["curl", "git", "sudo"], mock_app_settings) == [
        "git",
        "sudo",
    ]


def test_missing_package_logs_no_errors(app_settings, caplog):
    logger = logging.getLogger("apt-test")
    unknown = subprocess.CompletedProcess(
        ["dpkg-query"], 1, stdout="", stderr="dpkg-query: no packages found matching curl"
    )
    with (
        patch("npm_common.debian.apt_manager.command_exists", return_value=True),
        patch("npm_common.command_utils.subprocess.run", return_value=unknown),
        caplog.at_level(logging.DEBUG, logger="apt-test"),
    ):
        manager = AptManager(logger=logger)
        assert manager.missing_packages(["curl", "wget"], app_settings) == ["curl", "wget"]

    assert not [r for r in caplog.records if r.levelno >= logging.ERROR]


def test_update_raise_error(apt_manager):
    manager, _, mock_run_elevated, _, mock_app_settings = apt_manager
    mock_run_elevated.side_effect = subprocess.CalledProcessError(100, "apt-get")

    assert manager.update(mock_app_settings) is False
    with pytest.raises(subprocess.CalledProcessError):
        manager.update(mock_app_settings, raise_error=True)


def test_add_repository_writes_deb822_file(apt_manager, tmp_path):
    manager, _, mock_run_elevated, _, mock_app_settings = apt_manager

    assert manager.add_repository(
        "openresty",
        {
            "Types": "deb",
            "URIs": "http://openresty.org/package/ubuntu",
            "Suites": "noble",
            "Components": "main",
            "Signed-By": "/usr/share/keyrings/openresty.gpg",
        },
        mock_app_settings,
    )

    sources_file = tmp_path / "sources.list.d" / "openresty.sources"
    assert sources_file.read_text() == (
        "Types: deb\n"
        "URIs: http://openresty.org/package/ubuntu\n"
        "Suites: noble\n"
        "Components: main\n"
        "Signed-By: /usr/share/keyrings/openresty.gpg\n"
    )
    mock_run_elevated.assert_called_once_with(
        ["apt-get", "update", "-yq"], mock_app_settings, current_logger=manager.logger
    )


def test_add_gpg_key_from_url(apt_manager, tmp_path):
    manager, _, mock_run_elevated, mock_run_cmd, mock_app_settings = apt_manager
    keyring = tmp_path / "keyrings" / "openresty.gpg"

    def dearmor(cmd, *args, **kwargs):
        keyring.write_bytes(b"\x99binary")
        return MagicMock(returncode=0)

    mock_run_elevated.side_effect = dearmor

    assert manager.add_gpg_key_from_url(
        "https://openresty.org/package/pubkey.gpg", keyring, mock_app_settings
    )

    curl_cmd = mock_run_cmd.call_args.args[0]
    assert curl_cmd[:3] == ["curl", "-fsSL", "https://openresty.org/package/pubkey.gpg"]
    gpg_cmd = mock_run_elevated.call_args.args[0]
    assert gpg_cmd[:6] == ["gpg", "--batch", "--yes", "--dearmor", "-o", str(keyring)]


def test_add_gpg_key_download_failure(apt_manager, tmp_path):
    manager, logger, mock_run_elevated, mock_run_cmd, mock_app_settings = apt_manager
    mock_run_cmd.side_effect = subprocess.CalledProcessError(22, "curl")

    assert not manager.add_gpg_key_from_url(
        "https://openresty.org/package/pubkey.gpg",
        tmp_path / "openresty.gpg",
        mock_app_settings,
    )
    mock_run_elevated.assert_not_called()
    logger.error.assert_called_once()
