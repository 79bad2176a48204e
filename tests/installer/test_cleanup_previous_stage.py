# tests/installer/test_cleanup_previous_stage.py
import pytest

from npm_installer.errors import FatalInstallError
from npm_installer.stages.cleanup_previous import PreviousInstallCleaner


def _snapshot(root):
    return sorted((str(p.relative_to(root)), p.is_symlink()) for p in root.rglob("*"))


@pytest.fixture
def previous_install(app_settings):
    """A host carrying an earlier installation."""
    paths = app_settings.paths
    (paths.app_dir / "migrations").mkdir(parents=True)
    (paths.app_dir / "migrations" / "20180618015850_initial.js").write_text("up")
    (paths.app_dir / "index.js").write_text("node")
    paths.data_dir.mkdir(parents=True)
    paths.database_file.write_bytes(b"SQLite format 3\x00" + bytes(range(200)))
    unit_file = app_settings.unit_file_path
    unit_file.parent.mkdir(parents=True)
    unit_file.write_text("[Unit]\n")
    paths.migrations_link.symlink_to(paths.app_dir / "migrations")
    return paths


def test_nothing_to_clean(app_settings, mock_logger, context, host_root):
    before = _snapshot(host_root)

    PreviousInstallCleaner(app_settings, mock_logger).run(context)

    assert _snapshot(host_root) == before


def test_removes_previous_install_and_backs_up_database(
    previous_install, app_settings, mock_logger, context
):
    db_before = previous_install.database_file.read_bytes()

    PreviousInstallCleaner(app_settings, mock_logger).run(context)

    assert not previous_install.app_dir.exists()
    assert not app_settings.unit_file_path.exists()
    assert not previous_install.migrations_link.is_symlink()
    assert not previous_install.migrations_link.exists()
    assert previous_install.database_file.read_bytes() == db_before

    backups = list(previous_install.backup_dir.iterdir())
    assert len(backups) == 1
    assert backups[0].name.startswith("database.sqlite.")
    assert backups[0].read_bytes() == db_before


def test_migrations_directory_is_removed(
    previous_install, app_settings, mock_logger, context
):
    previous_install.migrations_link.unlink()
    previous_install.migrations_link.mkdir()
    (previous_install.migrations_link / "stale.js").write_text("old")

    PreviousInstallCleaner(app_settings, mock_logger).run(context)

    assert not previous_install.migrations_link.exists()


def test_second_run_changes_nothing(
    previous_install, app_settings, mock_logger, context, host_root
):
    stage = PreviousInstallCleaner(app_settings, mock_logger)
    stage.run(context)
    after_first = _snapshot(host_root)

    stage.run(context)

    assert _snapshot(host_root) == after_first
    assert len(list(previous_install.backup_dir.iterdir())) == 1
    assert not previous_install.app_dir.exists()
    assert not previous_install.migrations_link.exists()


def test_changed_database_gets_new_backup(
    previous_install, app_settings, mock_logger, context
):
    previous_install.backup_dir.mkdir(parents=True)
    stale = previous_install.backup_dir / "database.sqlite.20200101000000"
    stale.write_bytes(b"SQLite format 3\x00older")

    PreviousInstallCleaner(app_settings, mock_logger).run(context)

    backups = sorted(previous_install.backup_dir.iterdir())
    assert len(backups) == 2
    assert backups[0] == stale
    assert backups[1].read_bytes() == previous_install.database_file.read_bytes()


def test_backup_failure_is_fatal(previous_install, app_settings, mock_logger, context, mocker):
    mocker.patch(
        "npm_installer.stages.cleanup_previous.backup_file",
        side_effect=PermissionError("read-only"),
    )
    with pytest.raises(FatalInstallError, match="Could not back up"):
        PreviousInstallCleaner(app_settings, mock_logger).run(context)
    assert previous_install.app_dir.exists()
