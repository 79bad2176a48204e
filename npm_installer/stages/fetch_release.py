# npm_installer/stages/fetch_release.py
# -*- coding: utf-8 -*-
"""
Downloads the latest Nginx Proxy Manager release and lays it out on the
host: OpenResty configuration, runtime directories, dummy certificate,
backend code and the migrations link the backend expects.
"""

import os
import subprocess
from pathlib import Path

from npm_common.command_utils import run_command
from npm_common.file_utils import (
    chmod_recursive,
    copy_directory_contents,
    ensure_symlink,
    make_directories,
    remove_path,
    replace_in_file,
)
from npm_common.network_utils import (
    download_file,
    extract_tarball,
    fetch_latest_release_tag,
)
from npm_common.system_utils import build_resolver_directive
from npm_installer import config
from npm_installer.base_stage import BaseStage
from npm_installer.config_models import PipelineContext
from npm_installer.registry import StageRegistry


@StageRegistry.register(
    name="fetch_release",
    metadata={
        "dependencies": ["cleanup_previous"],
        "estimated_time": 120,
        "title": "Downloading and preparing Nginx Proxy Manager",
        "description": "Fetch the latest release and configure OpenResty, directories and the backend",
    },
)
class ReleaseFetcher(BaseStage):
    """
    Sets ``context.release`` and ``context.source_dir`` for the build stages.
    """

    def run(self, context: PipelineContext) -> None:
        paths = self.app_settings.paths

        self.log("Getting latest version information...")
        release = fetch_latest_release_tag(
            self.app_settings.release.api_url,
            timeout=self.app_settings.release.request_timeout,
            current_logger=self.logger,
        )
        if not release:
            self.fail(
                "Could not get the latest NPM version. Check your internet connection."
            )
        context.release = release
        self.log(f"Latest version: {release}")

        make_directories([paths.app_dir, paths.data_dir])
        source_dir = self._download(release)
        context.source_dir = source_dir
        self.log("Download completed", "success")

        self.log("Configuring environment...")
        self._link_compat_binaries()
        self._stamp_versions(source_dir, release)
        self._patch_nginx_configs(source_dir)
        self._install_nginx_files(source_dir)
        self._create_runtime_tree()
        self._write_resolvers()
        self._ensure_dummy_certificate()
        self._install_backend(source_dir)
        self._configure_migrations(source_dir)
        self._install_certbot_plugin()
        self.log("Environment configured", "success")

    def _download(self, release: str) -> Path:
        settings = self.app_settings.release
        temp_dir = self.app_settings.paths.temp_dir
        url = settings.tarball_url_template.format(release=release)
        archive = temp_dir / f"{settings.source_dir_prefix}{release}.tar.gz"

        self.log(f"Downloading Nginx Proxy Manager v{release}...")
        try:
            if download_file(
                url, archive, timeout=settings.download_timeout, current_logger=self.logger
            ):
                extract_tarball(archive, temp_dir, self.logger)
        finally:
            archive.unlink(missing_ok=True)

        source_dir = temp_dir / f"{settings.source_dir_prefix}{release}"
        if not source_dir.is_dir():
            self.fail("Failed to download or extract NPM files")
        return source_dir

    def _link_compat_binaries(self) -> None:
        paths = self.app_settings.paths
        ensure_symlink(paths.python3_binary, paths.python_link, self.app_settings, self.logger)
        ensure_symlink(
            paths.openresty_nginx_dir / "sbin" / "nginx",
            paths.nginx_sbin_link,
            self.app_settings,
            self.logger,
        )
        paths.openresty_nginx_dir.mkdir(parents=True, exist_ok=True)
        ensure_symlink(
            paths.openresty_nginx_dir,
            paths.nginx_config_dir,
            self.app_settings,
            self.logger,
        )

    def _stamp_versions(self, source_dir: Path, release: str) -> None:
        for component in ("backend", "frontend"):
            replace_in_file(
                source_dir / component / "package.json",
                '"version": "0.0.0"',
                f'"version": "{release}"',
                self.app_settings,
                self.logger,
            )

    def _patch_nginx_configs(self, source_dir: Path) -> None:
        rootfs_nginx_conf = source_dir / "docker" / "rootfs" / "etc" / "nginx" / "nginx.conf"
        replace_in_file(
            rootfs_nginx_conf, r"^daemon", "#daemon", self.app_settings, self.logger, regex=True
        )

        rewritten = 0
        for conf_file in sorted(source_dir.rglob("*.conf")):
            if conf_file.is_file():
                rewritten += replace_in_file(
                    conf_file,
                    "include conf.d",
                    f"include {self.app_settings.paths.nginx_config_dir}/conf.d",
                    self.app_settings,
                    self.logger,
                )
        self.log(f"Rewrote {rewritten} conf.d include(s)", "debug")

    def _install_nginx_files(self, source_dir: Path) -> None:
        paths = self.app_settings.paths
        rootfs = source_dir / "docker" / "rootfs"

        make_directories([paths.web_root, paths.nginx_config_dir / "logs"])
        try:
            copy_directory_contents(rootfs / "var" / "www" / "html", paths.web_root, self.app_settings, self.logger)
            copy_directory_contents(rootfs / "etc" / "nginx", paths.nginx_config_dir, self.app_settings, self.logger)
        except FileNotFoundError as e:
            self.fail(f"Release archive is missing nginx files: {e}")

        self._copy_file(rootfs / "etc" / "letsencrypt.ini", paths.letsencrypt_ini)
        self._copy_file(
            rootfs / "etc" / "logrotate.d" / "nginx-proxy-manager", paths.logrotate_file
        )

        ensure_symlink(
            paths.nginx_config_dir / "nginx.conf",
            paths.nginx_config_dir / "conf" / "nginx.conf",
            self.app_settings,
            self.logger,
        )
        remove_path(paths.nginx_config_dir / "conf.d" / "dev.conf", self.app_settings, self.logger)

    def _copy_file(self, source: Path, destination: Path) -> None:
        if not source.is_file():
            self.log(f"{source} not found in the release archive", "warning")
            return
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(source.read_bytes())

    def _create_runtime_tree(self) -> None:
        paths = self.app_settings.paths
        make_directories(
            [
                paths.nginx_temp_dir / "body",
                paths.nginx_run_dir,
                *(paths.data_dir / subdir for subdir in config.DATA_SUBDIRS),
                paths.nginx_lib_cache_dir / "public",
                paths.nginx_lib_cache_dir / "private",
                paths.nginx_cache_dir / "proxy_temp",
            ]
        )
        os.chown(paths.nginx_temp_dir, 0, -1)
        chmod_recursive(paths.nginx_cache_dir, 0o777)

    def _write_resolvers(self) -> None:
        paths = self.app_settings.paths
        resolvers_conf = paths.nginx_config_dir / "conf.d" / "include" / "resolvers.conf"
        resolvers_conf.parent.mkdir(parents=True, exist_ok=True)
        resolvers_conf.write_text(
            build_resolver_directive(paths.resolv_conf) + "\n", encoding="utf-8"
        )

    def _ensure_dummy_certificate(self) -> None:
        nginx_data_dir = self.app_settings.paths.data_dir / "nginx"
        cert_file = nginx_data_dir / "dummycert.pem"
        key_file = nginx_data_dir / "dummykey.pem"
        if cert_file.is_file() and key_file.is_file():
            return

        self.log("Generating dummy certificates...")
        try:
            run_command(
                [
                    "openssl", "req", "-new", "-newkey", "rsa:2048",
                    "-days", str(config.DUMMY_CERT_DAYS), "-nodes", "-x509",
                    "-subj", config.DUMMY_CERT_SUBJECT,
                    "-keyout", str(key_file),
                    "-out", str(cert_file),
                ],
                self.app_settings,
                capture_output=True,
                current_logger=self.logger,
            )
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            self.fail(f"Failed to generate dummy certificates: {e}")

    def _install_backend(self, source_dir: Path) -> None:
        app_dir = self.app_settings.paths.app_dir
        make_directories([app_dir / "global", app_dir / "frontend" / "images"])
        try:
            copy_directory_contents(source_dir / "backend", app_dir, self.app_settings, self.logger)
            copy_directory_contents(source_dir / "global", app_dir / "global", self.app_settings, self.logger)
        except FileNotFoundError as e:
            self.fail(f"Release archive is incomplete: {e}")

    def _configure_migrations(self, source_dir: Path) -> None:
        """
        Copy the release's migrations into the app and point the migrations
        link at them, replacing whatever was there before.
        """
        self.log("Configuring database migrations...")
        paths = self.app_settings.paths
        source_migrations = source_dir / "backend" / "migrations"
        if not source_migrations.is_dir():
            self.fail("Migrations directory not found in source code!")

        app_migrations = paths.app_dir / "migrations"
        copy_directory_contents(source_migrations, app_migrations, self.app_settings, self.logger)

        remove_path(paths.migrations_link, self.app_settings, self.logger)
        ensure_symlink(app_migrations, paths.migrations_link, self.app_settings, self.logger)
        self.log("Migrations configured correctly", "success")

    def _install_certbot_plugin(self) -> None:
        plugin = self.app_settings.toolchain.certbot_dns_plugin
        self.log(f"Installing {plugin} plugin for Certbot...")
        try:
            run_command(
                [str(self.app_settings.paths.python3_binary), "-m", "pip", "install", "--no-cache-dir", plugin],
                self.app_settings,
                current_logger=self.logger,
            )
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            self.log(f"Could not install {plugin}: {e}", "warning")
