# npm_installer/stages/permissions.py
# -*- coding: utf-8 -*-
"""
Runs OpenResty and logrotate as root, lets the Certbot venv see system
packages and opens up the directories the services write to.
"""

import os

from npm_common.file_utils import chmod_recursive, replace_in_file
from npm_installer.base_stage import BaseStage
from npm_installer.config_models import PipelineContext
from npm_installer.registry import StageRegistry


@StageRegistry.register(
    name="permissions",
    metadata={
        "dependencies": ["service_unit"],
        "estimated_time": 5,
        "title": "Adjusting settings and permissions",
        "description": "Rewrite service users and set directory modes",
    },
)
class PermissionAdjuster(BaseStage):
    def run(self, context: PipelineContext) -> None:
        paths = self.app_settings.paths

        self.log("Adjusting user settings in nginx.conf...")
        nginx_conf = paths.openresty_nginx_conf
        replace_in_file(nginx_conf, "user npm", "user root", self.app_settings, self.logger)
        replace_in_file(nginx_conf, r"^pid", "#pid", self.app_settings, self.logger, regex=True)

        self.log("Adjusting logrotate configuration...")
        replace_in_file(
            paths.logrotate_file, "su npm npm", "su root root", self.app_settings, self.logger
        )

        pyvenv_cfg = paths.certbot_dir / "pyvenv.cfg"
        if pyvenv_cfg.is_file():
            self.log("Adjusting Certbot configuration...")
            replace_in_file(
                pyvenv_cfg,
                "include-system-site-packages = false",
                "include-system-site-packages = true",
                self.app_settings,
                self.logger,
            )

        self.log("Adjusting directory permissions...")
        try:
            chmod_recursive(paths.app_dir / "migrations", 0o755)
            chmod_recursive(paths.app_dir, 0o755)
            chmod_recursive(paths.data_dir, 0o755)
            chmod_recursive(paths.nginx_cache_dir, 0o777)
            if paths.nginx_temp_dir.exists():
                os.chmod(paths.nginx_temp_dir, 0o777)
        except OSError as e:
            self.fail(f"Could not adjust permissions: {e}")

        self.log("Permissions adjusted", "success")
