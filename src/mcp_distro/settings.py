"""Runtime settings."""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

import appdirs

APP_NAME = "mcp-distro"
ENV_PREFIX = "MCP_DISTRO_"


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    cache_dir: Path
    proot_binary: str = "proot"
    tar_binary: str = "tar"
    host_shell: str = "/bin/sh"
    shared_storage: Optional[Path] = None
    shared_storage_guest: str = "/sdcard"
    download_timeout: float = 1800.0
    log_level: str = "INFO"

    @property
    def distros_dir(self) -> Path:
        return self.data_dir / "linux_distros"

    @property
    def home_dir(self) -> Path:
        return self.data_dir / "home"


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build settings from appdirs defaults and MCP_DISTRO_* overrides."""
    environ = os.environ if environ is None else environ

    def env(name: str, default: Optional[str] = None) -> Optional[str]:
        value = environ.get(f"{ENV_PREFIX}{name}")
        return value if value else default

    shared = env("SHARED_STORAGE")

    return Settings(
        data_dir=Path(env("DATA_DIR", appdirs.user_data_dir(APP_NAME))),
        cache_dir=Path(env("CACHE_DIR", appdirs.user_cache_dir(APP_NAME))),
        proot_binary=env("PROOT", "proot"),
        tar_binary=env("TAR", "tar"),
        host_shell=env("SHELL", environ.get("SHELL") or "/bin/sh"),
        shared_storage=Path(shared) if shared else None,
        shared_storage_guest=env("SHARED_STORAGE_GUEST", "/sdcard"),
        download_timeout=float(env("DOWNLOAD_TIMEOUT", "1800")),
        log_level=env("LOG_LEVEL", "INFO").upper(),
    )
