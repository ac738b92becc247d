"""Operating-system monikers used when querying the artifact catalog."""

from __future__ import annotations

import platform as _platform

from pydantic import BaseModel, ConfigDict

_OS_ALIASES = {"linux": "linux", "darwin": "darwin", "windows": "windows"}
_ARCH_ALIASES = {
    "x86_64": "x86_64",
    "amd64": "x86_64",
    "aarch64": "aarch64",
    "arm64": "aarch64",
}


class Platform(BaseModel):
    """The platform an artifact is requested for."""

    model_config = ConfigDict(frozen=True)

    os: str = "linux"
    arch: str = "x86_64"

    @property
    def is_windows(self) -> bool:
        return self.os == "windows"

    @property
    def os_moniker(self) -> str:
        """Search filter for versions whose archives carry an os-arch suffix."""
        return self.os

    @property
    def search_filter(self) -> str:
        """Search filter for older, platform-neutral archive names."""
        return "zip" if self.is_windows else "tar"

    @property
    def archive_extension(self) -> str:
        return "zip" if self.is_windows else "tar.gz"

    @property
    def package_suffix(self) -> str:
        return f"{self.os}-{self.arch}"


def current_platform() -> Platform:
    """Platform of the running interpreter."""
    system = _platform.system().lower()
    machine = _platform.machine().lower()
    return Platform(
        os=_OS_ALIASES.get(system, system),
        arch=_ARCH_ALIASES.get(machine, machine),
    )
