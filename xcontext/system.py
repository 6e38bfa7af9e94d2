"""
Host system information for the context header.
"""

from __future__ import annotations

import logging
import os
import platform
import socket
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

logger = logging.getLogger(__name__)


@dataclass
class SystemInfo:
    os_name: Optional[str] = None
    os_version: Optional[str] = None
    kernel_version: Optional[str] = None
    hostname: Optional[str] = None
    shell: Optional[str] = None
    term: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """camelCase mapping without unset fields."""
        data = {
            "osName": self.os_name,
            "osVersion": self.os_version,
            "kernelVersion": self.kernel_version,
            "hostname": self.hostname,
            "shell": self.shell,
            "term": self.term,
            "error": self.error,
        }
        return {k: v for k, v in data.items() if v is not None}


def _os_release() -> Dict[str, str]:
    try:
        return platform.freedesktop_os_release()
    except OSError:
        return {}


def _os_name_and_version() -> Tuple[Optional[str], Optional[str]]:
    system = platform.system()
    if system == "Linux":
        release = _os_release()
        return release.get("NAME") or system, release.get("VERSION_ID")
    if system == "Darwin":
        return "macOS", platform.mac_ver()[0] or None
    if system == "Windows":
        return "Windows", platform.version() or None
    return system or None, platform.version() or None


def gather_system_info() -> SystemInfo:
    """Collect OS, kernel, hostname and shell details."""
    info = SystemInfo(
        shell=os.environ.get("SHELL"),
        term=os.environ.get("TERM"),
    )
    info.os_name, info.os_version = _os_name_and_version()
    info.kernel_version = platform.release() or None
    try:
        info.hostname = socket.gethostname() or None
    except OSError as e:
        logger.debug(f"Could not determine hostname: {e}")

    if info.os_name is None and info.hostname is None:
        info.error = "Failed to retrieve OS name and hostname."
    return info
