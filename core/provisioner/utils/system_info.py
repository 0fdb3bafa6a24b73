"""Basic machine information shown next to the install options."""

import os
import platform
import shutil
from pathlib import Path
from typing import Optional


def get_system_info(disk_path: Optional[Path] = None) -> dict:
    """OS, CPU and free disk space of the drive holding ``disk_path`` (home by default)."""
    info = {
        "os": platform.system(),
        "os_release": platform.release(),
        "machine": platform.machine(),
        "cpu_count": os.cpu_count(),
    }

    try:
        usage = shutil.disk_usage(disk_path or Path.home())
        info["disk_total_bytes"] = usage.total
        info["disk_free_bytes"] = usage.free
    except OSError:
        info["disk_total_bytes"] = None
        info["disk_free_bytes"] = None

    return info
