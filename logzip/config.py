# logzip/config.py
import os
from typing import Dict, Mapping, Optional

from .errors import ConfigurationMissing

BASE_ENV = "LOGZIP_BASE"
# Servlet containers export their base this way; honoured when LOGZIP_BASE is unset.
FALLBACK_BASE_ENV = "CATALINA_BASE"
DEFAULT_LOGS_SUBDIR = "logs"
DEFAULT_BIND = "0.0.0.0:5098"


def _abs(p: str) -> str:
    return os.path.abspath(os.path.expanduser(os.path.expandvars(p)))


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Dict:
    """
    Read settings from the environment into a dict suitable for app.config:
      LOGZIP_BASE           base directory root (fallback: CATALINA_BASE)
      LOGZIP_LOGS_SUBDIR    logs directory under the base (default "logs")
      LOGZIP_TEMP_DIR       where snapshots are written (default: platform temp)
      LOGZIP_BIND           host:port for run.py
    """
    env = os.environ if environ is None else environ
    base = env.get(BASE_ENV) or env.get(FALLBACK_BASE_ENV) or None
    temp_dir = env.get("LOGZIP_TEMP_DIR") or None
    return {
        "LOGZIP_BASE": base,
        "LOGZIP_LOGS_SUBDIR": env.get("LOGZIP_LOGS_SUBDIR") or DEFAULT_LOGS_SUBDIR,
        "LOGZIP_TEMP_DIR": _abs(temp_dir) if temp_dir else None,
        "LOGZIP_BIND": env.get("LOGZIP_BIND") or DEFAULT_BIND,
    }


def logs_dir_for(base: Optional[str], subdir: str = DEFAULT_LOGS_SUBDIR) -> Optional[str]:
    if not base:
        return None
    return os.path.join(_abs(base), subdir)


def resolve_logs_dir(base: Optional[str], subdir: str = DEFAULT_LOGS_SUBDIR) -> str:
    """Absolute path of the logs directory, or ConfigurationMissing if it can't be served."""
    logs_dir = logs_dir_for(base, subdir)
    if logs_dir is None:
        raise ConfigurationMissing("base directory not configured")
    if not os.path.isdir(logs_dir):
        raise ConfigurationMissing(f"{subdir} directory does not exist")
    return logs_dir
