from __future__ import annotations

import os
from pathlib import Path

APP_ENV_HOME = "WEALTH_RM_HOME"
APP_ENV_RECENCY = "WEALTH_RM_RECENCY_FILE"

RECENCY_FILENAME = "recent_clients_v1.json"


def project_root() -> Path:
    """
    Repository/project root directory.
    Contains wealth_rm/, api/, tests/.
    """
    return Path(__file__).parent.parent.resolve()


def app_home() -> Path:
    """
    User-writable home for the ranking engine.
    Override with WEALTH_RM_HOME.
    """
    if os.environ.get(APP_ENV_HOME):
        return Path(os.environ[APP_ENV_HOME]).expanduser().resolve()
    return (Path.home() / ".wealth_rm").resolve()


def data_dir() -> Path:
    d = app_home() / "data"
    d.mkdir(parents=True, exist_ok=True)
    return d


def recency_path() -> Path:
    """
    Location of the persisted recently-viewed map.

    Resolution order:
    1. WEALTH_RM_RECENCY_FILE env var (explicit override)
    2. ~/.wealth_rm/data/recent_clients_v1.json (default)
    """
    if os.environ.get(APP_ENV_RECENCY):
        return Path(os.environ[APP_ENV_RECENCY]).expanduser().resolve()
    # no mkdir here: the storage adapter creates the directory on first write
    return app_home() / "data" / RECENCY_FILENAME
