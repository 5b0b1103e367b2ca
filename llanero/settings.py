from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Settings:
    # App
    APP_NAME: str = os.environ.get("APP_NAME", "Llanero Admin")
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO")

    # Storage
    INSTANCE_DIR: Path = Path(os.environ.get("INSTANCE_DIR", "instance")).resolve()
    DATABASE_URL: str = os.environ.get(
        "DATABASE_URL", f"sqlite:///{(Path('instance') / 'llanero.sqlite').as_posix()}"
    )

    # Catalog export
    CSV_EXPORT_PREFIX: str = os.environ.get("CSV_EXPORT_PREFIX", "almacen")
    EXCEL_EXPORT_WORKSHEET_NAME: str = os.environ.get("EXCEL_EXPORT_WORKSHEET_NAME", "ALMACEN")

    # Uploads (HTTP)
    MAX_UPLOAD_MB: int = int(os.environ.get("MAX_UPLOAD_MB", "10"))

    def __post_init__(self) -> None:
        db_url_env_set = os.environ.get("DATABASE_URL") is not None

        object.__setattr__(self, "INSTANCE_DIR", Path(self.INSTANCE_DIR).resolve())

        # Without an explicit DATABASE_URL the DB always lives inside INSTANCE_DIR.
        if not db_url_env_set:
            abs_db = (self.INSTANCE_DIR / "llanero.sqlite").resolve()
            object.__setattr__(self, "DATABASE_URL", f"sqlite:///{abs_db.as_posix()}")
            return

        db = str(self.DATABASE_URL or "").strip()
        if not db:
            abs_db = (self.INSTANCE_DIR / "llanero.sqlite").resolve()
            object.__setattr__(self, "DATABASE_URL", f"sqlite:///{abs_db.as_posix()}")
            return

        # sqlite:///instance/llanero.sqlite -> sqlite:////abs/project/instance/llanero.sqlite
        if db.startswith("sqlite:///") and not db.startswith("sqlite:////"):
            path_part = db[len("sqlite:///") :]
            if "?" in path_part:
                path_part = path_part.split("?", 1)[0]
            if path_part == ":memory:":
                return

            p = Path(path_part)
            if not p.is_absolute():
                project_root = Path(__file__).resolve().parents[1]
                abs_path = (project_root / p).resolve()
                object.__setattr__(self, "DATABASE_URL", f"sqlite:///{abs_path.as_posix()}")

    def ensure_instance(self) -> None:
        self.INSTANCE_DIR.mkdir(parents=True, exist_ok=True)
