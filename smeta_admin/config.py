from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from pathlib import Path
import sys

logger = logging.getLogger(__name__)


class ConfigurationError(ValueError):
    pass


_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


@dataclass(frozen=True)
class AppSettings:
    api_url: str
    login_path: str
    refresh_path: str
    profile_path: str
    projects_path: str
    admin_path: str
    timeout_seconds: int
    retry_attempts: int
    session_store_path: str
    log_level: str

    @staticmethod
    def from_env() -> "AppSettings":
        _load_dotenv_if_present()

        api_url = os.getenv("SMETA_API_URL", "http://localhost:4001").strip().rstrip("/")
        login_path = os.getenv("SMETA_LOGIN_PATH", "/vendor/auth/login").strip()
        refresh_path = os.getenv("SMETA_REFRESH_PATH", "/vendor/auth/refresh").strip()
        profile_path = os.getenv("SMETA_PROFILE_PATH", "/vendor/auth/profile").strip()
        projects_path = os.getenv("SMETA_PROJECTS_PATH", "/vendor/projects").strip()
        admin_path = os.getenv("SMETA_ADMIN_PATH", "/admin").strip()

        timeout_seconds = _int_from_env("SMETA_TIMEOUT_SECONDS", 30)
        retry_attempts = _int_from_env("SMETA_RETRY_ATTEMPTS", 2)

        default_store_path = os.path.join(
            os.getenv("LOCALAPPDATA", os.getcwd()),
            "SmetaAdmin",
            "session.bin",
        )
        session_store_path = os.getenv("SMETA_SESSION_STORE_PATH", default_store_path)
        log_level = os.getenv("SMETA_LOG_LEVEL", "INFO").strip().upper()

        settings = AppSettings(
            api_url=api_url,
            login_path=login_path,
            refresh_path=refresh_path,
            profile_path=profile_path,
            projects_path=projects_path,
            admin_path=admin_path,
            timeout_seconds=timeout_seconds,
            retry_attempts=retry_attempts,
            session_store_path=session_store_path,
            log_level=log_level,
        )
        settings.validate()
        return settings

    def validate(self) -> None:
        if not self.api_url.startswith(("http://", "https://")):
            raise ConfigurationError("SMETA_API_URL must be an http:// or https:// URL")

        path_fields = {
            "SMETA_LOGIN_PATH": self.login_path,
            "SMETA_REFRESH_PATH": self.refresh_path,
            "SMETA_PROFILE_PATH": self.profile_path,
            "SMETA_PROJECTS_PATH": self.projects_path,
            "SMETA_ADMIN_PATH": self.admin_path,
        }
        invalid_paths = [name for name, value in path_fields.items() if not value.startswith("/")]
        if invalid_paths:
            raise ConfigurationError(
                "Endpoint paths must start with '/': " + ", ".join(invalid_paths)
            )

        if self.timeout_seconds <= 0:
            raise ConfigurationError("SMETA_TIMEOUT_SECONDS must be greater than 0")

        if self.retry_attempts < 0:
            raise ConfigurationError("SMETA_RETRY_ATTEMPTS must be 0 or greater")

        if self.log_level not in _LOG_LEVELS:
            raise ConfigurationError(
                "SMETA_LOG_LEVEL must be one of: " + ", ".join(sorted(_LOG_LEVELS))
            )


def _int_from_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc


def _load_dotenv_if_present(file_name: str = ".env") -> None:
    seen: set[Path] = set()
    for candidate in _env_file_candidates(file_name):
        resolved = candidate.resolve()
        if resolved in seen or not resolved.is_file():
            continue
        seen.add(resolved)
        _apply_env_file(resolved)


def _env_file_candidates(file_name: str) -> list[Path]:
    """Explicit SMETA_ENV_FILE first, then the working directory, then the install location."""
    explicit = os.getenv("SMETA_ENV_FILE", "").strip()
    candidates = [Path(explicit).expanduser()] if explicit else []
    candidates.append(Path.cwd() / file_name)

    if getattr(sys, "frozen", False):
        candidates.append(Path(sys.executable).resolve().parent / file_name)
    else:
        candidates.append(Path(__file__).resolve().parent.parent / file_name)
    return candidates


def _apply_env_file(path: Path) -> None:
    # Real environment variables always win over the file.
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except OSError as exc:
        logger.warning("Could not read %s: %s", path, exc)
        return

    for line in lines:
        line = line.strip()
        if line.startswith("export "):
            line = line[len("export "):].lstrip()
        if not line or line.startswith("#") or "=" not in line:
            continue

        key, _, value = line.partition("=")
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key and key not in os.environ:
            os.environ[key] = value
