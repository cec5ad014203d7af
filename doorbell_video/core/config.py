import os
from datetime import timedelta
from pathlib import Path

from dotenv import load_dotenv, set_key
from pydantic import BaseModel, ValidationError

import doorbell_video.core.constants as c

DEFAULT_ENV_FILE = Path(".env")
DEFAULT_USER_AGENT = "doorbell-video/0.1"
DEFAULT_FCM_CREDENTIALS = Path(".ring_fcm_credentials.json")


class ConfigError(Exception):
    pass


class Settings(BaseModel):
    output_dir: Path = Path("output")
    refresh_token: str | None = None
    env_file: Path = DEFAULT_ENV_FILE
    user_agent: str = DEFAULT_USER_AGENT
    fcm_credentials_file: Path = DEFAULT_FCM_CREDENTIALS
    snapshot_interval: timedelta = c.SNAPSHOT_INTERVAL
    recording_timeout: timedelta = c.RECORDING_TIMEOUT

    @classmethod
    def from_env(
        cls, env_file: Path = DEFAULT_ENV_FILE, require_token: bool = True
    ) -> "Settings":
        """
        Build settings from the environment, after loading `env_file` into it.

        Variables already set in the environment win over the file.
        """
        load_dotenv(env_file)

        values: dict[str, object] = {"env_file": env_file}
        env_map = {
            "OUTPUT_DIR": "output_dir",
            "RING_REFRESH_TOKEN": "refresh_token",
            "RING_USER_AGENT": "user_agent",
            "RING_FCM_CREDENTIALS": "fcm_credentials_file",
        }
        for env_name, field_name in env_map.items():
            value = os.getenv(env_name)
            if value:
                values[field_name] = value
        # Durations are given in seconds
        for env_name, field_name in [
            ("SNAPSHOT_INTERVAL", "snapshot_interval"),
            ("RECORDING_TIMEOUT", "recording_timeout"),
        ]:
            value = os.getenv(env_name)
            if value:
                try:
                    values[field_name] = timedelta(seconds=float(value))
                except ValueError as e:
                    raise ConfigError(f"{env_name} must be a number of seconds") from e

        try:
            settings = cls.model_validate(values)
        except ValidationError as e:
            raise ConfigError(str(e)) from e

        if require_token and not settings.refresh_token:
            raise ConfigError(
                f"RING_REFRESH_TOKEN is not set (environment or {env_file})"
            )
        return settings


class RefreshTokenStore:
    """Keep the refresh token in the env file current as the cloud rotates it."""

    def __init__(
        self, env_file: Path, current: str | None, key: str = "RING_REFRESH_TOKEN"
    ):
        self.env_file = env_file
        self.current = current
        self.key = key

    def update(self, new_token: str) -> bool:
        """Persist `new_token`. Returns whether the env file was rewritten."""
        old_token, self.current = self.current, new_token
        if not old_token or old_token == new_token:
            return False
        if not self.env_file.exists():
            return False
        set_key(self.env_file, self.key, new_token, quote_mode="never")
        return True
