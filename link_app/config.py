from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PATH = Path(__file__).resolve().parent.parent / ".env.local"


class Settings(BaseSettings):
    # Environment settings
    environment: str = "development"
    debug: bool = False
    LOG_LEVEL: str = "INFO"

    # OpenAI ranking oracle settings
    OPENAI_API_KEY: str | None = None
    OPENAI_MODEL: str = "gpt-4o"
    OPENAI_TEMPERATURE: float = 0.3
    OPENAI_MAX_TOKENS: int = 1200

    ORACLE_ENABLED: bool = False
    ORACLE_TIMEOUT_SECONDS: float = 8.0
    ORACLE_USER_MATCH_THRESHOLD: float = 0.4
    ORACLE_EVENT_MATCH_THRESHOLD: float = 0.5

    # =================================================================
    # REALTIME HUB SETTINGS
    # =================================================================
    REALTIME_RECENT_MESSAGES_LIMIT: int = 50
    REALTIME_SEND_QUEUE_SIZE: int = 256
    REALTIME_RECONNECT_INITIAL_DELAY_MS: int = 3000
    REALTIME_RECONNECT_MAX_DELAY_MS: int = 30000
    REALTIME_RECONNECT_MULTIPLIER: float = 2.0

    # Matching defaults
    DEFAULT_SEARCH_RADIUS_KM: float = 25.0

    # Local development fixtures (users/events JSON)
    COORDINATION_SEED_FILE: str | None = None

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def oracle_configured(self) -> bool:
        """True when the external ranking oracle should be used."""
        return bool(self.ORACLE_ENABLED and self.OPENAI_API_KEY)

    def reconnect_policy(self) -> dict:
        """
        Reconnect hint advertised to realtime clients after authentication.
        Development keeps the delays short so local restarts recover quickly.
        """
        config = {
            "initial_delay_ms": self.REALTIME_RECONNECT_INITIAL_DELAY_MS,
            "max_delay_ms": self.REALTIME_RECONNECT_MAX_DELAY_MS,
            "multiplier": self.REALTIME_RECONNECT_MULTIPLIER,
        }

        if self.environment == "development":
            config.update(
                {
                    "initial_delay_ms": min(config["initial_delay_ms"], 1000),
                    "max_delay_ms": min(config["max_delay_ms"], 10000),
                }
            )

        return config


settings = Settings()
