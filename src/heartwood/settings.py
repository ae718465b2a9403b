from pydantic_settings import BaseSettings, SettingsConfigDict

from heartwood.growth import GrowthConfig


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="HEARTWOOD_",
        env_nested_delimiter="__"
    )

    host: str = "0.0.0.0"
    port: int = 8080
    ws_path: str = "/ws"
    heartbeat_timeout_secs: float = 5
    log_level: str = "INFO"
    history_size: int = 20
    synthetic_interval_secs: float = 1.0
    growth: GrowthConfig = GrowthConfig()


settings = Settings()
