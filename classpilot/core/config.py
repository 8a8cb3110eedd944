import os
from typing import List, Optional, Tuple, Type
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

REQUIRED_FIELDS = ("username", "password", "home_url", "email_prefix", "target_url")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=os.getenv("ENV_FILE", ".env"),
        yaml_file=os.getenv("CLASSPILOT_CONFIG_YAML"),
        extra="ignore",
    )

    app_name: str = "classpilot"
    tenant: str = "default"
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"

    username: Optional[str] = None
    password: Optional[str] = None
    home_url: Optional[str] = None
    email_prefix: Optional[str] = None
    target_url: Optional[str] = None

    headless: bool = True
    monitoring_interval_seconds: float = 5.0
    driver_timeout_seconds: float = 30.0
    navigation_timeout_ms: int = 20000

    classroom_header_selector: str = "h1"
    classroom_header_pattern: str = "platform automation"
    participants_toggle_selector: str = "[data-testid='participants-toggle']"
    participants_close_selector: str = "[data-testid='participants-close']"
    participants_panel_selector: str = "[data-testid='participants-panel']"
    participant_name_selector: str = ".participant-name"

    jwt_secret: str = "dev-secret"
    jwt_ttl_ms: int = 1000 * 60 * 60 * 2

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        # Environment wins over the per-tenant YAML file.
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )

    def missing_fields(self) -> List[str]:
        return [name for name in REQUIRED_FIELDS if not getattr(self, name)]

    @property
    def identity_marker(self) -> Optional[str]:
        return self.email_prefix or self.username


settings = Settings()
