"""Configuration helpers for the Maison Aura stylist service."""

from dataclasses import dataclass
from pathlib import Path
import os
from typing import Optional

DEFAULT_ANALYSIS_MODEL = "gemini-3-flash-preview"
DEFAULT_IMAGE_MODEL = "gemini-2.5-flash-image"
DEFAULT_FREE_TRIALS = 1
DEFAULT_MAX_UPLOAD_IMAGES = 4


@dataclass
class AuraConfig:
    """Configuration values for the stylist service.

    Values are resolved once at start-up. The Gemini provider is only used when
    an API key is present; otherwise the deterministic mock provider keeps the
    service usable for local runs and tests.
    """

    api_key: Optional[str] = None
    analysis_model: str = DEFAULT_ANALYSIS_MODEL
    image_model: str = DEFAULT_IMAGE_MODEL
    stylist_provider: str = "gemini"
    session_store_backend: str = "json"
    session_store_path: Optional[str] = None
    free_trials: int = DEFAULT_FREE_TRIALS
    max_upload_images: int = DEFAULT_MAX_UPLOAD_IMAGES
    environment: str | None = None

    @property
    def use_mock_provider(self) -> bool:
        return self.stylist_provider.lower() == "mock" or not self.api_key

    @classmethod
    def from_env(cls) -> "AuraConfig":
        """Build a config from environment variables or an environment YAML file.

        Environment specific YAML lives in ``config/environments/<env>.yaml`` by
        default and is merged with environment variables so that the Gemini key
        can be injected by the runtime environment instead of a file.
        """

        env_name = os.getenv("APP_ENV")
        config_path = os.getenv("APP_CONFIG_PATH")
        config_dir = Path(os.getenv("AURA_CONFIG_DIR", "config/environments"))
        yaml_config: dict = {}

        if config_path:
            path = Path(config_path)
        elif env_name:
            path = config_dir / f"{env_name}.yaml"
        else:
            path = None

        if path and path.exists():
            yaml_config = cls._load_yaml_config(path)

        def get_value(key: str, default: Optional[str] = None) -> Optional[str]:
            env_key = key.upper()
            return os.getenv(env_key, yaml_config.get(key, default))

        api_key = get_value("google_api_key") or get_value("gemini_api_key")
        analysis_model = get_value("analysis_model", DEFAULT_ANALYSIS_MODEL)
        image_model = get_value("image_model", DEFAULT_IMAGE_MODEL)
        stylist_provider = get_value("stylist_provider", "gemini")
        session_store_backend = get_value("session_store_backend", "json")
        session_store_path = get_value("session_store_path")
        free_trials = get_value("free_trials", str(DEFAULT_FREE_TRIALS))
        max_upload_images = get_value("max_upload_images", str(DEFAULT_MAX_UPLOAD_IMAGES))

        return cls(
            api_key=api_key,
            analysis_model=str(analysis_model or DEFAULT_ANALYSIS_MODEL),
            image_model=str(image_model or DEFAULT_IMAGE_MODEL),
            stylist_provider=str(stylist_provider or "gemini"),
            session_store_backend=str(session_store_backend or "json"),
            session_store_path=session_store_path,
            free_trials=cls._as_int(free_trials, DEFAULT_FREE_TRIALS),
            max_upload_images=cls._as_int(max_upload_images, DEFAULT_MAX_UPLOAD_IMAGES),
            environment=env_name,
        )

    @staticmethod
    def _as_int(raw: Optional[str], default: int) -> int:
        try:
            value = int(str(raw).strip())
        except (TypeError, ValueError):
            return default
        return value if value > 0 else default

    @staticmethod
    def _load_yaml_config(path: Path) -> dict:
        """Parse a minimal YAML/INI-style config without external dependencies."""

        config: dict[str, str] = {}
        for line in path.read_text().splitlines():
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                continue
            if ":" not in stripped:
                continue
            key, raw_value = stripped.split(":", 1)
            value = raw_value.strip()
            if (value.startswith("\"") and value.endswith("\"")) or (
                value.startswith("'") and value.endswith("'")
            ):
                value = value[1:-1]
            config[key.strip()] = value
        return config
