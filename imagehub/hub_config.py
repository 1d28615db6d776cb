"""
ImageHub - Configuration Management
Resolves API keys, base URLs and tuning values from environment variables or config.ini

Doubles as the SecretResolver collaborator: ``get_config().get(name)``.
"""

from __future__ import annotations
import os
import configparser
import logging
from pathlib import Path

logger = logging.getLogger("[ImageHub]")

# Package root directory
PACKAGE_DIR = Path(__file__).parent
DEFAULT_CONFIG_FILE = PACKAGE_DIR / "config.ini"

# Environment variable overriding the config file location
ENV_CONFIG_FILE = "IMAGEHUB_CONFIG"

# Default values
DEFAULT_IMAGE_API_URL = "https://api.gpt.ge"
DEFAULT_SITE_URL = "http://localhost:5173"
DEFAULT_SITE_NAME = "AI Image Generator"
DEFAULT_REQUEST_TIMEOUT = 30
DEFAULT_GENERATION_TIMEOUT = 1200  # 20 minutes for sync generation requests
DEFAULT_MAX_CONCURRENCY = 3

PLACEHOLDER_VALUES = {"YOUR_API_KEY_HERE"}

# name -> (environment variable, config section, config option)
SETTINGS = {
    "IMAGE_API_URL": ("IMAGE_API_URL", "API", "image_api_url"),
    "IMAGE_API_KEY": ("IMAGE_API_KEY", "AUTH", "image_api_key"),
    "UPSCALE_API_URL": ("UPSCALE_API_URL", "API", "upscale_api_url"),
    "UPSCALE_API_KEY": ("UPSCALE_API_KEY", "AUTH", "upscale_api_key"),
    "OPENROUTER_API_KEY": ("OPENROUTER_API_KEY", "AUTH", "openrouter_api_key"),
    "SITE_URL": ("SITE_URL", "SITE", "site_url"),
    "SITE_NAME": ("SITE_NAME", "SITE", "site_name"),
    "FAL_KEYS": ("FAL_KEYS", "AUTH", "fal_keys"),
    "HISTORY_FILE": ("IMAGEHUB_HISTORY_FILE", "HISTORY", "history_file"),
    "REQUEST_TIMEOUT": ("IMAGEHUB_REQUEST_TIMEOUT", "API", "request_timeout"),
    "GENERATION_TIMEOUT": ("IMAGEHUB_GENERATION_TIMEOUT", "API", "generation_timeout"),
    "MAX_CONCURRENCY": ("IMAGEHUB_MAX_CONCURRENCY", "API", "max_concurrency"),
}


def _is_placeholder(value: str) -> bool:
    """Unexpanded deployment templates such as ``${IMAGE_API_KEY}`` do not count as values"""
    return (value.startswith("${") and value.endswith("}")) or value in PLACEHOLDER_VALUES


class HubConfig:
    """Configuration manager for ImageHub"""

    _instance = None
    _config = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._load_config()
        return cls._instance

    @property
    def config_file(self) -> Path:
        env_path = os.environ.get(ENV_CONFIG_FILE)
        return Path(env_path) if env_path else DEFAULT_CONFIG_FILE

    def _load_config(self):
        """Load configuration from file"""
        self._config = configparser.ConfigParser()
        config_file = self.config_file
        if config_file.exists():
            self._config.read(config_file)
            logger.info(f"[ImageHub] Loaded config from {config_file}")
        else:
            logger.info(f"[ImageHub] Config file not found: {config_file}, using environment variables or defaults")

    def reload(self):
        """Reload configuration from file"""
        self._load_config()

    def get(self, name: str, default: str | None = None) -> str | None:
        """
        Resolve a secret or config value by name with priority:
        1. Environment variable
        2. config.ini section/option
        3. ``default``

        Unknown names are looked up as plain environment variables.
        """
        env_name, section, option = SETTINGS.get(name, (name, None, None))

        # Priority 1: Environment variable
        env_value = os.environ.get(env_name, "").strip()
        if env_value and not _is_placeholder(env_value):
            return env_value

        # Priority 2: Config file
        if section:
            try:
                value = self._config.get(section, option, fallback=None)
                if value and value.strip() and not _is_placeholder(value.strip()):
                    return value.strip()
            except (configparser.NoSectionError, configparser.NoOptionError):
                pass

        return default

    def _get_int(self, name: str, default: int) -> int:
        value = self.get(name)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError:
            logger.warning(f"[ImageHub] Invalid integer for {name}: {value!r}, using {default}")
            return default

    # ===== REST image API =====

    @property
    def image_api_url(self) -> str:
        return self.get("IMAGE_API_URL", DEFAULT_IMAGE_API_URL).rstrip("/")

    @property
    def image_api_key(self) -> str | None:
        return self.get("IMAGE_API_KEY")

    # ===== Upscaler (shares the image API unless configured separately) =====

    @property
    def upscale_api_url(self) -> str:
        url = self.get("UPSCALE_API_URL")
        return url.rstrip("/") if url else self.image_api_url

    @property
    def upscale_api_key(self) -> str | None:
        return self.get("UPSCALE_API_KEY") or self.image_api_key

    # ===== Chat-multimodal (OpenRouter) =====

    @property
    def openrouter_api_key(self) -> str | None:
        return self.get("OPENROUTER_API_KEY")

    @property
    def site_url(self) -> str:
        return self.get("SITE_URL", DEFAULT_SITE_URL)

    @property
    def site_name(self) -> str:
        return self.get("SITE_NAME", DEFAULT_SITE_NAME)

    # ===== Managed subscription (fal) =====

    @property
    def fal_keys(self) -> list[str]:
        """Rotating credential set, comma separated in the environment or config"""
        raw = self.get("FAL_KEYS") or self.get("FAL_KEY") or ""
        return [key.strip() for key in raw.split(",") if key.strip()]

    # ===== Misc =====

    @property
    def history_file(self) -> Path:
        path = self.get("HISTORY_FILE")
        return Path(path) if path else PACKAGE_DIR / "history" / "history.json"

    @property
    def request_timeout(self) -> int:
        return self._get_int("REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT)

    @property
    def generation_timeout(self) -> int:
        return self._get_int("GENERATION_TIMEOUT", DEFAULT_GENERATION_TIMEOUT)

    @property
    def max_concurrency(self) -> int:
        return max(1, self._get_int("MAX_CONCURRENCY", DEFAULT_MAX_CONCURRENCY))

    def save_value(self, name: str, value: str) -> bool:
        """
        Save a value to config.ini
        Returns True if successful, False otherwise
        """
        if name not in SETTINGS:
            logger.error(f"[ImageHub] Unknown setting: {name}")
            return False

        _, section, option = SETTINGS[name]
        try:
            if not self._config.has_section(section):
                self._config.add_section(section)

            self._config.set(section, option, value)

            config_file = self.config_file
            config_file.parent.mkdir(parents=True, exist_ok=True)
            with open(config_file, "w") as f:
                self._config.write(f)

            logger.info(f"[ImageHub] {name} saved to {config_file.name}")
            return True
        except OSError as e:
            logger.error(f"[ImageHub] Failed to save {name}: {e}")
            return False


# Singleton instance
def get_config() -> HubConfig:
    """Get the singleton config instance"""
    return HubConfig()
