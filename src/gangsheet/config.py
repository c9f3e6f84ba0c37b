"""gangsheet configuration using pydantic-settings.

All configuration is strongly typed and supports environment variables
and .env files.
"""

from typing import TypeGuard

from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigError(Exception):
    """Raised when required configuration is missing or invalid.

    Example:
        >>> Settings(_env_file=None).require_checkout_url()  # doctest: +ELLIPSIS
        Traceback (most recent call last):
        ...
        ConfigError: Checkout endpoint not configured. Set it in .env file or
        CHECKOUT_URL environment variable.
    """

    def __init__(self, key_name: str, env_var: str) -> None:
        """Initialize configuration error.

        Args:
            key_name: Human-readable name of the missing key.
            env_var: Environment variable name to set.
        """
        self.key_name = key_name
        self.env_var = env_var
        message = (
            f"{key_name} not configured. "
            f"Set it in .env file or {env_var} environment variable."
        )
        super().__init__(message)


class Settings(BaseSettings):
    """Application settings loaded from environment variables or .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "console"  # "console" or "json"

    # Print process
    DEADSPACE_IN: float = 0.157  # 4mm margin around every transfer
    PACK_PADDING_IN: float = 0.125  # gap between auto-packed cells
    REFERENCE_DPI: int = 300  # default physical size for uploads

    # Layout
    DEFAULT_SHEET_SIZE_ID: str = "22x12"
    DEFAULT_SNAP_INCREMENT_IN: float = 0.125
    ALLOW_ROTATE_PACKING: bool = True
    MANUAL_SPACING_IN: float = 2.5
    MANUAL_MAX_ATTEMPTS: int = 500

    # Canvas
    PX_PER_INCH_UI: float = 200.0
    DRAG_THRESHOLD_PX: float = 4.0
    ROTATE_NUDGE_STEP_IN: float = 0.125
    ROTATE_NUDGE_RADIUS_IN: float = 2.0
    MIN_ZOOM: float = 0.25
    MAX_ZOOM: float = 4.0
    ZOOM_STEP: float = 0.25
    CANVAS_PADDING_PX: float = 32.0
    KEY_NUDGE_IN: float = 0.0625  # arrow-key step when snapping is off

    # Checkout
    CHECKOUT_URL: str | None = None
    CHECKOUT_TIMEOUT_SECONDS: float = 30.0
    CHECKOUT_MAX_RETRIES: int = 3

    @staticmethod
    def _is_configured(value: str | None) -> TypeGuard[str]:
        return value is not None and value.strip() != ""

    def require_checkout_url(self) -> str:
        """Get the checkout endpoint, raising ConfigError if not set.

        Returns:
            The checkout endpoint URL.

        Raises:
            ConfigError: If CHECKOUT_URL is not configured.
        """
        if not self._is_configured(self.CHECKOUT_URL):
            raise ConfigError("Checkout endpoint", "CHECKOUT_URL")
        return self.CHECKOUT_URL


# Singleton instance for import convenience
settings = Settings()
