"""Runtime configuration loaded from an optional YAML file and the environment."""

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Optional

import yaml

DEFAULT_DATA_DIR = Path(__file__).parent.parent / "data"
DEFAULT_ADMIN_KEY = "ADMIN2024"

# Environment variable -> Settings attribute
ENV_OVERRIDES = {
    "MARKETPLACE_DATA_DIR": "data_dir",
    "PAYMENT_GATEWAY_URL": "payment_gateway_url",
    "PAYMENT_GATEWAY_KEY": "payment_gateway_key",
    "APP_BASE_URL": "app_base_url",
    "ADMIN_REGISTRATION_KEY": "admin_registration_key",
    "CURRENCY": "currency",
}


@dataclass
class Settings:
    """Deployment settings for the marketplace services."""
    data_dir: Path = field(default_factory=lambda: DEFAULT_DATA_DIR)
    payment_gateway_url: Optional[str] = None
    payment_gateway_key: Optional[str] = None
    app_base_url: str = "http://localhost:5173"
    admin_registration_key: str = DEFAULT_ADMIN_KEY
    currency: str = "ZAR"

    def __post_init__(self):
        self.data_dir = Path(self.data_dir)

    @property
    def payment_configured(self) -> bool:
        """Whether a real payment gateway is available."""
        return bool(self.payment_gateway_url)

    @property
    def return_url(self) -> str:
        return f"{self.app_base_url.rstrip('/')}/payments/success"

    @property
    def cancel_url(self) -> str:
        return f"{self.app_base_url.rstrip('/')}/payments/cancelled"


def load_settings(config_path: Optional[Path] = None, environ: Optional[dict] = None) -> Settings:
    """
    Build settings from a YAML file overlaid by environment variables.

    The YAML path comes from the argument or ``MARKETPLACE_CONFIG``. Unknown
    keys in the file are ignored. Empty environment values count as unset.
    """
    environ = os.environ if environ is None else environ
    values = {}

    path = config_path or environ.get("MARKETPLACE_CONFIG")
    if path:
        with open(path) as f:
            loaded = yaml.safe_load(f) or {}
        known = {f.name for f in fields(Settings)}
        values.update({k: v for k, v in loaded.items() if k in known})

    for env_name, attr in ENV_OVERRIDES.items():
        if environ.get(env_name):
            values[attr] = environ[env_name]

    return Settings(**values)
