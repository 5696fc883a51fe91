"""
Configuration loader for the Fabric gateway integration.

Settings come from three layers, later layers winning:
1. model defaults
2. an optional YAML file (config/gateway_config.yml or FABRIC_CONFIG_PATH)
3. environment variables (a local .env file is loaded first)
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent / "config" / "gateway_config.yml"

# setting name -> environment variable
_ENV_MAP: Dict[str, str] = {
    "base_url": "FABRIC_BASE_URL",
    "fabric_app_id": "FABRIC_APP_ID",
    "app_secret": "FABRIC_APP_SECRET",
    "merchant_app_id": "MERCHANT_APP_ID",
    "merchant_code": "MERCHANT_CODE",
    "private_key": "PRIVATE_KEY",
    "public_key": "PUBLIC_KEY",
    "api_timeout_seconds": "API_TIMEOUT",
    "currency": "CURRENCY",
    "order_timeout": "ORDER_TIMEOUT",
    "payee_identifier": "PAYEE_IDENTIFIER",
    "payee_identifier_type": "PAYEE_IDENTIFIER_TYPE",
    "payee_type": "PAYEE_TYPE",
    "mandate_template_id": "MANDATE_TEMPLATE_ID",
    "mandate_execute_time": "MANDATE_EXECUTE_TIME",
    "notify_url": "NOTIFY_URL",
    "redirect_url": "REDIRECT_URL",
    "allowed_origins": "ALLOWED_ORIGINS",
    "enable_debug_logging": "ENABLE_DEBUG_LOGGING",
    "env": "APP_ENV",
    "integrations_mode": "INTEGRATIONS_MODE",
}

_SECRET_FIELDS = {"app_secret", "private_key", "public_key"}


class GatewaySettings(BaseModel):
    """Fabric gateway and merchant configuration"""

    base_url: str = "https://developerportal.ethiotelebirr.et:38443/apiaccess/payment/gateway"
    fabric_app_id: str = ""
    app_secret: str = ""
    merchant_app_id: str = ""
    merchant_code: str = ""
    private_key: str = ""
    public_key: str = ""
    api_timeout_seconds: float = Field(default=30.0, gt=0, le=300)

    currency: str = "ETB"
    order_timeout: str = "120m"
    payee_identifier: str = ""
    payee_identifier_type: str = "04"
    payee_type: str = "5000"
    mandate_template_id: str = "103001"
    mandate_execute_time: Optional[str] = None
    notify_url: str = ""
    redirect_url: str = ""

    allowed_origins: List[str] = Field(default_factory=lambda: ["*"])
    enable_debug_logging: bool = False
    env: str = "development"
    integrations_mode: str = "real"

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @field_validator("integrations_mode")
    @classmethod
    def _check_mode(cls, value: str) -> str:
        mode = value.strip().lower()
        if mode not in {"real", "mock"}:
            raise ValueError("integrations_mode must be 'real' or 'mock'")
        return mode

    @property
    def payee(self) -> str:
        return self.payee_identifier or self.merchant_code

    @property
    def is_production(self) -> bool:
        return self.env.lower() == "production"


def _env_overrides() -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    for field_name, env_var in _ENV_MAP.items():
        value = os.getenv(env_var)
        if value is None or value == "":
            continue
        if field_name == "api_timeout_seconds":
            # API_TIMEOUT is expressed in milliseconds
            overrides[field_name] = float(value) / 1000.0
        elif field_name == "enable_debug_logging":
            overrides[field_name] = value.strip().lower() in ("1", "true", "yes")
        else:
            overrides[field_name] = value
    return overrides


def load_gateway_settings(config_path: Optional[Path] = None) -> GatewaySettings:
    """
    Load and validate gateway settings.

    Args:
        config_path: YAML file to read. Defaults to FABRIC_CONFIG_PATH, then
            config/gateway_config.yml. A missing file is not an error.

    Raises:
        ValidationError: If the merged settings don't match the schema
    """
    load_dotenv()

    if config_path is None:
        env_path = os.getenv("FABRIC_CONFIG_PATH")
        config_path = Path(env_path) if env_path else DEFAULT_CONFIG_PATH

    file_data: Dict[str, Any] = {}
    if config_path.exists():
        with open(config_path, "r", encoding="utf-8") as f:
            file_data = yaml.safe_load(f) or {}
        logger.info("Loaded gateway config from %s", config_path)

    merged = {**file_data, **_env_overrides()}
    if "enable_debug_logging" not in merged and str(merged.get("env", "development")).lower() == "development":
        merged["enable_debug_logging"] = True

    try:
        return GatewaySettings(**merged)
    except ValidationError as e:
        logger.error("Gateway config validation failed: %s", e)
        raise


def validate_settings(settings: GatewaySettings) -> Dict[str, Any]:
    """Return blocking errors and advisory warnings for ``settings``."""
    errors: List[str] = []
    warnings: List[str] = []

    if not settings.base_url or "example.com" in settings.base_url:
        errors.append("base_url is not configured or is using example URL")
    if not settings.fabric_app_id:
        errors.append("fabric_app_id is not properly configured")
    if not settings.app_secret:
        errors.append("app_secret is not properly configured")
    if not settings.merchant_app_id:
        errors.append("merchant_app_id is not properly configured")
    if not settings.merchant_code:
        errors.append("merchant_code is not properly configured")
    if not settings.private_key:
        errors.append("private_key is not properly configured")

    if settings.is_production and settings.enable_debug_logging:
        warnings.append("Debug logging is enabled in production environment")
    if settings.is_production and "*" in settings.allowed_origins:
        warnings.append("CORS is configured to allow all origins in production")
    if settings.is_production and not settings.public_key:
        warnings.append("Public key is not configured for signature verification")

    return {"is_valid": not errors, "errors": errors, "warnings": warnings, "environment": settings.env}


def safe_settings(settings: GatewaySettings) -> Dict[str, Any]:
    """Settings as a dict with secrets removed and identifiers masked."""
    data = settings.model_dump(exclude=_SECRET_FIELDS)
    if data.get("fabric_app_id"):
        data["fabric_app_id"] = f"{data['fabric_app_id'][:8]}..."
    if data.get("merchant_app_id"):
        data["merchant_app_id"] = f"{data['merchant_app_id'][:8]}..."
    if data.get("merchant_code"):
        data["merchant_code"] = f"{data['merchant_code'][:4]}..."
    return data


def log_configuration(settings: GatewaySettings) -> None:
    report = validate_settings(settings)
    logger.info("Gateway configuration: %s", safe_settings(settings))
    for error in report["errors"]:
        logger.error("Configuration error: %s", error)
    for warning in report["warnings"]:
        logger.warning("Configuration warning: %s", warning)
