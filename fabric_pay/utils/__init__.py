"""
Utility modules for the Fabric gateway integration
"""
from .config_loader import GatewaySettings, load_gateway_settings, safe_settings, validate_settings
from .nonce import create_merchant_order_id, create_nonce, create_timestamp

__all__ = [
    'GatewaySettings',
    'load_gateway_settings',
    'safe_settings',
    'validate_settings',
    'create_merchant_order_id',
    'create_nonce',
    'create_timestamp',
]
