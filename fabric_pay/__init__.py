"""
Fabric Pay: merchant backend for the Fabric mobile-money payment gateway.
"""

__version__ = "1.0.0"
