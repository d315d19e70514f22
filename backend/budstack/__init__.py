"""
BudStack - multi-tenant storefront platform for medical cannabis dispensaries
"""

__version__ = "1.0.0"
