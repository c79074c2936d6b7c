"""
Tenancy Core

Tenant context resolution and isolation enforcement for multi-tenant services.
"""

__version__ = "0.1.0"
