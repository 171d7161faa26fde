"""
Tenant Service API v1 Endpoints Package

Endpoints:
    - companies.py: Company database lifecycle endpoints
"""
