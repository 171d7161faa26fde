"""
Tenant Service API v1 Package

All endpoints are prefixed with /api/v1 and render errors as {"error": message}.
"""
