"""
Service-level routes (health, readiness).
"""
