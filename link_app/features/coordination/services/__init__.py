"""
Service layer for the coordination feature.
"""
