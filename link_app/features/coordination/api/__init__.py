"""
HTTP routes for the coordination feature.
"""
