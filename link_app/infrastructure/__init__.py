"""
Cross-cutting infrastructure.
"""
