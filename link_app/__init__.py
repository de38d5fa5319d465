"""
Link coordination service.
"""
