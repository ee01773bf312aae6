"""
Configuration, logging, metrics and auth helpers
"""
