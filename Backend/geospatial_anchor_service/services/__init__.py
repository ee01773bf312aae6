"""
Persistence backends
"""
