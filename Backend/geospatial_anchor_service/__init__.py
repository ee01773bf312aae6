"""
Geospatial Anchor Service
Localization readiness tracking and bounded anchor history for geospatial AR sessions
"""

__version__ = "1.0.0"
