"""
HTTP surface for the geospatial session
"""
