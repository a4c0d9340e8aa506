"""
Payload types for the XML and OpenAPI surfaces
"""
