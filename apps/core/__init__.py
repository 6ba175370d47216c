"""
Core application: logging, request tracing, error handling and the DRF
permission glue that enforces endpoint policies.
"""
