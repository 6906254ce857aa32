"""
config — environment settings and per-client configuration views.
"""
