"""
api — HTTP surface of the broker (request router, redirects, middleware).
"""
