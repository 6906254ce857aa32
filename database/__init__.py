"""
database — SQLAlchemy models and session factory.
"""
