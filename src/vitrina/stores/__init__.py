"""Persistence boundaries.

Each store wraps one backend and converts driver errors into
StoreUnavailable so callers never see SQLAlchemy exceptions.
"""
