"""API package for Granola API integration"""
from .client import GranolaAPIClient
from .session import ApiSession, NotAuthenticatedError
from .transport import ApiError, HttpTransport, RetryPolicy

__all__ = [
    'GranolaAPIClient',
    'ApiSession',
    'NotAuthenticatedError',
    'ApiError',
    'HttpTransport',
    'RetryPolicy',
]
