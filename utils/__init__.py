"""Shared configuration and logging helpers"""
from .config import Config
from .logs import configure_logging, mask_token

__all__ = ['Config', 'configure_logging', 'mask_token']
