"""
Discord adapter for the verification engine.
"""

from .client import NanoBot

__all__ = ['NanoBot']
