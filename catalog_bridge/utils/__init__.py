"""Utility helpers for the catalog bridge."""

from .response import bridge_error_response, error_response, success_response

__all__ = [
    'success_response',
    'error_response',
    'bridge_error_response',
]
