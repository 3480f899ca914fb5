"""
Command-line utilities.
"""

from .price_check_cli import main as price_check_main

__all__ = ["price_check_main"]
