"""
Stroomwijzer: household electricity usage estimation, bill verification
and Dutch market price comparison.
"""

__version__ = "1.0.0"
