"""
relaysig CLI Commands Package
"""

__all__ = ['event', 'config']
