"""
An asyncio implementation of the Maildir message store convention.
"""

__version__ = "1.0.0"
