"""
issuerctl — install and supervise a self-hosted issuer node.
"""

__version__ = "0.1.0"
