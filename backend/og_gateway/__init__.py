"""
OG Inference Gateway backend
"""

__version__ = "0.1.0"
