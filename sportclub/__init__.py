"""
Sport club management backend - Gestionale società sportiva
"""

__version__ = "1.0.0"
