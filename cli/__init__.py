"""CLI package for BiblioPi"""
from .main import cli

__all__ = ['cli']
