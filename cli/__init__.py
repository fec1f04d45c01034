"""CLI package for Book Tracker"""
from .main import cli

__all__ = ['cli']
