"""Persistence for journey progress."""

from .progress import ProgressStore

__all__ = ['ProgressStore']
