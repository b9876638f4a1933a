"""
State Module - Shared server state

Exports:
- AppState: cache, counters and active chapter progress
"""

from .app_state import AppState

__all__ = ['AppState']
