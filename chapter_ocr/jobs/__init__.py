"""
Jobs Module - Chapter pre-processing

Exports:
- ChapterJobScheduler: starts chapter jobs and reports their status
"""

from .chapter_job_scheduler import ChapterJobScheduler, STARTED, ALREADY_PROCESSING

__all__ = [
    'ChapterJobScheduler',
    'STARTED',
    'ALREADY_PROCESSING'
]
