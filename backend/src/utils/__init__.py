"""
Utility modules for the clinic scheduler application.

This package contains shared utility functions and helpers used across
the application, currently the clinic-local datetime utilities.
"""

from utils.datetime_utils import clinic_now, parse_date_string, parse_time_string

__all__ = ['clinic_now', 'parse_date_string', 'parse_time_string']
