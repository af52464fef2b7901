"""Utility modules for the voice bot.

This package provides utility functions for logging, file handling, string
manipulation and queueing.
"""

from utils.excludable_queue import ExcludableQueue
from utils.file_utils import FileUtils
from utils.logger_utils import LoggerUtils
from utils.string_utils import StringUtils

__all__: list[str] = ["ExcludableQueue", "FileUtils", "LoggerUtils", "StringUtils"]
