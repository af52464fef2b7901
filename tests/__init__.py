"""Unit tests for ttsvoicebot.

This package contains test modules for all components of the voice bot.
Tests use pytest with asyncio support; Discord and HTTP calls are mocked or served locally.
"""
