"""Core domain package for tokenscope.

Core contains extraction, merging, scoring and the update queue without any
Telegram or storage-specific code, keeping the business logic portable.
"""
