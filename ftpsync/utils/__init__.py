"""Utility module for ftpsync.

This module provides cross-cutting utilities:
- Logging: Configured logging with PII redaction
- Validators: Input validation for hosts, ports, paths
- Cancellation: Cooperative cancellation tokens
- Threading: Background task helper for the command line
"""
