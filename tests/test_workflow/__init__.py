"""
Tests for the workflow package.

This package contains tests for:
- The synchronous event bus
- The workflow controller state machine
- End-to-end fractionalization scenarios
"""
