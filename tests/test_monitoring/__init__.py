"""Tests for logging configuration."""
