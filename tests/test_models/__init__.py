"""Tests for the workflow data models."""
