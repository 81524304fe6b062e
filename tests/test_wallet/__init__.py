"""Tests for the wallet connector and provider interfaces."""
