"""Tests for the simulated fractionalization driver."""
