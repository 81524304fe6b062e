"""
Simulation Package

Simulated fractionalization progress driven by a cancelable asyncio task.
"""

from .simulator import TokenizationSimulator

__all__ = ["TokenizationSimulator"]
