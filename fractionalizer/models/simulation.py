"""
Simulation Models

State of a simulated fractionalization run.
"""

from pydantic import Field

from .base import FractionalizerModel, SimulationStatus

PROGRESS_COMPLETE = 100


class SimulationRun(FractionalizerModel):
    """
    Progress of one fractionalization run.

    Progress only ever grows and is clamped at 100. Once the run is
    complete it no longer changes.
    """

    progress: int = Field(default=0, ge=0, le=PROGRESS_COMPLETE)
    status: SimulationStatus = SimulationStatus.IDLE

    @property
    def is_complete(self) -> bool:
        return self.status is SimulationStatus.COMPLETE

    @property
    def is_running(self) -> bool:
        return self.status is SimulationStatus.RUNNING

    def advance(self, step: int) -> bool:
        """
        Move progress forward by step.

        Returns:
            True if this call completed the run, False otherwise
            (including every call made after completion)
        """
        if self.status is not SimulationStatus.RUNNING:
            return False
        self.progress = min(PROGRESS_COMPLETE, self.progress + step)
        if self.progress >= PROGRESS_COMPLETE:
            self.status = SimulationStatus.COMPLETE
            return True
        return False
