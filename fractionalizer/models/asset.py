"""
Asset Models

Reference to the image handed over by the upload widget.
"""

from pydantic import ConfigDict, Field

from .base import FractionalizerModel


class AssetReference(FractionalizerModel):
    """Opaque, immutable handle to an uploaded image (e.g. an object URL)."""

    model_config = ConfigDict(frozen=True)

    locator: str = Field(min_length=1, description="Content locator of the image")
    name: str | None = Field(default=None, description="Original file name, if known")
