"""
Sheet scale for sheetsig.

Most thresholds are expressed as fractions of the interline (the vertical
distance between two staff lines) or of the main staff line thickness, and are
converted to pixels through the sheet scale.
"""

from pydantic import BaseModel, ConfigDict, Field


class Scale(BaseModel):
    """Interline and staff line thickness of a sheet, in pixels."""
    interline: int = Field(..., gt=0)
    line_thickness: int = Field(default=3, gt=0)

    model_config = ConfigDict(extra="forbid", frozen=True)

    def to_pixels(self, fraction):
        """Convert an interline fraction to a rounded pixel count."""
        return int(round(fraction * self.interline))

    def line_frac_to_pixels(self, fraction):
        """Convert a line thickness fraction to a rounded pixel count."""
        return int(round(fraction * self.line_thickness))

    def pixels_to_frac(self, pixels):
        """Convert pixels to an interline fraction."""
        return pixels / self.interline

    def pixels_to_line_frac(self, pixels):
        """Convert pixels to a line thickness fraction."""
        return pixels / self.line_thickness
