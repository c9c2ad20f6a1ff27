"""
Pydantic models for the render snapshot and monitors.

A snapshot is built between ticks and is read-only for its consumers; the
renderer never feeds state back into the engine through it.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Sprite State
# =============================================================================


class BubbleSnapshot(BaseModel):
    """A say/think speech bubble."""

    model_config = ConfigDict(frozen=True)

    kind: str = Field(..., description="'say' or 'think'")
    text: str = Field(..., description="Bubble text")


class PenSnapshot(BaseModel):
    """Pen state of a sprite."""

    model_config = ConfigDict(frozen=True)

    down: bool = Field(False, description="Whether the pen draws when the sprite moves")
    color: str = Field("#0000ff", description="Pen colour as #rrggbb")
    size: float = Field(1.0, description="Pen diameter")


class SpriteSnapshot(BaseModel):
    """Renderer-facing state of one sprite instance or the stage."""

    model_config = ConfigDict(frozen=True)

    instance_id: str = Field(..., description="Instance id (clones get '<name>#clone-<n>')")
    name: str = Field(..., description="Sprite name")
    is_clone: bool = Field(False, description="True for runtime clones")
    is_stage: bool = Field(False, description="True for the stage")
    x: float = Field(0.0, description="X position")
    y: float = Field(0.0, description="Y position")
    direction: float = Field(90.0, description="Direction in degrees, 90 is right")
    size: float = Field(100.0, description="Size in percent")
    visible: bool = Field(True, description="Shown or hidden")
    costume_index: int = Field(0, description="Index of the current costume")
    costume_name: str = Field("", description="Name of the current costume")
    effects: Dict[str, float] = Field(default_factory=dict, description="Graphic effects")
    bubble: Optional[BubbleSnapshot] = Field(None, description="Speech bubble, if any")
    pen: PenSnapshot = Field(default_factory=PenSnapshot, description="Pen state")
    layer: int = Field(0, description="Draw position, 0 is the back")
    variables: Dict[str, Any] = Field(default_factory=dict, description="Local variables by name")
    lists: Dict[str, List[Any]] = Field(default_factory=dict, description="Local lists by name")
    thread_count: int = Field(0, description="Live threads")


# =============================================================================
# Pen Layer
# =============================================================================


class PenLine(BaseModel):
    """A line segment drawn by a sprite's pen."""

    model_config = ConfigDict(frozen=True)

    instance_id: str = Field(..., description="Sprite that drew the line")
    x0: float
    y0: float
    x1: float
    y1: float
    color: str = Field("#0000ff", description="Pen colour as #rrggbb")
    size: float = Field(1.0, description="Pen diameter")


# =============================================================================
# Render Snapshot
# =============================================================================


class RenderSnapshot(BaseModel):
    """Everything the renderer needs after one tick."""

    model_config = ConfigDict(frozen=True)

    tick: int = Field(..., description="Tick number the snapshot follows")
    timer: float = Field(0.0, description="Sensing timer value in seconds")
    stage: SpriteSnapshot = Field(..., description="Stage state; its variables are the globals")
    sprites: List[SpriteSnapshot] = Field(
        default_factory=list, description="Sprite instances in draw order, back to front"
    )
    pen_lines: List[PenLine] = Field(
        default_factory=list, description="Pen lines drawn during this tick"
    )
    pen_cleared: bool = Field(False, description="True if the pen layer was cleared this tick")

    @property
    def globals(self) -> Dict[str, Any]:
        return self.stage.variables

    def sprite(self, instance_id: str) -> Optional[SpriteSnapshot]:
        """Find a sprite instance by id."""
        for sprite in self.sprites:
            if sprite.instance_id == instance_id:
                return sprite
        return None


class MonitorReading(BaseModel):
    """One monitored variable or list."""

    model_config = ConfigDict(frozen=True)

    owner: str = Field(..., description="Instance id of the owner, 'Stage' for globals")
    name: str = Field(..., description="Variable or list name")
    value: Any = Field(..., description="Current value")


__all__ = [
    "BubbleSnapshot",
    "PenSnapshot",
    "SpriteSnapshot",
    "PenLine",
    "RenderSnapshot",
    "MonitorReading",
]
