"""Pydantic models for project files and render snapshots."""

from .project import BlockRecord, CostumeRecord, MonitorRecord, ProjectFile, TargetRecord
from .snapshot import (
    BubbleSnapshot,
    MonitorReading,
    PenLine,
    PenSnapshot,
    RenderSnapshot,
    SpriteSnapshot,
)

__all__ = [
    # project.py
    "BlockRecord",
    "CostumeRecord",
    "MonitorRecord",
    "ProjectFile",
    "TargetRecord",
    # snapshot.py
    "BubbleSnapshot",
    "MonitorReading",
    "PenLine",
    "PenSnapshot",
    "RenderSnapshot",
    "SpriteSnapshot",
]
