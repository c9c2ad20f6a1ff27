"""Pydantic models for the Scratch 3 project.json format.

Only the parts the VM interprets are modelled; everything else in the file
(sounds, comments, extension metadata) is ignored on validation.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class BlockRecord(BaseModel):
    """One entry of a target's blocks table."""

    model_config = ConfigDict(populate_by_name=True)

    opcode: str = Field(..., description="Block opcode, e.g. 'looks_say'")
    next: Optional[str] = Field(None, description="Id of the next block in the stack")
    parent: Optional[str] = Field(None, description="Id of the enclosing block")
    inputs: Dict[str, List[Any]] = Field(
        default_factory=dict,
        description="Input slots as [shadow_type, value, obscured?]",
    )
    fields: Dict[str, List[Any]] = Field(
        default_factory=dict, description="Fields as [value, id?]"
    )
    shadow: bool = Field(False, description="True for menu/shadow blocks")
    top_level: bool = Field(False, alias="topLevel", description="True for script heads")


class CostumeRecord(BaseModel):
    name: str = Field(..., description="Costume name")


class TargetRecord(BaseModel):
    """A sprite or the stage."""

    model_config = ConfigDict(populate_by_name=True)

    is_stage: bool = Field(False, alias="isStage")
    name: str = Field(..., min_length=1, description="Target name, unique per project")
    variables: Dict[str, List[Any]] = Field(
        default_factory=dict, description="Variable id -> [name, value, cloud?]"
    )
    lists: Dict[str, List[Any]] = Field(
        default_factory=dict, description="List id -> [name, [items]]"
    )
    broadcasts: Dict[str, str] = Field(default_factory=dict, description="Broadcast id -> name")
    # Top-level primitives (loose variable reporters) are stored as arrays
    blocks: Dict[str, Union[BlockRecord, List[Any]]] = Field(default_factory=dict)
    costumes: List[CostumeRecord] = Field(default_factory=list)
    current_costume: int = Field(0, alias="currentCostume", ge=0)
    x: float = 0.0
    y: float = 0.0
    direction: float = 90.0
    size: float = 100.0
    visible: bool = True
    layer_order: int = Field(0, alias="layerOrder")

    @field_validator("variables", "lists")
    @classmethod
    def validate_entries(cls, value: Dict[str, List[Any]]) -> Dict[str, List[Any]]:
        for entry_id, entry in value.items():
            if len(entry) < 2 or not isinstance(entry[0], str):
                raise ValueError(f"Entry '{entry_id}' must be [name, value, ...]")
        return value

    def block_records(self) -> Dict[str, BlockRecord]:
        return {
            block_id: record
            for block_id, record in self.blocks.items()
            if isinstance(record, BlockRecord)
        }


class MonitorRecord(BaseModel):
    """An on-stage variable or list monitor."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Monitored variable or list id")
    opcode: str = Field("data_variable", description="'data_variable' or 'data_listcontents'")
    params: Dict[str, Any] = Field(default_factory=dict)
    sprite_name: Optional[str] = Field(None, alias="spriteName")
    visible: bool = True


class ProjectFile(BaseModel):
    """Top level of project.json."""

    targets: List[TargetRecord] = Field(..., min_length=1)
    monitors: List[MonitorRecord] = Field(default_factory=list)
    extensions: List[str] = Field(default_factory=list)
    meta: Dict[str, Any] = Field(default_factory=dict)

    @property
    def stage(self) -> Optional[TargetRecord]:
        for target in self.targets:
            if target.is_stage:
                return target
        return None

    def monitored_ids(self) -> set:
        """Ids of variables and lists with a visible monitor."""
        return {monitor.id for monitor in self.monitors if monitor.visible}


__all__ = [
    "BlockRecord",
    "CostumeRecord",
    "TargetRecord",
    "MonitorRecord",
    "ProjectFile",
]
