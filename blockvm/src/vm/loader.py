"""
Project loader - turns a Scratch 3 project into SpriteDefinitions.

Accepts a project.json file, an .sb3 archive containing one, or an already
parsed dict. The file is validated with the pydantic models in
models.project, then each target's blocks table is converted into a
BlockGraph. Graph construction performs the structural checks, so a
project that loads is safe to run.

Usage:
    >>> vm = load_vm("game.sb3")
    >>> vm.start()
    >>> vm.run(max_ticks=300)
"""

import json
import logging
import zipfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Union

from pydantic import ValidationError

from ..models.project import BlockRecord, ProjectFile, TargetRecord
from ..services.config import EngineConfig
from .blocks.base import Block, BlockKind, BlockRef, Input, ListRef, Literal, VariableRef
from .core.graph import BlockGraph
from .core.machine import VM, Clock, Renderer
from .core.sprite import SpriteDefinition
from .state.base import ProjectLoadError


logger = logging.getLogger(__name__)

PROJECT_JSON = "project.json"

# Inputs holding nested stacks rather than reporters
BRANCH_INPUTS = ("SUBSTACK", "SUBSTACK2")

# Fields whose value is resolved by id rather than by display name
ID_FIELDS = ("VARIABLE", "LIST")

# Primitive type codes inside input arrays
NUMBER_PRIMITIVES = frozenset({4, 5, 6, 7, 8})
COLOR_PRIMITIVE = 9
TEXT_PRIMITIVE = 10
BROADCAST_PRIMITIVE = 11
VARIABLE_PRIMITIVE = 12
LIST_PRIMITIVE = 13


# =============================================================================
# Reading
# =============================================================================


def read_project_file(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Read raw project data from a project.json or an .sb3 archive.

    Raises:
        ProjectLoadError: E1101 if the file is missing, not JSON, or an
            archive without project.json.
    """
    path = Path(path)
    try:
        if zipfile.is_zipfile(path):
            with zipfile.ZipFile(path) as archive:
                if PROJECT_JSON not in archive.namelist():
                    raise ProjectLoadError(
                        "E1101", f"Archive has no {PROJECT_JSON}", str(path)
                    )
                raw = archive.read(PROJECT_JSON)
        else:
            raw = path.read_bytes()
        data = json.loads(raw)
    except (OSError, zipfile.BadZipFile, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ProjectLoadError("E1101", f"Cannot read project: {e}", str(path)) from e

    if not isinstance(data, dict):
        raise ProjectLoadError("E1101", "Project root must be an object", str(path))
    return data


def parse_project(data: Dict[str, Any], source: str = "<memory>") -> ProjectFile:
    """Validate raw project data against the project models."""
    try:
        return ProjectFile.model_validate(data)
    except ValidationError as e:
        raise ProjectLoadError(
            "E1101", f"Invalid project ({e.error_count()} errors): {e}", source
        ) from e


# =============================================================================
# Conversion
# =============================================================================


def convert_input(block_id: str, name: str, raw: List[Any], source: str = "") -> Optional[Input]:
    """
    Convert one input array to an input slot.

    Returns None for empty slots (e.g. an unfilled boolean input).
    """
    if len(raw) < 2 or raw[1] is None:
        return None
    value = raw[1]
    if isinstance(value, str):
        return BlockRef(value)
    if not isinstance(value, list) or not value:
        raise ProjectLoadError(
            "E1101", f"Block '{block_id}' input {name} is malformed: {raw!r}", source
        )

    kind = value[0]
    if kind in NUMBER_PRIMITIVES or kind in (COLOR_PRIMITIVE, TEXT_PRIMITIVE):
        return Literal(value[1] if len(value) > 1 else "")
    if kind == BROADCAST_PRIMITIVE:
        return Literal(value[1])
    if kind == VARIABLE_PRIMITIVE:
        return VariableRef(var_id=value[2], name=value[1])
    if kind == LIST_PRIMITIVE:
        return ListRef(list_id=value[2], name=value[1])
    raise ProjectLoadError(
        "E1101", f"Block '{block_id}' input {name} has unknown primitive type {kind!r}", source
    )


def convert_block(block_id: str, record: BlockRecord, source: str = "") -> Block:
    """Convert a blocks-table record into a Block.

    Raises:
        ProjectLoadError: E1102 for opcodes this runtime does not support.
    """
    kind = BlockKind.from_opcode(record.opcode)
    if kind is None:
        raise ProjectLoadError(
            "E1102", f"Unsupported opcode '{record.opcode}' (block '{block_id}')", source
        )

    inputs: Dict[str, Input] = {}
    branches: Dict[str, Optional[str]] = {}
    for name, raw in record.inputs.items():
        if name in BRANCH_INPUTS:
            target = raw[1] if len(raw) > 1 else None
            branches[name] = target if isinstance(target, str) else None
            continue
        slot = convert_input(block_id, name, raw, source)
        if slot is not None:
            inputs[name] = slot

    fields: Dict[str, str] = {}
    for name, raw in record.fields.items():
        if not raw:
            continue
        if name in ID_FIELDS and len(raw) > 1 and raw[1]:
            fields[name] = str(raw[1])
        else:
            fields[name] = str(raw[0])

    return Block(
        id=block_id,
        kind=kind,
        next=record.next,
        inputs=inputs,
        fields=fields,
        branches=branches,
    )


def build_definition(
    target: TargetRecord, monitored: Optional[Set[str]] = None, source: str = ""
) -> SpriteDefinition:
    """Build the SpriteDefinition for one target (graph validated here)."""
    origin = f"{source}:{target.name}" if source else target.name
    blocks = [
        convert_block(block_id, record, origin)
        for block_id, record in target.block_records().items()
    ]
    graph = BlockGraph(blocks)

    variables = {
        var_id: (entry[0], entry[1]) for var_id, entry in target.variables.items()
    }
    lists = {
        list_id: (entry[0], list(entry[1]) if isinstance(entry[1], list) else [])
        for list_id, entry in target.lists.items()
    }
    declared = set(variables) | set(lists)

    costumes = [costume.name for costume in target.costumes]
    current = target.current_costume if target.current_costume < len(costumes) else 0

    return SpriteDefinition(
        name=target.name,
        graph=graph,
        is_stage=target.is_stage,
        variables=variables,
        lists=lists,
        monitored={item for item in (monitored or set()) if item in declared},
        costumes=costumes,
        current_costume=current,
        x=target.x,
        y=target.y,
        direction=target.direction,
        size=target.size,
        visible=target.visible,
        layer_order=target.layer_order,
    )


# =============================================================================
# Entry points
# =============================================================================


def load_definitions(
    project: Union[str, Path, Dict[str, Any]],
) -> List[SpriteDefinition]:
    """
    Load every target of a project.

    Args:
        project: Path to project.json / .sb3, or parsed project data.

    Raises:
        ProjectLoadError: Unreadable or invalid file (E1101), unsupported
            opcode (E1102), duplicate target names (E1101).
        GraphConstructionError: Structural faults in a target's blocks.
    """
    if isinstance(project, dict):
        source = "<memory>"
        data = project
    else:
        source = str(project)
        data = read_project_file(project)

    parsed = parse_project(data, source)
    monitored = parsed.monitored_ids()

    names: Set[str] = set()
    definitions: List[SpriteDefinition] = []
    for target in parsed.targets:
        if target.name in names:
            raise ProjectLoadError("E1101", f"Duplicate target name '{target.name}'", source)
        names.add(target.name)
        definitions.append(build_definition(target, monitored, source))

    logger.info(
        f"Loaded {len(definitions)} targets "
        f"({sum(len(d.graph) for d in definitions)} blocks) from {source}"
    )
    return definitions


def load_vm(
    project: Union[str, Path, Dict[str, Any]],
    config: Optional[EngineConfig] = None,
    clock: Optional[Clock] = None,
    renderer: Optional[Renderer] = None,
) -> VM:
    """Load a project and build a VM ready for start()."""
    return VM.from_definitions(
        load_definitions(project), config=config, clock=clock, renderer=renderer
    )


__all__ = [
    "PROJECT_JSON",
    "read_project_file",
    "parse_project",
    "convert_input",
    "convert_block",
    "build_definition",
    "load_definitions",
    "load_vm",
]
