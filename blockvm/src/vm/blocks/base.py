"""
Block model - immutable block nodes, their input slots and execution outcomes.

Every block kind is a member of the closed BlockKind enumeration whose value
is the Scratch 3 opcode. Behaviour lives in the dispatch tables of
registry.py, one handler per kind.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterator, Mapping, Optional, Tuple, Union

from ..state.value import Value


class BlockKind(str, Enum):
    """Closed set of supported block kinds, valued by opcode."""

    # Events
    EVENT_WHENFLAGCLICKED = "event_whenflagclicked"
    EVENT_WHENBROADCASTRECEIVED = "event_whenbroadcastreceived"
    EVENT_WHENKEYPRESSED = "event_whenkeypressed"
    EVENT_WHENTHISSPRITECLICKED = "event_whenthisspriteclicked"
    EVENT_WHENSTAGECLICKED = "event_whenstageclicked"
    EVENT_BROADCAST = "event_broadcast"
    EVENT_BROADCASTANDWAIT = "event_broadcastandwait"
    EVENT_BROADCAST_MENU = "event_broadcast_menu"

    # Control
    CONTROL_IF = "control_if"
    CONTROL_IF_ELSE = "control_if_else"
    CONTROL_REPEAT = "control_repeat"
    CONTROL_REPEAT_UNTIL = "control_repeat_until"
    CONTROL_WHILE = "control_while"
    CONTROL_FOREVER = "control_forever"
    CONTROL_WAIT = "control_wait"
    CONTROL_WAIT_UNTIL = "control_wait_until"
    CONTROL_STOP = "control_stop"
    CONTROL_START_AS_CLONE = "control_start_as_clone"
    CONTROL_CREATE_CLONE_OF = "control_create_clone_of"
    CONTROL_CREATE_CLONE_OF_MENU = "control_create_clone_of_menu"
    CONTROL_DELETE_THIS_CLONE = "control_delete_this_clone"

    # Data
    DATA_VARIABLE = "data_variable"
    DATA_SETVARIABLETO = "data_setvariableto"
    DATA_CHANGEVARIABLEBY = "data_changevariableby"
    DATA_SHOWVARIABLE = "data_showvariable"
    DATA_HIDEVARIABLE = "data_hidevariable"
    DATA_LISTCONTENTS = "data_listcontents"
    DATA_ADDTOLIST = "data_addtolist"
    DATA_DELETEOFLIST = "data_deleteoflist"
    DATA_DELETEALLOFLIST = "data_deletealloflist"
    DATA_INSERTATLIST = "data_insertatlist"
    DATA_REPLACEITEMOFLIST = "data_replaceitemoflist"
    DATA_ITEMOFLIST = "data_itemoflist"
    DATA_ITEMNUMOFLIST = "data_itemnumoflist"
    DATA_LENGTHOFLIST = "data_lengthoflist"
    DATA_LISTCONTAINSITEM = "data_listcontainsitem"
    DATA_SHOWLIST = "data_showlist"
    DATA_HIDELIST = "data_hidelist"

    # Operators
    OPERATOR_ADD = "operator_add"
    OPERATOR_SUBTRACT = "operator_subtract"
    OPERATOR_MULTIPLY = "operator_multiply"
    OPERATOR_DIVIDE = "operator_divide"
    OPERATOR_RANDOM = "operator_random"
    OPERATOR_LT = "operator_lt"
    OPERATOR_GT = "operator_gt"
    OPERATOR_EQUALS = "operator_equals"
    OPERATOR_AND = "operator_and"
    OPERATOR_OR = "operator_or"
    OPERATOR_NOT = "operator_not"
    OPERATOR_JOIN = "operator_join"
    OPERATOR_LETTER_OF = "operator_letter_of"
    OPERATOR_LENGTH = "operator_length"
    OPERATOR_CONTAINS = "operator_contains"
    OPERATOR_MOD = "operator_mod"
    OPERATOR_ROUND = "operator_round"
    OPERATOR_MATHOP = "operator_mathop"

    # Looks
    LOOKS_SAY = "looks_say"
    LOOKS_SAYFORSECS = "looks_sayforsecs"
    LOOKS_THINK = "looks_think"
    LOOKS_THINKFORSECS = "looks_thinkforsecs"
    LOOKS_SHOW = "looks_show"
    LOOKS_HIDE = "looks_hide"
    LOOKS_SWITCHCOSTUMETO = "looks_switchcostumeto"
    LOOKS_COSTUME = "looks_costume"
    LOOKS_NEXTCOSTUME = "looks_nextcostume"
    LOOKS_COSTUMENUMBERNAME = "looks_costumenumbername"
    LOOKS_CHANGESIZEBY = "looks_changesizeby"
    LOOKS_SETSIZETO = "looks_setsizeto"
    LOOKS_SIZE = "looks_size"
    LOOKS_SETEFFECTTO = "looks_seteffectto"
    LOOKS_CHANGEEFFECTBY = "looks_changeeffectby"
    LOOKS_CLEARGRAPHICEFFECTS = "looks_cleargraphiceffects"
    LOOKS_GOTOFRONTBACK = "looks_gotofrontback"
    LOOKS_GOFORWARDBACKWARDLAYERS = "looks_goforwardbackwardlayers"

    # Motion
    MOTION_MOVESTEPS = "motion_movesteps"
    MOTION_TURNRIGHT = "motion_turnright"
    MOTION_TURNLEFT = "motion_turnleft"
    MOTION_POINTINDIRECTION = "motion_pointindirection"
    MOTION_GOTOXY = "motion_gotoxy"
    MOTION_GLIDESECSTOXY = "motion_glidesecstoxy"
    MOTION_CHANGEXBY = "motion_changexby"
    MOTION_CHANGEYBY = "motion_changeyby"
    MOTION_SETX = "motion_setx"
    MOTION_SETY = "motion_sety"
    MOTION_XPOSITION = "motion_xposition"
    MOTION_YPOSITION = "motion_yposition"
    MOTION_DIRECTION = "motion_direction"

    # Sensing
    SENSING_KEYPRESSED = "sensing_keypressed"
    SENSING_KEYOPTIONS = "sensing_keyoptions"
    SENSING_MOUSEDOWN = "sensing_mousedown"
    SENSING_MOUSEX = "sensing_mousex"
    SENSING_MOUSEY = "sensing_mousey"
    SENSING_TIMER = "sensing_timer"
    SENSING_RESETTIMER = "sensing_resettimer"

    # Pen
    PEN_PENDOWN = "pen_penDown"
    PEN_PENUP = "pen_penUp"
    PEN_CLEAR = "pen_clear"
    PEN_SETPENSIZETO = "pen_setPenSizeTo"
    PEN_CHANGEPENSIZEBY = "pen_changePenSizeBy"
    PEN_SETPENCOLORTOCOLOR = "pen_setPenColorToColor"
    PEN_SETPENSHADETONUMBER = "pen_setPenShadeToNumber"
    PEN_SETPENHUETONUMBER = "pen_setPenHueToNumber"

    @property
    def category(self) -> str:
        return self.value.split("_", 1)[0]

    def is_hat(self) -> bool:
        return self in HAT_KINDS

    def is_reporter(self) -> bool:
        return self in REPORTER_KINDS

    def is_stack(self) -> bool:
        return not (self.is_hat() or self.is_reporter())

    @classmethod
    def from_opcode(cls, opcode: str) -> Optional["BlockKind"]:
        """Look up a kind by opcode, or None if unsupported."""
        try:
            return cls(opcode)
        except ValueError:
            return None


HAT_KINDS: FrozenSet[BlockKind] = frozenset({
    BlockKind.EVENT_WHENFLAGCLICKED,
    BlockKind.EVENT_WHENBROADCASTRECEIVED,
    BlockKind.EVENT_WHENKEYPRESSED,
    BlockKind.EVENT_WHENTHISSPRITECLICKED,
    BlockKind.EVENT_WHENSTAGECLICKED,
    BlockKind.CONTROL_START_AS_CLONE,
})

REPORTER_KINDS: FrozenSet[BlockKind] = frozenset({
    BlockKind.EVENT_BROADCAST_MENU,
    BlockKind.CONTROL_CREATE_CLONE_OF_MENU,
    BlockKind.DATA_VARIABLE,
    BlockKind.DATA_LISTCONTENTS,
    BlockKind.DATA_ITEMOFLIST,
    BlockKind.DATA_ITEMNUMOFLIST,
    BlockKind.DATA_LENGTHOFLIST,
    BlockKind.DATA_LISTCONTAINSITEM,
    BlockKind.OPERATOR_ADD,
    BlockKind.OPERATOR_SUBTRACT,
    BlockKind.OPERATOR_MULTIPLY,
    BlockKind.OPERATOR_DIVIDE,
    BlockKind.OPERATOR_RANDOM,
    BlockKind.OPERATOR_LT,
    BlockKind.OPERATOR_GT,
    BlockKind.OPERATOR_EQUALS,
    BlockKind.OPERATOR_AND,
    BlockKind.OPERATOR_OR,
    BlockKind.OPERATOR_NOT,
    BlockKind.OPERATOR_JOIN,
    BlockKind.OPERATOR_LETTER_OF,
    BlockKind.OPERATOR_LENGTH,
    BlockKind.OPERATOR_CONTAINS,
    BlockKind.OPERATOR_MOD,
    BlockKind.OPERATOR_ROUND,
    BlockKind.OPERATOR_MATHOP,
    BlockKind.LOOKS_COSTUME,
    BlockKind.LOOKS_COSTUMENUMBERNAME,
    BlockKind.LOOKS_SIZE,
    BlockKind.MOTION_XPOSITION,
    BlockKind.MOTION_YPOSITION,
    BlockKind.MOTION_DIRECTION,
    BlockKind.SENSING_KEYPRESSED,
    BlockKind.SENSING_KEYOPTIONS,
    BlockKind.SENSING_MOUSEDOWN,
    BlockKind.SENSING_MOUSEX,
    BlockKind.SENSING_MOUSEY,
    BlockKind.SENSING_TIMER,
})


# =============================================================================
# Input Slots
# =============================================================================


@dataclass(frozen=True)
class Literal:
    """A constant input value."""

    value: Value


@dataclass(frozen=True)
class BlockRef:
    """An input filled by a nested reporter block."""

    block_id: str


@dataclass(frozen=True)
class VariableRef:
    """An input reading a variable directly."""

    var_id: str
    name: str = ""


@dataclass(frozen=True)
class ListRef:
    """An input reading a list's contents directly."""

    list_id: str
    name: str = ""


Input = Union[Literal, BlockRef, VariableRef, ListRef]


def as_input(value: Any) -> Input:
    """Wrap a plain value in a Literal, passing slot objects through."""
    if isinstance(value, (Literal, BlockRef, VariableRef, ListRef)):
        return value
    return Literal(value)


# =============================================================================
# Block
# =============================================================================


@dataclass(frozen=True, eq=False)
class Block:
    """
    One node of a block graph.

    Attributes:
        id: BlockID, unique within its graph.
        kind: BlockKind of the node.
        next: BlockID of the following block in the stack, or None.
        inputs: Input slots by name (e.g. "TIMES", "CONDITION").
        fields: Static configuration by name (e.g. "VARIABLE", "OPERATOR").
        branches: Nested stack heads by name ("SUBSTACK", "SUBSTACK2").
    """

    id: str
    kind: BlockKind
    next: Optional[str] = None
    inputs: Mapping[str, Input] = field(default_factory=dict)
    fields: Mapping[str, str] = field(default_factory=dict)
    branches: Mapping[str, Optional[str]] = field(default_factory=dict)

    def links(self) -> Iterator[Tuple[str, str]]:
        """Yield (slot description, target BlockID) for every outgoing link."""
        if self.next is not None:
            yield "next", self.next
        for name, slot in self.inputs.items():
            if isinstance(slot, BlockRef):
                yield f"input {name}", slot.block_id
        for name, target in self.branches.items():
            if target is not None:
                yield f"branch {name}", target

    def get_field(self, name: str, default: str = "") -> str:
        return self.fields.get(name, default)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "next": self.next,
            "inputs": {name: repr(slot) for name, slot in self.inputs.items()},
            "fields": dict(self.fields),
            "branches": dict(self.branches),
        }


# =============================================================================
# Outcome
# =============================================================================


class OutcomeKind(str, Enum):
    """What a stack block asks the thread to do next."""

    ADVANCE = "advance"
    BRANCH = "branch"
    SUSPEND = "suspend"
    TERMINATE = "terminate"


@dataclass(frozen=True)
class Outcome:
    """
    Result of executing a stack block.

    Attributes:
        kind: OutcomeKind.
        target: First BlockID of the branch to enter (BRANCH only, may be None
            for an empty branch).
        loop: True if the pushed frame is a loop frame; finishing the branch
            then yields before the loop block runs again.
        state: Per-frame state handed back to the block on re-entry (e.g.
            remaining repeat count).
    """

    kind: OutcomeKind
    target: Optional[str] = None
    loop: bool = False
    state: Any = None

    @classmethod
    def advance(cls) -> "Outcome":
        return _ADVANCE

    @classmethod
    def branch(
        cls, target: Optional[str], loop: bool = False, state: Any = None
    ) -> "Outcome":
        return cls(OutcomeKind.BRANCH, target=target, loop=loop, state=state)

    @classmethod
    def suspend(cls) -> "Outcome":
        return _SUSPEND

    @classmethod
    def terminate(cls) -> "Outcome":
        return _TERMINATE


_ADVANCE = Outcome(OutcomeKind.ADVANCE)
_SUSPEND = Outcome(OutcomeKind.SUSPEND)
_TERMINATE = Outcome(OutcomeKind.TERMINATE)


__all__ = [
    "BlockKind",
    "HAT_KINDS",
    "REPORTER_KINDS",
    "Literal",
    "BlockRef",
    "VariableRef",
    "ListRef",
    "Input",
    "as_input",
    "Block",
    "OutcomeKind",
    "Outcome",
]
