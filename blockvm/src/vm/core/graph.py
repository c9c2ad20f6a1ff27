"""
BlockGraph - validated, immutable mapping of BlockID to Block.

Construction is where structural faults surface: every link must resolve
inside the graph, stored links must be acyclic, and each link must point
at the right kind of block. A graph that constructs is safe to interpret.
"""

import logging
from collections import deque
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Set, Tuple, Union

from ..blocks.base import Block, BlockKind
from ..state.base import (
    make_cycle_error,
    make_dangling_reference_error,
    make_link_kind_error,
    make_unknown_kind_error,
)


logger = logging.getLogger(__name__)


class BlockGraph:
    """
    Arena of blocks addressed by BlockID.

    Invariants:
    - Every next, input and branch link resolves within this graph
    - Stored links are acyclic; loops happen only through the thread's frame stack
    - Input links point at reporters; next and branch links point at stack blocks
    - Every hat id names a hat block

    Graphs are never mutated after construction, so one graph can back
    any number of threads and clones.

    Example:
        >>> graph = BlockGraph([hat, say], hats=["hat"])
        >>> script = graph.subgraph("hat")
        >>> script.get("say").kind
        <BlockKind.LOOKS_SAY: 'looks_say'>
    """

    def __init__(
        self,
        blocks: Union[Mapping[str, Block], Iterable[Block]],
        hats: Optional[Iterable[str]] = None,
        _validate: bool = True,
    ) -> None:
        """
        Build and validate a graph.

        Args:
            blocks: Blocks, either as a mapping by id or an iterable.
            hats: Entry-point hat ids. Defaults to every hat-kind block.

        Raises:
            GraphConstructionError: On dangling links (E1001), cycles (E1002),
                unknown kinds (E1003) or link-kind misuse (E1004).
        """
        if isinstance(blocks, Mapping):
            self._blocks: Dict[str, Block] = dict(blocks)
        else:
            self._blocks = {block.id: block for block in blocks}

        if hats is None:
            self._hats: Tuple[str, ...] = tuple(
                block.id for block in self._blocks.values()
                if isinstance(block.kind, BlockKind) and block.kind.is_hat()
            )
        else:
            self._hats = tuple(hats)

        if _validate:
            self._validate()

    # =========================================================================
    # Validation
    # =========================================================================

    def _validate(self) -> None:
        for block in self._blocks.values():
            if not isinstance(block.kind, BlockKind):
                raise make_unknown_kind_error(block.id, block.kind)

        for block in self._blocks.values():
            self._validate_links(block)

        for hat_id in self._hats:
            hat = self._blocks.get(hat_id)
            if hat is None:
                raise make_dangling_reference_error("<graph>", "hat list", hat_id)
            if not hat.kind.is_hat():
                raise make_link_kind_error(hat_id, f"is listed as a hat but is {hat.kind.value}")

        self._check_acyclic()

    def _validate_links(self, block: Block) -> None:
        for slot, target_id in block.links():
            target = self._blocks.get(target_id)
            if target is None:
                raise make_dangling_reference_error(block.id, slot, target_id)
            if slot.startswith("input"):
                if not target.kind.is_reporter():
                    raise make_link_kind_error(
                        block.id, f"{slot} must reference a reporter, got {target.kind.value}"
                    )
            elif not target.kind.is_stack():
                raise make_link_kind_error(
                    block.id, f"{slot} must reference a stack block, got {target.kind.value}"
                )

    def _check_acyclic(self) -> None:
        """Iterative three-colour DFS over every stored link."""
        visiting: Set[str] = set()
        done: Set[str] = set()

        for root in self._blocks:
            if root in done:
                continue
            stack: List[Tuple[str, Iterator[Tuple[str, str]]]] = [
                (root, self._blocks[root].links())
            ]
            visiting.add(root)
            while stack:
                block_id, links = stack[-1]
                for _, target in links:
                    if target in visiting:
                        raise make_cycle_error(target)
                    if target not in done:
                        visiting.add(target)
                        stack.append((target, self._blocks[target].links()))
                        break
                else:
                    stack.pop()
                    visiting.discard(block_id)
                    done.add(block_id)

    # =========================================================================
    # Lookup
    # =========================================================================

    def get(self, block_id: str) -> Block:
        """Look up a block, raising KeyError if absent."""
        return self._blocks[block_id]

    def find(self, block_id: Optional[str]) -> Optional[Block]:
        if block_id is None:
            return None
        return self._blocks.get(block_id)

    def __contains__(self, block_id: object) -> bool:
        return block_id in self._blocks

    def __len__(self) -> int:
        return len(self._blocks)

    def __iter__(self) -> Iterator[Block]:
        return iter(self._blocks.values())

    @property
    def hats(self) -> Tuple[str, ...]:
        return self._hats

    def hat_blocks(self) -> List[Block]:
        return [self._blocks[hat_id] for hat_id in self._hats]

    def reachable(self, start_id: str) -> Set[str]:
        """BlockIDs reachable from a block through any link, start included."""
        seen = {start_id}
        queue = deque([start_id])
        while queue:
            for _, target in self._blocks[queue.popleft()].links():
                if target not in seen:
                    seen.add(target)
                    queue.append(target)
        return seen

    def subgraph(self, hat_id: str) -> "BlockGraph":
        """The script rooted at a hat, as its own graph.

        Raises:
            KeyError: If hat_id is not a hat of this graph.
        """
        if hat_id not in self._hats:
            raise KeyError(f"'{hat_id}' is not a hat of this graph")
        ids = self.reachable(hat_id)
        blocks = {block_id: self._blocks[block_id] for block_id in ids}
        # Already validated as part of this graph; links stay within the reachable set
        return BlockGraph(blocks, hats=[hat_id], _validate=False)

    def debug_info(self) -> Dict[str, object]:
        kinds: Dict[str, int] = {}
        for block in self._blocks.values():
            kinds[block.kind.value] = kinds.get(block.kind.value, 0) + 1
        return {
            "blocks": len(self._blocks),
            "hats": list(self._hats),
            "kinds": kinds,
        }


__all__ = ["BlockGraph"]
