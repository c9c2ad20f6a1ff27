"""
CloneManager - clone creation and deletion under a fixed ceiling.

Requests are queued while threads run and applied by the VM between ticks,
so the sprite set never changes while it is being iterated.
"""

import logging
from typing import Dict, List, Optional, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from .machine import VM
    from .sprite import Sprite


logger = logging.getLogger(__name__)


class CloneManager:
    """
    Tracks live clones and the queued changes to them.

    Invariants:
    - live clones plus queued creations never exceed max_clones
    - only clones are ever deleted; originals and the stage are not
    - instance ids are never reused within one manager
    """

    def __init__(self, max_clones: int = 300) -> None:
        self.max_clones = max_clones
        self._clones: Dict[str, "Sprite"] = {}
        self._creations: List[str] = []
        self._deletions: List[str] = []
        self._counter = 0

    @property
    def clone_count(self) -> int:
        return len(self._clones)

    @property
    def clones(self) -> List["Sprite"]:
        return list(self._clones.values())

    @property
    def pending_creations(self) -> int:
        return len(self._creations)

    @property
    def pending_deletions(self) -> int:
        return len(self._deletions)

    def is_clone(self, instance_id: str) -> bool:
        return instance_id in self._clones

    def get(self, instance_id: str) -> Optional["Sprite"]:
        return self._clones.get(instance_id)

    # =========================================================================
    # Requests
    # =========================================================================

    def request_clone(self, template_id: str) -> bool:
        """Queue a clone of a sprite instance.

        Returns:
            False if the ceiling is reached (the request is ignored).
        """
        if len(self._clones) + len(self._creations) >= self.max_clones:
            logger.debug(
                f"Clone ceiling {self.max_clones} reached, ignoring clone of {template_id}"
            )
            return False
        self._creations.append(template_id)
        return True

    def request_delete(self, instance_id: str) -> bool:
        """Queue a clone for removal.

        Returns:
            False if the instance is not a live clone or is already queued.
        """
        if instance_id not in self._clones:
            logger.warning(f"Ignoring delete request for non-clone {instance_id}")
            return False
        if instance_id in self._deletions:
            return False
        self._deletions.append(instance_id)
        return True

    def request_delete_all(self) -> int:
        """Queue every live clone for removal and drop queued creations."""
        self._creations.clear()
        queued = 0
        for instance_id in self._clones:
            if instance_id not in self._deletions:
                self._deletions.append(instance_id)
                queued += 1
        return queued

    def next_instance_id(self, name: str) -> str:
        self._counter += 1
        return f"{name}#clone-{self._counter}"

    # =========================================================================
    # Apply (between ticks)
    # =========================================================================

    def apply(self, vm: "VM") -> Tuple[List["Sprite"], List["Sprite"]]:
        """
        Apply queued creations, then queued deletions.

        New clones are placed directly below their template in draw order
        and their start-as-clone scripts are queued for the next tick.
        Deleted clones have every thread cancelled without cleanup.

        Returns:
            (created clones, deleted clones)
        """
        created: List["Sprite"] = []
        creations, self._creations = self._creations, []
        for template_id in creations:
            template = vm.find_instance(template_id)
            if template is None or template.is_stage:
                logger.debug(f"Clone template {template_id} is gone, skipping")
                continue
            clone = template.make_clone(self.next_instance_id(template.name))
            self._clones[clone.instance_id] = clone
            vm.add_instance(clone, below=template)
            clone.start_clone_hats()
            created.append(clone)
            logger.debug(f"Created clone {clone.instance_id} of {template_id}")

        deleted: List["Sprite"] = []
        deletions, self._deletions = self._deletions, []
        for instance_id in deletions:
            clone = self._clones.pop(instance_id, None)
            if clone is None:
                continue
            clone.stop_all_threads()
            vm.remove_instance(clone)
            deleted.append(clone)
            logger.debug(f"Deleted clone {instance_id}")

        return created, deleted

    def debug_info(self) -> Dict[str, object]:
        return {
            "max_clones": self.max_clones,
            "clones": list(self._clones),
            "pending_creations": list(self._creations),
            "pending_deletions": list(self._deletions),
        }


__all__ = ["CloneManager"]
