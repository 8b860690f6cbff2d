"""World-action executor interfaces used by the tool set and the fast path.

The game connection, physics and pathfinding live outside this package. The
orchestration core only sees the protocols below; a live session or the
in-process world implements them.
"""

from __future__ import annotations

import math
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from Gaiabot.errors import WorldActionError

__all__ = [
    "Block",
    "BlockCollector",
    "GoalBlock",
    "GoalFollow",
    "Item",
    "MovementController",
    "MovementGoal",
    "PlayerRef",
    "Vec3",
    "WorldActionError",
    "WorldActionExecutor",
]


@dataclass(frozen=True)
class Vec3:
    x: float
    y: float
    z: float

    def offset(self, dx: float, dy: float, dz: float) -> Vec3:
        return Vec3(self.x + dx, self.y + dy, self.z + dz)

    def floored(self) -> Vec3:
        return Vec3(math.floor(self.x), math.floor(self.y), math.floor(self.z))

    def distance_to(self, other: Vec3) -> float:
        return math.dist((self.x, self.y, self.z), (other.x, other.y, other.z))

    def __str__(self) -> str:
        return f"{_fmt(self.x)}, {_fmt(self.y)}, {_fmt(self.z)}"


def _fmt(v: float) -> str:
    return str(int(v)) if float(v).is_integer() else str(v)


@dataclass(frozen=True)
class Block:
    name: str
    position: Vec3


@dataclass(frozen=True)
class Item:
    name: str
    count: int


@dataclass(frozen=True)
class PlayerRef:
    """A known player; ``position`` is None when the entity is out of view."""

    username: str
    position: Vec3 | None = None


# --- Movement goals ---


@dataclass(frozen=True)
class GoalFollow:
    """Continuous goal: keep within ``distance`` of the player."""

    username: str
    distance: int = 1


@dataclass(frozen=True)
class GoalBlock:
    """One-shot goal: stand on the given block coordinates."""

    x: int
    y: int
    z: int


MovementGoal = GoalFollow | GoalBlock
BlockPredicate = Callable[[Block], bool]
ItemPredicate = Callable[[Item], bool]


class MovementController(Protocol):
    """Pathfinding capability of the executor."""

    def set_movement_goal(self, goal: MovementGoal | None, *, dynamic: bool = False) -> None:
        """Replace the active goal; the latest call wins."""

    def clear_movement_goal(self) -> None:
        """Drop any active goal."""


class BlockCollector(Protocol):
    """Collection capability of the executor."""

    async def collect_block(self, block: Block) -> None:
        """Path to, dig, and pick up the block."""


class WorldActionExecutor(MovementController, BlockCollector, Protocol):
    """Every world primitive the tools and fast-path commands may call.

    Lookups are synchronous; actions that take in-world time are awaitable.
    Any primitive may raise ``WorldActionError`` (or another exception).
    """

    @property
    def username(self) -> str: ...

    def find_nearest_block(self, predicate: BlockPredicate, max_distance: int) -> Block | None: ...

    def find_blocks(
        self, predicate: BlockPredicate, max_distance: int, count: int
    ) -> list[Vec3]: ...

    def block_at(self, position: Vec3) -> Block | None: ...

    def list_inventory_items(self) -> list[Item]: ...

    def find_item(self, predicate: ItemPredicate) -> Item | None: ...

    async def equip(self, item: Item, slot: str) -> None: ...

    async def place_block(self, reference_block: Block, position: Vec3) -> None: ...

    def resolve_player(self, name: str) -> PlayerRef | None: ...

    def list_known_players(self) -> list[PlayerRef]: ...
