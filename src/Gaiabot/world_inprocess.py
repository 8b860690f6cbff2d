"""In-process world adapter.

A small, deterministic stand-in for a live game session. It backs the local
console (``gaiabot console``) and the test-suite; movement is instantaneous and
there is no physics, only a block map, an inventory and a player table.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

import structlog

from Gaiabot.world import (
    Block,
    BlockPredicate,
    Item,
    ItemPredicate,
    MovementGoal,
    PlayerRef,
    Vec3,
    WorldActionError,
)

log = structlog.get_logger()


@dataclass
class ActionRecord:
    primitive: str
    detail: str


@dataclass
class InProcessWorld:
    """Implements ``WorldActionExecutor`` over plain dictionaries."""

    username: str = "Gaiabot"
    position: Vec3 = field(default_factory=lambda: Vec3(0, 64, 0))
    blocks: dict[Vec3, str] = field(default_factory=dict)
    inventory: dict[str, int] = field(default_factory=dict)
    players: dict[str, Vec3 | None] = field(default_factory=dict)
    goal: MovementGoal | None = None
    goal_dynamic: bool = False
    held: str | None = None
    actions: list[ActionRecord] = field(default_factory=list)
    _failures: dict[str, Exception] = field(default_factory=dict, repr=False)

    # --- Scenario setup ---

    def set_block(self, x: int, y: int, z: int, name: str) -> None:
        self.blocks[Vec3(x, y, z)] = name

    def give(self, name: str, count: int = 1) -> None:
        self.inventory[name] = self.inventory.get(name, 0) + count

    def add_player(self, username: str, position: Vec3 | None = None) -> None:
        self.players[username] = position

    def fail(self, primitive: str, exc: Exception | None = None) -> None:
        """Make the named primitive raise on its next calls."""
        self._failures[primitive] = exc or WorldActionError(f"{primitive} failed")

    def _check(self, primitive: str, detail: str = "") -> None:
        self.actions.append(ActionRecord(primitive, detail))
        exc = self._failures.get(primitive)
        if exc is not None:
            raise exc

    # --- Movement ---

    def set_movement_goal(self, goal: MovementGoal | None, *, dynamic: bool = False) -> None:
        self._check("set_movement_goal", repr(goal))
        self.goal = goal
        self.goal_dynamic = dynamic if goal is not None else False
        log.debug("world.goal.set", goal=repr(goal), dynamic=dynamic)

    def clear_movement_goal(self) -> None:
        self._check("clear_movement_goal")
        self.goal = None
        self.goal_dynamic = False

    # --- Blocks ---

    def _blocks_by_distance(
        self, predicate: BlockPredicate, max_distance: int
    ) -> list[Block]:
        hits = [
            Block(name, pos)
            for pos, name in self.blocks.items()
            if pos.distance_to(self.position) <= max_distance and predicate(Block(name, pos))
        ]
        hits.sort(key=lambda b: b.position.distance_to(self.position))
        return hits

    def find_nearest_block(self, predicate: BlockPredicate, max_distance: int) -> Block | None:
        self._check("find_nearest_block")
        hits = self._blocks_by_distance(predicate, max_distance)
        return hits[0] if hits else None

    def find_blocks(self, predicate: BlockPredicate, max_distance: int, count: int) -> list[Vec3]:
        self._check("find_blocks")
        return [b.position for b in self._blocks_by_distance(predicate, max_distance)[:count]]

    def block_at(self, position: Vec3) -> Block | None:
        self._check("block_at", str(position))
        pos = position.floored()
        name = self.blocks.get(pos)
        return Block(name, pos) if name is not None else None

    async def collect_block(self, block: Block) -> None:
        self._check("collect_block", f"{block.name} @ {block.position}")
        if self.blocks.get(block.position) != block.name:
            raise WorldActionError(f"No {block.name} at {block.position}")
        del self.blocks[block.position]
        self.position = block.position
        self.give(block.name)

    async def place_block(self, reference_block: Block, position: Vec3) -> None:
        self._check("place_block", f"{self.held} @ {position}")
        if self.held is None or self.inventory.get(self.held, 0) <= 0:
            raise WorldActionError("Nothing in hand to place")
        target = position.floored()
        if target in self.blocks:
            raise WorldActionError(f"Position {target} is occupied")
        self.blocks[target] = self.held
        self.inventory[self.held] -= 1
        if self.inventory[self.held] <= 0:
            del self.inventory[self.held]
            self.held = None

    # --- Inventory ---

    def list_inventory_items(self) -> list[Item]:
        self._check("list_inventory_items")
        return [Item(name, count) for name, count in self.inventory.items() if count > 0]

    def find_item(self, predicate: ItemPredicate) -> Item | None:
        self._check("find_item")
        return next((i for i in self.list_inventory_items() if predicate(i)), None)

    async def equip(self, item: Item, slot: str) -> None:
        self._check("equip", f"{item.name} -> {slot}")
        if self.inventory.get(item.name, 0) <= 0:
            raise WorldActionError(f"No {item.name} in inventory")
        self.held = item.name

    # --- Players ---

    def resolve_player(self, name: str) -> PlayerRef | None:
        self._check("resolve_player", name)
        if name in self.players:
            return PlayerRef(name, self.players[name])
        # Chat names are often typed in a different case
        for username, pos in self.players.items():
            if username.lower() == name.lower():
                return PlayerRef(username, pos)
        if name.lower() == self.username.lower():
            return PlayerRef(self.username, self.position)
        return None

    def list_known_players(self) -> list[PlayerRef]:
        self._check("list_known_players")
        known = [PlayerRef(self.username, self.position)]
        known.extend(PlayerRef(u, p) for u, p in self.players.items())
        return known


def demo_world(player: str, *, username: str = "Gaiabot") -> InProcessWorld:
    """A small flat area with a few ores, some starter blocks and one player."""
    world = InProcessWorld(username=username)
    for x in range(-4, 5):
        for z in range(-4, 5):
            world.set_block(x, 63, z, "grass_block")
    world.set_block(3, 64, 2, "stone")
    world.set_block(5, 62, -1, "coal_ore")
    world.set_block(-6, 60, 4, "iron_ore")
    world.set_block(-2, 64, -3, "oak_log")
    world.give("dirt", 16)
    world.give("cobblestone", 8)
    world.add_player(player, Vec3(1.5, 64, 1.5))
    return world


class InProcessSession:
    """Game-session stand-in: chat goes to ``echo``, quitting flips ``connected``."""

    def __init__(self, world: InProcessWorld, echo: Callable[[str], None] = print) -> None:
        self.world = world
        self.transcript: list[str] = []
        self.connected = True
        self._echo = echo

    def chat(self, text: str) -> None:
        if not self.connected:
            raise WorldActionError("session is closed")
        self.transcript.append(text)
        self._echo(f"<{self.world.username}> {text}")

    def quit(self, reason: str = "") -> None:
        self.connected = False
        log.info("session.quit", reason=reason)
