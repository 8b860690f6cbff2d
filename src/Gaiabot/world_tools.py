"""World-action tools exposed to the planner.

Each tool takes one free-form string, makes one attempt through the injected
``WorldActionExecutor`` and returns a ``ToolResult`` whose text is fit to show
the model (and, through fallbacks, the player). Tools never raise: executor
failures are rendered into the returned text.
"""

from __future__ import annotations

import time

import structlog

from Gaiabot.metrics import inc_counter, observe_histogram
from Gaiabot.tool_registry import ToolName, ToolRegistry, ToolResult, ToolSpec
from Gaiabot.world import (
    Block,
    GoalBlock,
    GoalFollow,
    Item,
    PlayerRef,
    Vec3,
    WorldActionExecutor,
)

log = structlog.get_logger()

MINE_SEARCH_RADIUS = 32
LOOK_RADIUS = 10
LOOK_SAMPLE_COUNT = 20
LOOK_MAX_TYPES = 5
FOLLOW_RANGE = 1
# Blocks are placed one step east of the reference player
PLACE_OFFSET = (1, 0, 0)


# --- Shared world helpers (also used by the fast-path commands) ---


def locate_block(world: WorldActionExecutor, block_type: str) -> Block | None:
    needle = block_type.lower()
    return world.find_nearest_block(lambda b: needle in b.name, MINE_SEARCH_RADIUS)


def find_inventory_item(world: WorldActionExecutor, name: str) -> Item | None:
    needle = name.lower()
    return world.find_item(lambda i: needle in i.name.lower())


def placement_target(anchor: Vec3) -> Vec3:
    return anchor.offset(*PLACE_OFFSET)


def visible_player(world: WorldActionExecutor, name: str) -> PlayerRef | None:
    """Resolve a player whose entity (and so position) is currently known."""
    player = world.resolve_player(name)
    if player is None or player.position is None:
        return None
    return player


def format_items(items: list[Item]) -> str:
    return ", ".join(f"{i.name} x{i.count}" for i in items)


def _known_names(world: WorldActionExecutor) -> str:
    return ", ".join(p.username for p in world.list_known_players())


def _error_text(exc: BaseException) -> str:
    return str(exc) or exc.__class__.__name__


class WorldToolSet:
    """The planner-facing tool set, bound to one executor."""

    def __init__(self, world: WorldActionExecutor) -> None:
        self._world = world
        self.registry = ToolRegistry(
            [
                ToolSpec(
                    ToolName.MINE_BLOCK,
                    "Mine a specific type of block near the bot. Provide the block type as "
                    "input (e.g., 'stone', 'coal', 'iron').",
                    "Block type to mine",
                    self.mine_block,
                ),
                ToolSpec(
                    ToolName.PLACE_BLOCK,
                    "Place a block from inventory. Provide the block type to place "
                    "(e.g., 'stone', 'dirt', 'cobblestone').",
                    "Block type to place",
                    self.place_block,
                ),
                ToolSpec(
                    ToolName.FOLLOW_PLAYER,
                    "Follow a specific player. Provide the player's username.",
                    "Username of the player to follow",
                    self.follow_player,
                ),
                ToolSpec(
                    ToolName.GO_TO_PLAYER,
                    "Move to a specific player's location. Provide the player's username.",
                    "Username of the player to walk to",
                    self.go_to_player,
                ),
                ToolSpec(
                    ToolName.STOP_MOVEMENT,
                    "Stop all current movement and following behavior.",
                    None,
                    self.stop_movement,
                ),
                ToolSpec(
                    ToolName.CHECK_INVENTORY,
                    "Check what items are currently in the bot's inventory.",
                    None,
                    self.check_inventory,
                ),
                ToolSpec(
                    ToolName.LOOK_AROUND,
                    "Look around and describe nearby blocks, entities, and players.",
                    None,
                    self.look_around,
                ),
            ]
        )

    async def execute(self, name: ToolName, argument: str | None) -> ToolResult:
        """Run one tool by name. Always returns; never raises."""
        spec = self.registry.get(name)
        arg = (argument or "").strip()
        started = time.perf_counter()
        log.info("tool.invoked", tool=name.value, argument=arg)
        try:
            result = await spec.handler(arg)
        except Exception as exc:
            # Handlers catch their own failures; this guards the contract.
            log.error("tool.crashed", tool=name.value, error=_error_text(exc), exc_info=True)
            result = ToolResult(False, f"Failed to run {name.value}: {_error_text(exc)}")
        duration_ms = int((time.perf_counter() - started) * 1000)
        observe_histogram(f"tool.{name.value}.ms", duration_ms)
        inc_counter(f"tool.{name.value}.{'ok' if result.ok else 'failed'}")
        log.info(
            "tool.completed",
            tool=name.value,
            ok=result.ok,
            duration_ms=duration_ms,
            result_preview=result.text[:120],
        )
        return result

    # --- Tools ---

    async def mine_block(self, block_type: str) -> ToolResult:
        if not block_type:
            return ToolResult(False, "Tell me which block type to mine.")
        try:
            block = locate_block(self._world, block_type)
            if block is None:
                return ToolResult(
                    False,
                    f"Could not find any {block_type} blocks nearby "
                    f"(within {MINE_SEARCH_RADIUS} blocks).",
                )
            await self._world.collect_block(block)
            return ToolResult(
                True, f"Successfully mined {block.name} at position {block.position}."
            )
        except Exception as exc:
            return ToolResult(False, f"Failed to mine {block_type}: {_error_text(exc)}")

    async def place_block(self, block_type: str) -> ToolResult:
        if not block_type:
            return ToolResult(False, "Tell me which block type to place.")
        try:
            item = find_inventory_item(self._world, block_type)
            if item is None:
                return ToolResult(False, f"I don't have any {block_type} in my inventory.")

            anchor = next(
                (
                    p
                    for p in self._world.list_known_players()
                    if p.position is not None and p.username != self._world.username
                ),
                None,
            )
            if anchor is None or anchor.position is None:
                return ToolResult(False, "No player nearby to place block next to.")

            target = placement_target(anchor.position)
            surface = self._world.block_at(target.offset(0, -1, 0))
            if surface is None:
                return ToolResult(False, f"Can't find a surface to place {block_type} on.")

            await self._world.equip(item, "hand")
            await self._world.place_block(surface, target)
            return ToolResult(True, f"Successfully placed {item.name} next to {anchor.username}.")
        except Exception as exc:
            return ToolResult(False, f"Failed to place {block_type}: {_error_text(exc)}")

    async def follow_player(self, name: str) -> ToolResult:
        try:
            player = visible_player(self._world, name)
            if player is None:
                return ToolResult(
                    False,
                    f"Could not find player {name}. Available players: {_known_names(self._world)}",
                )
            self._world.set_movement_goal(
                GoalFollow(player.username, FOLLOW_RANGE), dynamic=True
            )
            return ToolResult(True, f"Now following {player.username}.")
        except Exception as exc:
            return ToolResult(False, f"Failed to follow {name}: {_error_text(exc)}")

    async def go_to_player(self, name: str) -> ToolResult:
        try:
            player = visible_player(self._world, name)
            if player is None or player.position is None:
                return ToolResult(
                    False,
                    f"Could not find player {name}. Available players: {_known_names(self._world)}",
                )
            spot = player.position.floored()
            self._world.set_movement_goal(GoalBlock(int(spot.x), int(spot.y), int(spot.z)))
            return ToolResult(True, f"Moving to {player.username}'s location.")
        except Exception as exc:
            return ToolResult(False, f"Failed to move to {name}: {_error_text(exc)}")

    async def stop_movement(self, _: str = "") -> ToolResult:
        try:
            self._world.clear_movement_goal()
            return ToolResult(True, "Stopped all movement and following.")
        except Exception as exc:
            return ToolResult(False, f"Failed to stop movement: {_error_text(exc)}")

    async def check_inventory(self, _: str = "") -> ToolResult:
        try:
            items = self._world.list_inventory_items()
            if not items:
                return ToolResult(True, "My inventory is empty.")
            return ToolResult(True, f"My inventory contains: {format_items(items)}")
        except Exception as exc:
            return ToolResult(False, f"Failed to check inventory: {_error_text(exc)}")

    async def look_around(self, _: str = "") -> ToolResult:
        try:
            positions = self._world.find_blocks(
                lambda b: b.name != "air", LOOK_RADIUS, LOOK_SAMPLE_COUNT
            )
            block_types: list[str] = []
            for pos in positions:
                block = self._world.block_at(pos)
                if block is not None and block.name not in block_types:
                    block_types.append(block.name)
            block_types = block_types[:LOOK_MAX_TYPES]

            players = [
                p.username
                for p in self._world.list_known_players()
                if p.username != self._world.username and p.position is not None
            ]

            if block_types:
                description = f"I can see these block types nearby: {', '.join(block_types)}."
            else:
                description = "I don't see any blocks nearby."
            if players:
                description += f" Players nearby: {', '.join(players)}."
            return ToolResult(True, description)
        except Exception as exc:
            return ToolResult(False, f"Failed to look around: {_error_text(exc)}")
