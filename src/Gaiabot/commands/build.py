# src/Gaiabot/commands/build.py
import structlog

from Gaiabot.commanding import Invocation, chat_command
from Gaiabot.world_tools import find_inventory_item, placement_target, visible_player

log = structlog.get_logger()


@chat_command(
    name="build",
    description="Place a block from inventory next to the speaker.",
    prefix="!build",
    priority=60,
)
async def build(inv: Invocation):
    block_name = inv.argument
    item = find_inventory_item(inv.world, block_name)
    if item is None:
        await inv.responder.send(f"I don't have any {block_name}")
        return

    player = visible_player(inv.world, inv.message.sender)
    if player is None or player.position is None:
        await inv.responder.send("I need to see where you are to build!")
        return

    target = placement_target(player.position)
    try:
        await inv.world.equip(item, "hand")
        surface = inv.world.block_at(target.offset(0, -1, 0))
        if surface is None:
            await inv.responder.send("Can't find a surface to build on!")
            return
        await inv.world.place_block(surface, target)
    except Exception:
        log.warning("fast_path.build.failed", item=item.name, target=str(target), exc_info=True)
        await inv.responder.send("Couldn't place block.")
        return
    await inv.responder.send(f"Placed {item.name}!")
