# src/Gaiabot/commands/mine.py
import structlog

from Gaiabot.commanding import Invocation, chat_command
from Gaiabot.world_tools import locate_block

log = structlog.get_logger()


@chat_command(
    name="mine",
    description="Mine the nearest block whose name contains the argument.",
    prefix="!mine",
    priority=50,
)
async def mine(inv: Invocation):
    target = inv.argument
    block = locate_block(inv.world, target)
    if block is None:
        await inv.responder.send(f"Can't find any {target} nearby.")
        return
    try:
        await inv.world.collect_block(block)
    except Exception as exc:
        log.warning("fast_path.mine.failed", target=target, error=str(exc))
        await inv.responder.send(f"Failed to mine {target}: {exc}")
        return
    await inv.responder.send(f"Mined {block.name}!")
