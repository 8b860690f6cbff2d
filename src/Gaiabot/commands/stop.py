# src/Gaiabot/commands/stop.py
from Gaiabot.commanding import Invocation, chat_command


@chat_command(
    name="stop",
    description="Stop all movement and following.",
    literals=("!stop",),
    priority=20,
)
async def stop(inv: Invocation):
    inv.world.clear_movement_goal()
    await inv.responder.send("Okay, stopping all movement.")
