# src/Gaiabot/commands/inventory.py
from Gaiabot.commanding import Invocation, chat_command
from Gaiabot.world_tools import format_items


@chat_command(
    name="inventory",
    description="List what the bot is carrying.",
    literals=("!inventory", "!inv"),
    priority=10,
)
async def inventory(inv: Invocation):
    items = inv.world.list_inventory_items()
    await inv.responder.send(format_items(items) or "I have nothing right now.")
