# src/Gaiabot/commands/follow.py
import structlog

from Gaiabot.commanding import Invocation, chat_command
from Gaiabot.world import GoalBlock, GoalFollow
from Gaiabot.world_tools import FOLLOW_RANGE, visible_player

log = structlog.get_logger()

NOT_VISIBLE = "I can't see you right now!"


@chat_command(
    name="follow",
    description="Keep following the speaker.",
    literals=("!follow me",),
    priority=30,
)
async def follow(inv: Invocation):
    player = visible_player(inv.world, inv.message.sender)
    if player is None:
        log.info("fast_path.precondition_failed", command="follow", sender=inv.message.sender)
        await inv.responder.send(NOT_VISIBLE)
        return
    inv.world.set_movement_goal(GoalFollow(player.username, FOLLOW_RANGE), dynamic=True)
    await inv.responder.send("Following you!")


@chat_command(
    name="come",
    description="Walk to where the speaker is standing.",
    literals=("!come", "!come here"),
    priority=40,
)
async def come(inv: Invocation):
    player = visible_player(inv.world, inv.message.sender)
    if player is None or player.position is None:
        log.info("fast_path.precondition_failed", command="come", sender=inv.message.sender)
        await inv.responder.send(NOT_VISIBLE)
        return
    spot = player.position.floored()
    inv.world.set_movement_goal(GoalBlock(int(spot.x), int(spot.y), int(spot.z)))
    await inv.responder.send("Coming to you!")
