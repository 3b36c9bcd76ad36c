# periodic refresh of the displayed question
import asyncio
import logging

from .board import AnswerBoard
from .config import RESYNC_INTERVAL

logger = logging.getLogger(__name__)


async def resync_loop(board: AnswerBoard, interval: float = RESYNC_INTERVAL) -> None:
    """
    Re-fetch the displayed question every `interval` seconds so vote counts
    drifted by lost confirmations converge back to the API's numbers.
    A non-positive interval disables the loop.
    """
    if interval <= 0:
        return

    while True:
        await asyncio.sleep(interval)
        try:
            changed = await board.refresh()
        except Exception:
            # keep the loop alive; the next pass retries
            logger.exception("resync pass failed")
            continue
        if changed:
            logger.debug("resync replaced question %s", board.question_id)
