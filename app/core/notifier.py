# app/core/notifier.py
"""Broadcast newly transcribed calls to dashboard clients."""
import json
import logging

from app.state.connections import ConnectionRegistry
from app.storage import calls_store

logger = logging.getLogger("call-center.core.notifier")


async def broadcast_new_transcriptions(registry: ConnectionRegistry) -> int:
    """
    Claim every transcribed, unbroadcast call and push them as one JSON array.
    Returns the number of calls broadcast.
    """
    claimed = await calls_store.claim_unprocessed_transcriptions()
    if not claimed:
        return 0

    logger.info("Found %d new transcribed calls to broadcast.", len(claimed))
    delivered = await registry.broadcast(json.dumps(claimed))
    logger.info("Broadcast to %d clients and marked as processed.", delivered)
    return len(claimed)
