"""Per-partner in-process locks.

Serialises money-moving work for one partner inside a single worker.
Cross-process ordering comes from the row locks taken in ``ledger`` and
``lead_gating``.
"""

import asyncio
import uuid
import weakref

# Entries disappear once no coroutine holds or waits on the lock.
_locks: "weakref.WeakValueDictionary[uuid.UUID, asyncio.Lock]" = (
    weakref.WeakValueDictionary()
)


def partner_lock(partner_id: uuid.UUID) -> asyncio.Lock:
    """Return the lock guarding ``partner_id``'s wallet and plan usage."""
    lock = _locks.get(partner_id)
    if lock is None:
        lock = asyncio.Lock()
        _locks[partner_id] = lock
    return lock
