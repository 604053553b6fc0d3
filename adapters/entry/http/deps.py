from __future__ import annotations

import re
from typing import Optional

from fastapi import Depends, Query, Request

from core.domain.errors import ValidationError
from workers.pool_supervisor import PoolSupervisor

POOL_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")


def get_supervisor(request: Request) -> PoolSupervisor:
    """
    FastAPI dependency that returns the PoolSupervisor stored in app.state.
    """
    return request.app.state.supervisor


def get_pool_address(
    pool: Optional[str] = Query(None, description="Pool address (0x + 40 hex chars)"),
    pool_address: Optional[str] = Query(None, alias="poolAddress"),
    supervisor: PoolSupervisor = Depends(get_supervisor),
) -> str:
    """
    Validate the pool query parameter and make sure the pool is being tracked.

    An unseen pool is registered right away; its producer starts in background,
    so the first queries may answer 404/503 until the first price lands.
    """
    address = (pool or pool_address or "").strip()
    if not address:
        raise ValidationError(
            "Missing required parameter: pool",
            code="MISSING_POOL",
            details={"hint": "Use ?pool=0x... or ?poolAddress=0x..."},
        )
    if not POOL_ADDRESS_RE.match(address):
        raise ValidationError(
            "Pool address must be 0x followed by 40 hexadecimal characters",
            code="INVALID_POOL",
            details={"provided": address},
        )

    supervisor.ensure_pool(address)
    return address.lower()
