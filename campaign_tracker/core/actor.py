"""Acting-user resolution for write endpoints.

Authentication is handled upstream; this service trusts the ``X-Actor`` header
it is given and records it in event metadata.

Usage::

    @router.post("/events")
    async def record(actor: str = Depends(get_actor)):
        ...
"""

from fastapi import Header

DEFAULT_ACTOR = "unknown"


async def get_actor(x_actor: str | None = Header(default=None)) -> str:
    if x_actor is None or not x_actor.strip():
        return DEFAULT_ACTOR
    return x_actor.strip()
