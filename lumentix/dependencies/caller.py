from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request


async def get_caller_id(
    request: Request,
    x_user_id: Annotated[str | None, Header()] = None,
) -> str:
    """Return the id of the caller, already authenticated upstream.

    An upstream middleware may place the id on ``request.state.user_id``;
    otherwise the gateway forwards it in the ``X-User-Id`` header.
    """

    cached = getattr(request.state, "user_id", None)
    if isinstance(cached, str) and cached:
        return cached

    if not x_user_id:
        raise HTTPException(status_code=401, detail="Caller identity missing")
    request.state.user_id = x_user_id
    return x_user_id


CallerId = Annotated[str, Depends(get_caller_id)]
