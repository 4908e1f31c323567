"""Same-origin proxy: forwards ``/api/*`` to the trade backend."""

import logging

import httpx
from fastapi import APIRouter, Depends, HTTPException, Request, Response

from tracker.config import settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["proxy"])

# Hop-by-hop and length headers are recomputed on each side
_SKIP_HEADERS = {"host", "content-length", "connection", "transfer-encoding", "content-encoding"}


async def get_backend_client():
    """Dependency that yields an httpx client pointed at the backend."""
    async with httpx.AsyncClient(
        base_url=settings.backend_url.rstrip("/"),
        timeout=settings.request_timeout,
    ) as client:
        yield client


def _forward_headers(headers) -> dict[str, str]:
    return {k: v for k, v in headers.items() if k.lower() not in _SKIP_HEADERS}


@router.api_route("/api/{path:path}", methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
async def proxy(
    path: str,
    request: Request,
    client: httpx.AsyncClient = Depends(get_backend_client),
):
    body = await request.body()
    try:
        upstream = await client.request(
            request.method,
            f"/api/{path}",
            params=list(request.query_params.multi_items()),
            content=body or None,
            headers=_forward_headers(request.headers),
        )
    except httpx.HTTPError as e:
        logger.error(f"Proxy {request.method} /api/{path} failed: {e}")
        raise HTTPException(status_code=502, detail="Trade backend unavailable")

    return Response(
        content=upstream.content,
        status_code=upstream.status_code,
        headers=_forward_headers(upstream.headers),
    )
