"""
Asset fetcher — downloads logo and signature images before a render.

The layout engine never touches the network: the route prefetches every
image reference with httpx and hands `result.get` to the engine as its
image resolver. A failed download is logged and left out, so the sheet
falls back to its placeholder labels.
"""
import asyncio
import io
import logging
from typing import Dict, Iterable, Optional

import httpx
from PIL import Image

from anode.config import IMAGE_FETCH_TIMEOUT
from anode.services.perf_monitor import timed_async

logger = logging.getLogger("anode-assets")

_IMAGE_TYPES = ("image/png", "image/jpeg", "image/gif")


async def _fetch_one(client: httpx.AsyncClient, url: str) -> Optional[bytes]:
    try:
        r = await client.get(url, follow_redirects=True)
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        logger.warning(f"Image fetch failed for {url}: {e}")
        return None
    if r.status_code != 200:
        logger.warning(f"Image fetch for {url} returned HTTP {r.status_code}")
        return None
    content_type = r.headers.get("content-type", "").split(";")[0].strip().lower()
    if content_type and content_type not in _IMAGE_TYPES:
        logger.warning(f"Image fetch for {url} returned unsupported type '{content_type}'")
        return None
    if not r.content:
        logger.warning(f"Image fetch for {url} returned an empty body")
        return None
    try:
        with Image.open(io.BytesIO(r.content)) as img:
            img.verify()
    except Exception as e:
        logger.warning(f"Image fetch for {url} returned undecodable bytes: {e}")
        return None
    return r.content


@timed_async
async def prefetch_images(
    urls: Iterable[str],
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = IMAGE_FETCH_TIMEOUT,
) -> Dict[str, bytes]:
    """
    Fetch every url concurrently. Returns {url: bytes} for the successful ones.
    A caller-supplied client is used as-is and left open.
    """
    wanted = list(dict.fromkeys(u for u in urls if u))
    if not wanted:
        return {}

    if client is not None:
        results = await asyncio.gather(*(_fetch_one(client, u) for u in wanted))
    else:
        async with httpx.AsyncClient(timeout=timeout) as own_client:
            results = await asyncio.gather(*(_fetch_one(own_client, u) for u in wanted))

    images = {url: data for url, data in zip(wanted, results) if data}
    logger.info(f"Prefetched {len(images)}/{len(wanted)} sheet images")
    return images
