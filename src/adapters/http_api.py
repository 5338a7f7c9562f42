"""HTTP read/import API adapter (aiohttp).

Exposes the tracker's ordered token listing and the bulk import. Rendering
and filtering are left to whatever consumes the JSON.
"""

from __future__ import annotations

import json
import logging
from typing import Optional

from aiohttp import web

from core.models import parse_records
from core.tracker import TokenTracker

LOGGER = logging.getLogger(__name__)

TRACKER_KEY = web.AppKey("tracker", TokenTracker)


async def index_handler(request: web.Request) -> web.Response:
    return web.Response(text="tokenscope is running. See /api/tokens for data.")


async def tokens_handler(request: web.Request) -> web.Response:
    tracker = request.app[TRACKER_KEY]
    tokens = [record.to_dict() for record in tracker.list_tokens()]
    LOGGER.debug("Sending tokens data, count: %s", len(tokens))
    return web.json_response(tokens)


async def token_handler(request: web.Request) -> web.Response:
    tracker = request.app[TRACKER_KEY]
    address = request.match_info["address"]
    record = tracker.get_token(address)
    if record is None:
        return web.json_response({"error": "Token not found"}, status=404)
    return web.json_response(record.to_dict())


async def import_handler(request: web.Request) -> web.Response:
    tracker = request.app[TRACKER_KEY]
    try:
        payload = await request.json()
    except json.JSONDecodeError:
        return web.json_response({"error": "Body must be JSON"}, status=400)
    if not isinstance(payload, list):
        return web.json_response({"error": "Body must be a JSON array of tokens"}, status=400)
    try:
        records = parse_records(payload)
    except ValueError as exc:
        return web.json_response({"error": str(exc)}, status=400)

    if not await tracker.import_records(records):
        return web.json_response({"error": "Import failed"}, status=500)
    return web.json_response({"imported": len(records)})


def build_app(tracker: TokenTracker) -> web.Application:
    app = web.Application()
    app[TRACKER_KEY] = tracker
    app.router.add_get("/", index_handler)
    app.router.add_get("/api/tokens", tokens_handler)
    app.router.add_get("/api/tokens/{address}", token_handler)
    app.router.add_post("/api/import", import_handler)
    return app


async def start_api(tracker: TokenTracker, host: str, port: int) -> web.AppRunner:
    """Start serving in the running loop; the caller owns runner.cleanup()."""

    runner = web.AppRunner(build_app(tracker))
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()
    LOGGER.info("API listening on http://%s:%s", host, port)
    return runner


async def stop_api(runner: Optional[web.AppRunner]) -> None:
    if runner is not None:
        await runner.cleanup()
