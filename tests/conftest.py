"""Shared fixtures: a fake GitHub release feed served by aiohttp."""

import asyncio
from dataclasses import dataclass, field

import pytest
from aiohttp import web

from mmdb_cli.models.config import FeedConfig
from mmdb_cli.storage.cache import CacheRoot, CacheStore

REPO_PATH = "/P3TERX/GeoLite.mmdb"
FILES = ("a.db", "b.db")


@dataclass
class FeedState:
    """What the fake feed serves, and a log of what it was asked for."""

    tag: str = "v9"
    assets: dict = field(default_factory=dict)
    missing_location: bool = False
    failing: set = field(default_factory=set)
    head_delay: float = 0.0
    stalled: set = field(default_factory=set)
    stall_delay: float = 2.0
    requests: list = field(default_factory=list)

    def publish(self, tag: str, files=FILES) -> None:
        self.tag = tag
        self.assets[tag] = {name: f"{tag}:{name}".encode() * 64 for name in files}

    @property
    def downloads(self) -> list:
        return [path for method, path in self.requests if method == "GET"]


@pytest.fixture
def feed_state():
    state = FeedState()
    state.publish("v9")
    return state


@pytest.fixture
async def feed_server(aiohttp_server, feed_state):
    async def latest(request: web.Request) -> web.Response:
        feed_state.requests.append((request.method, request.path))
        if feed_state.head_delay:
            await asyncio.sleep(feed_state.head_delay)
        if feed_state.missing_location:
            return web.Response(status=200)
        location = request.url.with_path(
            f"{REPO_PATH}/releases/tag/{feed_state.tag}"
        )
        return web.Response(status=302, headers={"Location": str(location)})

    async def download(request: web.Request) -> web.Response:
        feed_state.requests.append((request.method, request.path))
        tag = request.match_info["tag"]
        name = request.match_info["name"]
        if name in feed_state.failing:
            return web.Response(status=500, text="boom")
        body = feed_state.assets.get(tag, {}).get(name)
        if body is None:
            return web.Response(status=404, text="Not Found")
        if name in feed_state.stalled:
            response = web.StreamResponse()
            response.content_length = len(body)
            await response.prepare(request)
            await response.write(body[: len(body) // 2])
            await asyncio.sleep(feed_state.stall_delay)
            return response
        return web.Response(body=body)

    app = web.Application()
    app.router.add_route("HEAD", f"{REPO_PATH}/releases/latest", latest)
    app.router.add_route(
        "GET", f"{REPO_PATH}/releases/download/{{tag}}/{{name}}", download
    )
    return await aiohttp_server(app)


@pytest.fixture
def cache_dir(tmp_path):
    return tmp_path / "cache"


@pytest.fixture
def config(feed_server, cache_dir):
    return FeedConfig(
        repo_url=str(feed_server.make_url(REPO_PATH)),
        files=FILES,
        cache_dir=str(cache_dir),
        timeout=10,
        connect_timeout=5,
        lock_timeout=2,
    )


@pytest.fixture
def cache_store(cache_dir):
    return CacheStore(CacheRoot(cache_dir, persistent=True), FILES)
