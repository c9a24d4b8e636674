import asyncio
from io import BytesIO

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from apps.poster.config import settings
from apps.poster.main import app
from apps.poster.models import ArticleMetadata


def make_png(w: int, h: int, color=(18, 18, 24)) -> bytes:
    buf = BytesIO()
    Image.new("RGB", (w, h), color).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def client():
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c


@pytest.fixture
def tmp_artifacts(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "tmp_dir", str(tmp_path))
    return tmp_path


@pytest.fixture
def fake_pipeline(monkeypatch, tmp_artifacts):
    """
    Swap the network/browser edges of /generate for in-process fakes and
    record what they were called with.
    """
    calls = {"resolve": [], "rasterize": []}
    meta = ArticleMetadata(title="Hello", excerpt="World", image="")

    async def fake_resolve(url):
        calls["resolve"].append(url)
        return meta

    async def fake_rasterize(html, size):
        calls["rasterize"].append((html, size))
        return make_png(size.w, size.h)

    monkeypatch.setattr("apps.poster.main.resolve", fake_resolve)
    monkeypatch.setattr("apps.poster.main.rasterize", fake_rasterize)
    calls["meta"] = meta
    return calls


@pytest.fixture(scope="session")
def chromium():
    """Skip browser-backed tests when Playwright's Chromium isn't installed."""
    pytest.importorskip("playwright.async_api")
    from playwright.async_api import async_playwright

    async def _probe():
        async with async_playwright() as p:
            browser = await p.chromium.launch(headless=True, args=["--no-sandbox"])
            await browser.close()

    try:
        asyncio.run(_probe())
    except Exception as e:
        pytest.skip(f"chromium unavailable: {type(e).__name__}")
    return True
