"""Shared test fixtures and configuration."""

import asyncio
from pathlib import Path
from typing import Optional

import httpx
import pytest

from rune_service.config import Settings
from rune_service.extractors import RawContent
from rune_service.models import Rune

ORIGIN = "https://mabimobi.life"
SOURCE_URL = f"{ORIGIN}/runes?t=search"

CHALLENGE_HTML = """<!DOCTYPE html><html><head><title>Just a moment...</title></head>
<body><div id="challenge-platform">Checking your browser before accessing mabimobi.life</div></body></html>"""


# Script Cloudflare injects into pages it serves normally
CLOUDFLARE_JSD_SCRIPT = (
    "<script>(function(){window.__CF$cv$params={r:'8f1c2d3e4a5b6c7d',t:'MTcyOTI0MDAwMA=='};"
    "var a=document.createElement('script');a.src='/cdn-cgi/challenge-platform/scripts/jsd/main.js';"
    "document.getElementsByTagName('head')[0].appendChild(a);})();</script>"
)


def rune_row(
    name: str,
    category: str = "무기",
    grade: str = "전설",
    effect: str = "공격력이 증가합니다",
    img: Optional[str] = "/images/runes/rune.png",
) -> str:
    """One row of the mabimobi.life rune table."""
    img_tag = f'<img src="{img}" alt="">' if img is not None else ""
    return (
        '<tr data-slot="table-row">'
        f"<td>{img_tag}</td>"
        f"<td>{category}</td>"
        f'<td><span class="rune-icon"></span><span style="color: rgb(255, 128, 0)">{name}</span></td>'
        f"<td>{grade}</td>"
        f"<td><span>{effect}</span></td>"
        "</tr>"
    )


def rune_page(*rows: str) -> str:
    """Wrap rows in a page shaped like the real rune table."""
    return (
        "<html><body><table><thead><tr><th>아이콘</th><th>분류</th><th>이름</th>"
        "<th>등급</th><th>효과</th></tr></thead><tbody>"
        + "".join(rows)
        + "</tbody></table></body></html>"
    )


class FakeFetcher:
    """Fetcher double: returns fixed HTML, raises, or blocks until released."""

    method = "fake"

    def __init__(self, html: str = "", error: Optional[Exception] = None, gated: bool = False):
        self.html = html
        self.error = error
        self.calls = 0
        self.closed = False
        self.started = asyncio.Event()
        self.release = asyncio.Event()
        if not gated:
            self.release.set()

    async def fetch(self, url: str) -> RawContent:
        self.calls += 1
        self.started.set()
        await self.release.wait()
        if self.error is not None:
            raise self.error
        return RawContent(html=self.html, url=url, method=self.method, status=200)

    async def close(self) -> None:
        self.closed = True


def asgi_client(app) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")


@pytest.fixture
def three_row_page() -> str:
    """Three well-formed rows, the second with an empty name."""
    return rune_page(
        rune_row("루나의 룬", grade="신화", img="/images/runes/luna.png"),
        rune_row("", grade="일반"),
        rune_row("태양의 룬", category="방어구", grade="전설", img="https://cdn.example.com/sun.png"),
    )


@pytest.fixture
def sample_runes() -> tuple[Rune, ...]:
    return (
        Rune(name="루나의 룬", category="무기", grade="신화", effect="달빛 피해", image_ref=f"{ORIGIN}/img/luna.png"),
        Rune(name="태양", category="방어구", grade="전설", effect="화염 저항", image_ref=""),
        Rune(name="Blue Moon", category="장신구", grade="레어", effect="마나 회복"),
    )


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        source_url=SOURCE_URL,
        cache_file=tmp_path / "runes.json",
    )
