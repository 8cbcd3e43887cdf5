"""Tests for the refresh controller."""

import asyncio
import json
import threading
from pathlib import Path

import pytest

from conftest import CHALLENGE_HTML, ORIGIN, SOURCE_URL, FakeFetcher
from rune_service.errors import BlockedError, NetworkError, RemoteSourceError
from rune_service.extractors import HttpFetcher
from rune_service.pipeline import scrape_runes
from rune_service.refresh import RefreshController, RefreshState
from rune_service.store import FROM_DISK_SUFFIX, RuneStore


def make_controller(tmp_path: Path, fetcher, load_remote=None) -> RefreshController:
    store = RuneStore(tmp_path / "runes.json")

    async def scrape():
        return await scrape_runes(fetcher, SOURCE_URL, ORIGIN)

    return RefreshController(store, scrape=scrape, load_remote=load_remote)


class TestRefresh:
    """Success and failure paths of one refresh."""

    @pytest.mark.asyncio
    async def test_success_replaces_store(self, tmp_path: Path, three_row_page: str):
        controller = make_controller(tmp_path, FakeFetcher(three_row_page))

        result = await controller.refresh()
        assert result.ok
        assert result.count == 2
        assert result.trigger == "manual"
        assert [r.name for r in controller.store.current()] == ["루나의 룬", "태양의 룬"]
        assert (tmp_path / "runes.json").exists()
        assert controller.state is RefreshState.IDLE
        assert controller.last_result == result

    @pytest.mark.asyncio
    @pytest.mark.parametrize("fetcher,error_type", [
        (FakeFetcher(CHALLENGE_HTML, error=BlockedError(SOURCE_URL, "Just a moment...")), "BlockedError"),
        (FakeFetcher(error=NetworkError("HTTP 503", status=503)), "NetworkError"),
        (FakeFetcher("<html><body>점검 중</body></html>"), "EmptyResultError"),
    ])
    async def test_failure_leaves_store_untouched(self, tmp_path: Path, sample_runes, fetcher, error_type: str):
        """A failed refresh never wipes a good cache."""
        controller = make_controller(tmp_path, fetcher)
        controller.store.replace(sample_runes)
        before = controller.store.snapshot()

        result = await controller.refresh()
        assert not result.ok
        assert result.error_type == error_type
        assert result.error
        assert controller.store.snapshot() is before
        assert controller.store.replacements == 1
        assert controller.state is RefreshState.IDLE

    @pytest.mark.asyncio
    async def test_blocked_page_through_real_fetcher(self, tmp_path: Path, sample_runes):
        """An interstitial served over HTTP fails the refresh with BlockedError."""
        import httpx

        fetcher = HttpFetcher(transport=httpx.MockTransport(lambda r: httpx.Response(200, text=CHALLENGE_HTML)))
        controller = make_controller(tmp_path, fetcher)
        controller.store.replace(sample_runes)

        result = await controller.refresh()
        assert result.error_type == "BlockedError"
        assert controller.store.current() == sample_runes

    @pytest.mark.asyncio
    async def test_persistence_failure_is_warning(self, tmp_path: Path, three_row_page: str):
        blocker = tmp_path / "file"
        blocker.write_text("x")
        store = RuneStore(blocker / "runes.json")
        fetcher = FakeFetcher(three_row_page)

        async def scrape():
            return await scrape_runes(fetcher, SOURCE_URL, ORIGIN)

        controller = RefreshController(store, scrape=scrape)
        result = await controller.refresh()
        assert result.ok
        assert result.warning
        assert len(store.current()) == 2

    @pytest.mark.asyncio
    async def test_mirror_write_runs_off_event_loop(self, tmp_path: Path, three_row_page: str, monkeypatch):
        controller = make_controller(tmp_path, FakeFetcher(three_row_page))
        store = controller.store
        save = store._save
        writer_threads = []

        def recording_save(records):
            writer_threads.append(threading.get_ident())
            save(records)

        monkeypatch.setattr(store, "_save", recording_save)
        result = await controller.refresh()

        assert result.ok
        assert writer_threads and writer_threads[0] != threading.get_ident()
        assert (tmp_path / "runes.json").exists()

    @pytest.mark.asyncio
    async def test_no_automatic_retry(self, tmp_path: Path):
        fetcher = FakeFetcher(error=NetworkError("down"))
        controller = make_controller(tmp_path, fetcher)
        await controller.refresh()
        assert fetcher.calls == 1

    @pytest.mark.asyncio
    async def test_unexpected_error_resets_state(self, tmp_path: Path):
        """A bug in the loader propagates but does not wedge the controller."""
        fetcher = FakeFetcher(error=RuntimeError("boom"))
        controller = make_controller(tmp_path, fetcher)

        with pytest.raises(RuntimeError):
            await controller.refresh()
        assert controller.state is RefreshState.IDLE


class TestSingleFlight:
    """At most one refresh at a time, across triggers."""

    @pytest.mark.asyncio
    async def test_concurrent_refresh_rejected(self, tmp_path: Path, three_row_page: str):
        fetcher = FakeFetcher(three_row_page, gated=True)
        controller = make_controller(tmp_path, fetcher)

        first = asyncio.create_task(controller.refresh())
        await fetcher.started.wait()
        assert controller.is_running

        second = await controller.refresh()
        assert not second.ok
        assert second.rejected

        fetcher.release.set()
        result = await first
        assert result.ok
        assert fetcher.calls == 1
        assert controller.store.replacements == 1
        # Rejections do not overwrite the last real result
        assert controller.last_result == result

    @pytest.mark.asyncio
    async def test_timer_and_manual_share_guard(self, tmp_path: Path, three_row_page: str):
        fetcher = FakeFetcher(three_row_page, gated=True)
        load_remote_calls = []

        async def load_remote():
            load_remote_calls.append(1)
            return ()

        controller = make_controller(tmp_path, fetcher, load_remote=load_remote)

        running = asyncio.create_task(controller.refresh(trigger="timer"))
        await fetcher.started.wait()

        manual = await controller.refresh(trigger="manual")
        reload = await controller.reload()
        assert manual.rejected
        assert reload.rejected
        assert load_remote_calls == []

        fetcher.release.set()
        await running

    @pytest.mark.asyncio
    async def test_readers_see_old_set_during_refresh(self, tmp_path: Path, sample_runes, three_row_page: str):
        fetcher = FakeFetcher(three_row_page, gated=True)
        controller = make_controller(tmp_path, fetcher)
        controller.store.replace(sample_runes)

        task = asyncio.create_task(controller.refresh())
        await fetcher.started.wait()
        assert controller.store.current() == sample_runes

        fetcher.release.set()
        await task
        assert len(controller.store.current()) == 2


class TestReloadAndStartup:
    """Remote JSON reload and the startup fallback chain."""

    @pytest.mark.asyncio
    async def test_reload_without_remote(self, tmp_path: Path):
        controller = make_controller(tmp_path, FakeFetcher())
        result = await controller.reload()
        assert not result.ok
        assert "RUNE_JSON_URL" in result.error

    @pytest.mark.asyncio
    async def test_reload_replaces_with_remote(self, tmp_path: Path, sample_runes):
        async def load_remote():
            return sample_runes

        controller = make_controller(tmp_path, FakeFetcher(), load_remote=load_remote)
        result = await controller.reload()
        assert result.ok
        assert result.count == 3
        assert controller.store.snapshot().source == "remote"

    @pytest.mark.asyncio
    async def test_startup_prefers_remote(self, tmp_path: Path, sample_runes):
        RuneStore(tmp_path / "runes.json").replace(sample_runes[:1])

        async def load_remote():
            return sample_runes

        controller = make_controller(tmp_path, FakeFetcher(), load_remote=load_remote)
        assert await controller.startup() == "remote"
        assert len(controller.store.current()) == 3

    @pytest.mark.asyncio
    async def test_startup_falls_back_to_disk(self, tmp_path: Path, sample_runes):
        RuneStore(tmp_path / "runes.json").replace(sample_runes)

        async def load_remote():
            raise RemoteSourceError("Invalid JSON format")

        controller = make_controller(tmp_path, FakeFetcher(), load_remote=load_remote)
        assert await controller.startup() == "disk"
        assert controller.store.current() == sample_runes
        assert controller.store.last_loaded_at.endswith(FROM_DISK_SUFFIX)

    @pytest.mark.asyncio
    async def test_startup_disk_only(self, tmp_path: Path, sample_runes):
        (tmp_path / "runes.json").write_text(
            json.dumps([r.to_json_record() for r in sample_runes], ensure_ascii=False),
            encoding="utf-8",
        )
        controller = make_controller(tmp_path, FakeFetcher())
        assert await controller.startup() == "disk"

    @pytest.mark.asyncio
    async def test_startup_empty(self, tmp_path: Path):
        controller = make_controller(tmp_path, FakeFetcher())
        assert await controller.startup() is None
        assert controller.store.current() == ()


class TestTimer:

    @pytest.mark.asyncio
    async def test_timer_refreshes(self, tmp_path: Path, three_row_page: str):
        fetcher = FakeFetcher(three_row_page)
        controller = make_controller(tmp_path, fetcher)

        controller.start_timer(0.01)
        for _ in range(100):
            if controller.last_result is not None:
                break
            await asyncio.sleep(0.01)
        await controller.stop_timer()

        assert controller.last_result.trigger == "timer"
        assert controller.last_result.ok

    @pytest.mark.asyncio
    async def test_zero_interval_disables_timer(self, tmp_path: Path):
        controller = make_controller(tmp_path, FakeFetcher())
        controller.start_timer(0)
        assert controller._timer is None
        await controller.stop_timer()
