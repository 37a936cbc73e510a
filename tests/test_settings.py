#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
测试用户设置: 仓库缓存, 本地文件存储, Supabase 存储
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import asyncio

import httpx
import orjson

from config.system_config import SystemConfig
from models.enums import StrategyKind
from settings.base import UserSettings
from settings.file_store import JsonFileSettingsStore
from settings.repository import SettingsRepository
from settings.supabase_store import SupabaseSettingsStore

from fakes import FlakyStore


def make_config():
    return SystemConfig(SUPABASE_URL="https://demo.supabase.co", SUPABASE_KEY="anon-key", USER_ID="u1")


def test_user_settings_from_dict_ignores_unknown_fields():
    settings = UserSettings.from_dict({
        "id": 3,
        "user_id": "u1",
        "trading_strategy": "aggressive",
        "virtual_balance": "1500",
        "auto_trading_enabled": None,
    })
    assert settings.trading_strategy == StrategyKind.AGGRESSIVE
    assert settings.virtual_balance == 1500.0
    assert settings.auto_trading_enabled is False


def test_repository_updates_cache_only_on_success():
    async def run():
        store = FlakyStore()
        repository = SettingsRepository(store)
        await repository.load()

        assert await repository.update(virtual_balance=2000)
        assert repository.settings.virtual_balance == 2000

        store.fail = True
        assert not await repository.update(virtual_balance=3000)
        assert repository.settings.virtual_balance == 2000
        assert not repository.dirty

    asyncio.run(run())


def test_repository_unconfirmed_cleared_by_later_write():
    async def run():
        repository = SettingsRepository(FlakyStore())
        repository.mark_unconfirmed(virtual_balance=980)
        assert repository.dirty

        assert await repository.update(virtual_balance=980)
        assert not repository.dirty
        assert repository.unconfirmed == {}

    asyncio.run(run())


def test_file_store_round_trip(tmp_path):
    async def run():
        path = tmp_path / "settings.json"
        store = JsonFileSettingsStore(str(path))
        assert await store.load() == UserSettings()

        assert await store.save({"trading_strategy": StrategyKind.AGGRESSIVE, "virtual_balance": 2500.0})
        assert await store.save({"auto_trading_enabled": True})

        loaded = await JsonFileSettingsStore(str(path)).load()
        assert loaded.trading_strategy == StrategyKind.AGGRESSIVE
        assert loaded.virtual_balance == 2500.0
        assert loaded.auto_trading_enabled is True
        assert orjson.loads(path.read_bytes())["trading_strategy"] == "aggressive"

    asyncio.run(run())


def test_file_store_corrupt_file_uses_defaults(tmp_path):
    async def run():
        path = tmp_path / "settings.json"
        path.write_text("{not json")
        assert await JsonFileSettingsStore(str(path)).load() == UserSettings()

    asyncio.run(run())


def test_supabase_store_load_existing_row():
    async def run():
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[{
                "id": 1,
                "user_id": "u1",
                "super_brain_monitoring": True,
                "auto_trading_enabled": True,
                "trading_strategy": "aggressive",
                "virtual_balance": 5000,
            }])

        config = make_config()
        client = httpx.AsyncClient(base_url=config.SUPABASE_URL, transport=httpx.MockTransport(handler))
        store = SupabaseSettingsStore(config, http_client=client)

        settings = await store.load()
        assert settings.trading_strategy == StrategyKind.AGGRESSIVE
        assert settings.virtual_balance == 5000
        assert settings.super_brain_monitoring is True

        request = seen[0]
        assert request.method == "GET"
        assert request.url.path == "/rest/v1/user_settings"
        assert request.url.params["user_id"] == "eq.u1"
        await store.close()

    asyncio.run(run())


def test_supabase_store_creates_defaults():
    """没有设置记录时创建默认设置"""
    async def run():
        methods = []

        def handler(request: httpx.Request) -> httpx.Response:
            methods.append(request.method)
            if request.method == "GET":
                return httpx.Response(200, json=[])
            body = orjson.loads(request.content)
            assert body["user_id"] == "u1"
            assert body["trading_strategy"] == "conservative"
            return httpx.Response(201, json=[body])

        config = make_config()
        client = httpx.AsyncClient(base_url=config.SUPABASE_URL, transport=httpx.MockTransport(handler))
        settings = await SupabaseSettingsStore(config, http_client=client).load()

        assert methods == ["GET", "POST"]
        assert settings == UserSettings()

    asyncio.run(run())


def test_supabase_store_save():
    async def run():
        reply = {"code": 200, "rows": [{"user_id": "u1"}]}
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "PATCH"
            requests.append(request)
            return httpx.Response(reply["code"], json=reply["rows"])

        config = make_config()
        client = httpx.AsyncClient(base_url=config.SUPABASE_URL, transport=httpx.MockTransport(handler))
        store = SupabaseSettingsStore(config, http_client=client)

        assert await store.save({"trading_strategy": StrategyKind.AGGRESSIVE})
        assert orjson.loads(requests[0].content) == {"trading_strategy": "aggressive"}
        assert requests[0].headers["Prefer"] == "return=representation"

        reply["code"] = 500
        assert not await store.save({"virtual_balance": 2000})

    asyncio.run(run())


def test_supabase_store_save_without_row_fails():
    """PATCH 没有更新任何行时视为保存失败"""
    async def run():
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[])

        config = make_config()
        client = httpx.AsyncClient(base_url=config.SUPABASE_URL, transport=httpx.MockTransport(handler))
        store = SupabaseSettingsStore(config, http_client=client)
        assert not await store.save({"virtual_balance": 2000})

        repository = SettingsRepository(store)
        assert not await repository.update(virtual_balance=2000)
        assert repository.settings.virtual_balance == 1000

    asyncio.run(run())


def test_supabase_store_network_error():
    async def run():
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("offline", request=request)

        config = make_config()
        client = httpx.AsyncClient(base_url=config.SUPABASE_URL, transport=httpx.MockTransport(handler))
        store = SupabaseSettingsStore(config, http_client=client)

        assert await store.load() == UserSettings()
        assert not await store.save({"virtual_balance": 2000})

    asyncio.run(run())


def test_system_config_from_env(monkeypatch):
    monkeypatch.setenv("AUTOTRADER_SUPABASE_URL", "https://demo.supabase.co/")
    monkeypatch.setenv("AUTOTRADER_SUPABASE_KEY", "k")
    monkeypatch.setenv("AUTOTRADER_USER_ID", "u1")
    monkeypatch.setenv("AUTOTRADER_SYMBOLS", "btc, eth")

    config = SystemConfig.from_env()
    assert config.SUPABASE_URL == "https://demo.supabase.co"
    assert config.SYMBOLS == ["BTC", "ETH"]
    assert config.use_supabase
