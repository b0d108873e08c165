from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from negachess.config import AppConfig, SearchConfig
from negachess.protocol.http.app import create_app


@pytest.fixture
def app() -> FastAPI:
    return create_app(AppConfig(search=SearchConfig(depth=2, tt_capacity=10_000)))


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)
