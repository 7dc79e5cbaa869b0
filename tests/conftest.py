from __future__ import annotations

import os
from collections.abc import Generator

import pytest

from app.config import AppSettings, ContrastSettings, FontSettings, RenderDefaults
from domain.models import RenderSettings
from tests.helpers.fakes import FixedWidthMetrics, StubSampler


def _clear_quote_env() -> None:
    for key in list(os.environ):
        if key.startswith("QUOTE_"):
            os.environ.pop(key, None)


_clear_quote_env()


@pytest.fixture(autouse=True)
def clear_quote_env() -> Generator[None, None, None]:
    _clear_quote_env()
    yield
    _clear_quote_env()


@pytest.fixture
def app_settings() -> AppSettings:
    return AppSettings(
        render=RenderDefaults(gradient="violet"),
        contrast=ContrastSettings(),
        fonts=FontSettings(),
    )


@pytest.fixture
def render_settings() -> RenderSettings:
    return RenderSettings()


@pytest.fixture
def fixed_metrics() -> FixedWidthMetrics:
    return FixedWidthMetrics()


@pytest.fixture
def stub_sampler() -> StubSampler:
    return StubSampler(128.0)
