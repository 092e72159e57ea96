"""
Shared pytest fixtures for resolve-spine tests.

This module provides:
- A background ``CallContext``
- A ``mock`` provider package with local, native and failing functions
- An external provider app (``ext/test``) served through FastAPI's
  ``TestClient`` so remote dispatch runs without sockets
- Settings isolation (cache cleared, no ``RESOLVESPINE_*`` leakage)
"""

from __future__ import annotations

from collections.abc import Generator
from typing import Any

import pytest
from fastapi.testclient import TestClient
from pydantic import BaseModel

from resolvespine.core.context import CallContext
from resolvespine.core.settings import get_settings
from resolvespine.externalserver import create_provider_app
from resolvespine.runtime.package import InternalPackage, PackageRecord
from resolvespine.runtime.provider import LocalProviderFn, NativeProviderFn, Params, Returns

# =============================================================================
# Settings isolation
# =============================================================================


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch, tmp_path) -> Generator[None, None, None]:
    """Each test sees default settings unless it sets RESOLVESPINE_* itself."""
    import os

    for key in list(os.environ):
        if key.startswith("RESOLVESPINE_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def ctx() -> CallContext:
    return CallContext.background()


# =============================================================================
# Mock internal package
# =============================================================================


class EchoParams(Params[dict[str, Any]]):
    pass


class EchoReturns(Returns[dict[str, Any]]):
    pass


def echo(ctx: CallContext, params: EchoParams) -> EchoReturns:
    return EchoReturns(returns=params.params)


def fail(ctx: CallContext, params: EchoParams) -> EchoReturns:
    raise RuntimeError("mock failure")


def reveal(ctx: CallContext, value: Any) -> Any:
    """Native fn whose result contains a new pending call."""
    return {
        "$returns": {
            "nested": {
                "$do": "echo",
                "$provider": "mock",
                "$params": {"from": "reveal"},
            }
        }
    }


MOCK_TEMPLATE = """\
"#Echo":
  $do: echo
  $provider: mock
"""


class CallRecorder:
    """Wraps provider functions and records the params of every call."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, Any]] = []

    def wrap(self, name: str, fn: Any) -> NativeProviderFn:
        def _call(ctx: CallContext, value: Any) -> Any:
            self.calls.append((name, value.get("$params")))
            return fn.call(ctx, value)

        return NativeProviderFn(_call)


@pytest.fixture
def recorder() -> CallRecorder:
    return CallRecorder()


@pytest.fixture
def mock_package(recorder: CallRecorder) -> InternalPackage:
    return InternalPackage(
        "mock",
        MOCK_TEMPLATE,
        {
            "echo": recorder.wrap("echo", LocalProviderFn.from_handler(echo)),
            "fail": recorder.wrap("fail", LocalProviderFn.from_handler(fail)),
            "reveal": recorder.wrap("reveal", NativeProviderFn(reveal)),
        },
    )


# =============================================================================
# External provider (ext/test)
# =============================================================================


class UpperInput(BaseModel):
    input: str


class UpperOutput(BaseModel):
    output: str


def upper(ctx: CallContext, params: UpperInput) -> UpperOutput:
    if params.input == "boom":
        raise ValueError("boom requested")
    return UpperOutput(output=params.input.upper())


EXT_TEMPLATE = """\
"#Upper":
  $do: upper
  $provider: test
"""


@pytest.fixture
def provider_app():
    return create_provider_app("/ext", {"upper": upper})


@pytest.fixture
def provider_client(provider_app) -> Generator[TestClient, None, None]:
    with TestClient(provider_app, base_url="http://provider.test") as client:
        yield client


@pytest.fixture
def ext_record() -> PackageRecord:
    return PackageRecord.model_validate(
        {
            "name": "test",
            "mountPath": "ext/test",
            "provider": {"protocol": "http", "endpoint": "http://provider.test/ext"},
            "templates": {"main.yaml": EXT_TEMPLATE},
        }
    )
