from __future__ import annotations

import pytest

import dynowire


def test_init_exposes_lazy_exports_via_getattr() -> None:
    assert dynowire._normalize_repo_version("1.2.3") == "1.2.3"
    assert dynowire._normalize_repo_version("1.2.3-rc.4") == "1.2.3rc4"

    assert callable(dynowire.DynamoClient)
    assert callable(dynowire.ClientConfig)
    assert callable(dynowire.BatchOrchestrator)
    assert callable(dynowire.BatchPut)
    assert callable(dynowire.RequestPipeline)
    assert callable(dynowire.ConcurrencyLimiter)
    assert callable(dynowire.map_error_response)
    assert callable(dynowire.sign)
    assert dynowire.backoff_delay(1) == 0.1


def test_init_rejects_unknown_names() -> None:
    with pytest.raises(AttributeError):
        dynowire.Table  # noqa: B018


def test_all_names_resolve() -> None:
    for name in dynowire.__all__:
        assert getattr(dynowire, name) is not None
