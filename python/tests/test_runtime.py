from __future__ import annotations

import importlib
import logging
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]
PYTHON_DIR = ROOT / "python"
sys.path.insert(0, str(PYTHON_DIR))

lazykit = importlib.import_module("lazykit")
runtime = importlib.import_module("lazykit.runtime")
lazy_proxy = importlib.import_module("lazykit.runtime.lazy_proxy")
env = importlib.import_module("lazykit.runtime.env")
structured_accessor = importlib.import_module("lazykit.runtime.structured_accessor")


def test_layer_view_redirects_its_key_and_memoizes_prior(counter) -> None:
    target = lazykit.lazy({"a": lambda _: "final a", "b": lambda _: "b"})
    view = lazy_proxy.LayerView(target, "a", counter.bump)

    assert view.a == 1
    assert view.a == 1
    assert view.b == "b"
    assert counter.count == 1
    assert not lazykit.is_computed(target, "a")


def test_layer_view_retries_failed_prior() -> None:
    attempts = []

    def prior():
        attempts.append(1)
        if len(attempts) == 1:
            raise RuntimeError("boom")
        return "ok"

    view = lazy_proxy.LayerView(lazykit.lazy({}), "a", prior)

    with pytest.raises(RuntimeError):
        view.a
    assert view.a == "ok"


def test_layer_view_is_read_only() -> None:
    view = lazy_proxy.LayerView(lazykit.lazy({"a": lambda _: 1}), "a", lambda: 0)

    with pytest.raises(lazykit.ReadOnlyContainerError):
        view.a = 2
    with pytest.raises(lazykit.ReadOnlyContainerError):
        del view.a


def test_layer_view_forwards_missing_attributes_as_attribute_error() -> None:
    view = lazy_proxy.LayerView(lazykit.lazy({"a": lambda _: 1}), "a", lambda: 0)

    with pytest.raises(AttributeError, match="'nope'"):
        view.nope
    assert dir(view) == ["a"]
    assert repr(view).startswith("LayerView('a' -> LazyContainer(")


def test_env_config_defaults() -> None:
    config = env.EnvConfig({})

    assert config.log_level == logging.WARNING
    assert config.threadsafe is False
    assert config.json_output is False
    assert config["LAZYKIT_LOG_LEVEL"] == "WARNING"


def test_env_config_reads_values() -> None:
    config = env.EnvConfig(
        {"LAZYKIT_LOG_LEVEL": "debug", "LAZYKIT_THREADSAFE": "Yes", "LAZYKIT_JSON": "1"}
    )

    assert config.log_level == logging.DEBUG
    assert config.threadsafe is True
    assert config.json_output is True


def test_env_config_defaults_to_os_environ(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LAZYKIT_THREADSAFE", "on")

    assert env.EnvConfig().threadsafe is True


def test_env_config_rejects_bad_values() -> None:
    config = env.EnvConfig({"LAZYKIT_THREADSAFE": "maybe", "LAZYKIT_LOG_LEVEL": "loud"})

    with pytest.raises(ValueError, match="LAZYKIT_THREADSAFE must be a boolean"):
        config.threadsafe
    with pytest.raises(ValueError, match="unknown log level: loud"):
        config.log_level


def test_parse_log_level_accepts_numbers() -> None:
    assert env.parse_log_level("15") == 15
    assert env.parse_log_level(" info ") == logging.INFO


@pytest.mark.parametrize(
    "text, expected",
    [
        ("3", 3),
        ('{"a": [1, 2]}', {"a": [1, 2]}),
        ("true", True),
        ("hello", "hello"),
        ("", ""),
    ],
)
def test_parse_value(text: str, expected) -> None:
    assert structured_accessor.parse_value(text) == expected


def test_to_json_falls_back_for_unencodable_values() -> None:
    assert structured_accessor.to_json({"a": (1, 2)}) == '{"a": [1, 2]}'
    assert structured_accessor.to_json({"s": {3}}) == '{"s": [3]}'
    assert structured_accessor.to_json(object()).startswith('"<object object')


def test_query_applies_jmespath_to_resolved_properties() -> None:
    c = lazykit.lazy(
        {
            "users": lambda _: [{"name": "ada", "admin": True}, {"name": "bob", "admin": False}],
            "count": lambda r: len(r.users),
        }
    )

    assert structured_accessor.query(c, "users[?admin].name") == ["ada"]
    assert structured_accessor.query(c, "count") == 2


def test_query_only_evaluates_named_properties(counter) -> None:
    c = lazykit.lazy({"a": lambda _: 1, "b": lambda _: counter.bump()})

    assert structured_accessor.query(c, "a", ["a"]) == 1
    assert counter.count == 0


def test_runtime_helpers_load_on_first_use() -> None:
    assert runtime.parse_value is structured_accessor.parse_value
    assert runtime.EnvConfig is env.EnvConfig
    assert lazykit.is_computed(runtime.helpers, "parse_value")
    assert set(lazykit.keys(runtime.helpers)) == set(runtime.HELPER_REGISTRY)


def test_runtime_rejects_unknown_helpers() -> None:
    with pytest.raises(AttributeError, match="has no attribute 'missing'"):
        runtime.missing


def test_inspection_helpers_see_through_nested_layer_views() -> None:
    target = lazykit.lazy({"a": lambda _: "final", "b": lambda _: [1, 2]})
    view = lazy_proxy.LayerView(lazy_proxy.LayerView(target, "a", lambda: "inner"), "a", lambda: "outer")

    assert lazykit.keys(view) == ("a", "b")
    assert lazykit.snapshot(view) == {"a": "outer", "b": [1, 2]}
    assert lazykit.is_computed(view, "b")
    assert not lazykit.is_computed(view, "a")
    assert structured_accessor.query(view, "b[0]") == 1
