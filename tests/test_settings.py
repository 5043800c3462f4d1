import json

import pytest

from spo.errors import ConfigError
from spo.settings import (
    DEFAULT_OPTIONS,
    build_request,
    category_enabled,
    deep_merge,
    load_config_file,
    save_default_config,
    validate,
)


def test_validate_defaults():
    opts = validate({})
    assert opts["inputDir"] == "./"
    assert opts["outputDir"] == "./dist"
    assert opts["backup"] is False
    assert opts["verbose"] is False
    for key in ("html", "css", "js", "images"):
        assert opts[key]["enabled"] is True


def test_validate_nested_override_keeps_siblings():
    opts = validate({"css": {"level": 1}})
    assert opts["css"]["level"] == 1
    assert opts["css"]["keep_bang_comments"] == DEFAULT_OPTIONS["css"]["keep_bang_comments"]
    assert opts["css"]["enabled"] is True
    assert opts["html"] == DEFAULT_OPTIONS["html"]
    assert opts["outputDir"] == "./dist"


def test_validate_boolean_category_only_toggles_enabled():
    opts = validate({"images": False})
    assert opts["images"]["enabled"] is False
    assert opts["images"]["jpeg"] == DEFAULT_OPTIONS["images"]["jpeg"]
    assert not category_enabled(opts, "image")


def test_validate_deep_nested_merge():
    opts = validate({"images": {"jpeg": {"quality": 60}}})
    assert opts["images"]["jpeg"]["quality"] == 60
    assert opts["images"]["jpeg"]["progressive"] is True


def test_validate_unknown_keys_pass_through():
    opts = validate({"cdn": {"url": "https://example.test"}, "html": {"custom": 1}})
    assert opts["cdn"] == {"url": "https://example.test"}
    assert opts["html"]["custom"] == 1


def test_validate_rejects_bad_category_type():
    with pytest.raises(ConfigError):
        validate({"css": "yes"})


def test_deep_merge_lists_replace_and_inputs_untouched():
    target = {"a": {"items": [1, 2, 3], "keep": True}}
    source = {"a": {"items": [9]}}
    merged = deep_merge(target, source)

    assert merged == {"a": {"items": [9], "keep": True}}
    assert target == {"a": {"items": [1, 2, 3], "keep": True}}
    assert source == {"a": {"items": [9]}}


def test_deep_merge_object_over_primitive():
    assert deep_merge({"x": True}, {"x": {"y": 1}}) == {"x": {"y": 1}}


def test_validate_does_not_share_default_state():
    opts = validate({})
    opts["css"]["level"] = 0
    assert DEFAULT_OPTIONS["css"]["level"] == 2


def test_load_config_file(tmp_path):
    cfg = tmp_path / "cfg.json"
    cfg.write_text(json.dumps({"outputDir": "out", "js": False}))
    assert load_config_file(cfg) == {"outputDir": "out", "js": False}


def test_load_config_file_missing(tmp_path):
    with pytest.raises(ConfigError):
        load_config_file(tmp_path / "missing.json")


def test_load_config_file_malformed(tmp_path):
    cfg = tmp_path / "cfg.json"
    cfg.write_text("{not json")
    with pytest.raises(ConfigError):
        load_config_file(cfg)


def test_load_config_file_not_an_object(tmp_path):
    cfg = tmp_path / "cfg.json"
    cfg.write_text("[1, 2]")
    with pytest.raises(ConfigError):
        load_config_file(cfg)


def test_load_config_file_not_utf8(tmp_path):
    cfg = tmp_path / "cfg.json"
    cfg.write_bytes(b'{"inputDir": "\xff"}')
    with pytest.raises(ConfigError, match="not UTF-8"):
        load_config_file(cfg)


def test_save_default_config_roundtrip(tmp_path):
    path = save_default_config(tmp_path / "optimizer.config.json")
    assert load_config_file(path) == DEFAULT_OPTIONS

    with pytest.raises(ConfigError):
        save_default_config(path)
    save_default_config(path, overwrite=True)


def test_build_request():
    opts = validate({"inputDir": "site", "outputDir": "out", "css": False, "backup": True})
    req = build_request(opts)

    assert str(req.input_root) == "site"
    assert str(req.output_root) == "out"
    assert req.categories == ("html", "js", "image")
    assert req.backup is True
    assert req.config_for("js")["drop_console"] is True
    assert "enabled" not in req.config_for("js")


def test_request_is_immutable():
    req = build_request(validate({}))
    with pytest.raises(Exception):
        req.backup = True
    with pytest.raises(TypeError):
        req.category_config["html"] = {}
