import argparse

import pytest

from linemon.cli import build_arg_parser
from linemon.config import (
    DEFAULT_INTERVAL_MS,
    PRESETS,
    apply_config,
    config_defaults_from,
    get_bool_env,
    load_toml_config,
    resolve_monitor_config,
    resolved_config_dict,
)
from linemon.lines import ConfigError, Polarity, Pull, Role


def _resolve(argv, cfg=None):
    args = build_arg_parser().parse_args(argv)
    apply_config(args, cfg)
    return args, resolve_monitor_config(args)


@pytest.mark.parametrize("name", sorted(PRESETS))
def test_presets_are_valid_layouts(name):
    _, mc = _resolve(["--preset", name])
    assert mc.bindings
    assert mc.interval_s == pytest.approx(PRESETS[name].interval_ms / 1000.0)


def test_preset_cadences():
    assert PRESETS["buttons"].interval_ms == 10
    assert PRESETS["leak"].interval_ms == 100
    assert PRESETS["dryer"].interval_ms == 250


def test_preset_wiring_is_kept_per_deployment():
    buttons = PRESETS["buttons"].bindings
    assert {b.pull for b in buttons} == {Pull.NONE}
    assert {b.polarity for b in buttons} == {Polarity.ACTIVE_LOW}
    dryer = PRESETS["dryer"].bindings[0]
    assert (dryer.pull, dryer.polarity) == (Pull.DOWN, Polarity.ACTIVE_HIGH)
    dual = PRESETS["leak-dual"].bindings
    assert [b.role for b in dual].count(Role.POWER_SOURCE) == 2


def test_defaults(monkeypatch):
    monkeypatch.delenv("LINEMON_PIN_FACTORY", raising=False)
    monkeypatch.delenv("LINEMON_JSON", raising=False)
    args, mc = _resolve(["--preset", "buttons"])
    assert mc.pin_factory == "lgpio"
    assert mc.emit_every_tick is False
    assert args.json is False
    assert args.verbose is False
    assert args.doctor_seconds == 30.0


def test_env_overrides_builtin_defaults(monkeypatch):
    monkeypatch.setenv("LINEMON_PIN_FACTORY", "mock")
    monkeypatch.setenv("LINEMON_JSON", "yes")
    args, mc = _resolve(["--preset", "leak"])
    assert mc.pin_factory == "mock"
    assert args.json is True


def test_cli_interval_overrides_preset():
    _, mc = _resolve(["--preset", "dryer", "--interval-ms", "50"])
    assert mc.interval_s == pytest.approx(0.05)


def test_cli_lines_override_preset_lines():
    _, mc = _resolve(["--preset", "leak-dual", "--line", "BOARD22:input:up:active_low:door"])
    assert [b.name for b in mc.bindings] == ["door"]
    assert mc.bindings[0].bit_position == 0
    # Interval still comes from the preset.
    assert mc.interval_s == pytest.approx(0.1)


def test_lines_without_preset_use_default_interval():
    _, mc = _resolve(["--line", "17", "--line", "27"])
    assert [b.bit_position for b in mc.bindings] == [0, 1]
    assert mc.interval_s == pytest.approx(DEFAULT_INTERVAL_MS / 1000.0)


def test_no_lines_is_a_config_error():
    with pytest.raises(ConfigError, match="no lines configured"):
        _resolve(["--json"])


@pytest.mark.parametrize("interval", ["0", "-5"])
def test_non_positive_interval_rejected(interval):
    with pytest.raises(ConfigError, match="positive"):
        _resolve(["--preset", "leak", "--interval-ms", interval])


TOML = """
[monitor]
preset = "dryer"
interval_ms = 500
emit_every_tick = true
pin_factory = "mock"

[logging]
json = true
verbose = true

[[lines]]
name = "sensor_1"
pin = "BOARD16"
role = "powered_input"
pull = "down"

[[lines]]
name = "rail"
pin = "BOARD11"
role = "power_source"
"""


def test_toml_config_fills_unset_values(tmp_path):
    path = tmp_path / "linemon.toml"
    path.write_text(TOML)
    cfg = load_toml_config(str(path))
    args, mc = _resolve(["--config", str(path)], cfg)
    assert mc.preset == "dryer"
    assert mc.interval_s == pytest.approx(0.5)
    assert mc.emit_every_tick is True
    assert mc.pin_factory == "mock"
    assert args.json is True and args.verbose is True
    # [[lines]] replace the preset's lines.
    assert [(b.name, b.role, b.bit_position) for b in mc.bindings] == [
        ("sensor_1", Role.POWERED_INPUT, 0),
        ("rail", Role.POWER_SOURCE, None),
    ]


def test_cli_beats_toml(tmp_path):
    path = tmp_path / "linemon.toml"
    path.write_text(TOML)
    cfg = load_toml_config(str(path))
    args, mc = _resolve(
        ["--config", str(path), "--interval-ms", "20", "--change-only", "--no-json", "--line", "BOARD18"],
        cfg,
    )
    assert mc.interval_s == pytest.approx(0.02)
    assert mc.emit_every_tick is False
    assert args.json is False
    assert [b.pin for b in mc.bindings] == ["BOARD18"]


def test_cli_preset_beats_toml_lines():
    cfg = {"lines": [{"pin": "BOARD22"}, {"pin": "BOARD24"}]}
    _, mc = _resolve(["--preset", "dryer"], cfg)
    assert [b.pin for b in mc.bindings] == ["BOARD18"]
    assert mc.preset == "dryer"


def test_toml_lines_beat_toml_preset():
    cfg = {"monitor": {"preset": "dryer"}, "lines": [{"pin": "BOARD22"}, {"pin": "BOARD24"}]}
    _, mc = _resolve(["--interval-ms", "50"], cfg)
    assert [b.pin for b in mc.bindings] == ["BOARD22", "BOARD24"]


@pytest.mark.parametrize("section, key", [
    ("monitor", "emit_every_tick"), ("logging", "json"), ("logging", "verbose"), ("logging", "no_banner"),
])
def test_toml_flags_must_be_booleans(section, key):
    cfg = {section: {key: "false"}}
    with pytest.raises(ConfigError, match=key):
        config_defaults_from(cfg)


def test_toml_boolean_false_is_kept():
    args, mc = _resolve(["--preset", "leak"], {"monitor": {"emit_every_tick": False}, "logging": {"json": False}})
    assert mc.emit_every_tick is False
    assert args.json is False


def test_bad_toml_is_config_error(tmp_path):
    path = tmp_path / "bad.toml"
    path.write_text("[monitor\npreset=")
    with pytest.raises(ConfigError, match="invalid TOML"):
        load_toml_config(str(path))
    with pytest.raises(ConfigError, match="cannot read"):
        load_toml_config(str(tmp_path / "missing.toml"))


def test_lines_must_be_array_of_tables():
    with pytest.raises(ConfigError):
        config_defaults_from({"lines": {"pin": 17}})


def test_unknown_preset_in_config():
    args = argparse.Namespace(preset="toaster")
    with pytest.raises(ConfigError, match="unknown preset"):
        resolve_monitor_config(args)


def test_resolved_config_dict_matches_toml_shape():
    args, mc = _resolve(["--preset", "leak-dual"])
    d = resolved_config_dict(mc, args)
    assert d["monitor"]["preset"] == "leak-dual"
    assert d["monitor"]["interval_ms"] == 100.0
    assert d["lines"][0] == {"pin": "BOARD11", "role": "power_source", "pull": "none",
                             "polarity": "active_high", "name": "rail_1"}
    assert d["lines"][2]["bit"] == 0


@pytest.mark.parametrize("raw, expected", [
    ("1", True), ("on", True), ("TRUE", True), ("0", False), ("off", False), ("maybe", False),
])
def test_get_bool_env(monkeypatch, raw, expected):
    monkeypatch.setenv("LINEMON_TEST_FLAG", raw)
    assert get_bool_env("LINEMON_TEST_FLAG") is expected


def test_unknown_pin_factory_is_config_error(monkeypatch):
    monkeypatch.setenv("LINEMON_PIN_FACTORY", "bcm2835")
    with pytest.raises(ConfigError, match="unknown pin factory"):
        _resolve(["--preset", "buttons"])
