import json
import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from presets import PRINT_SIZES, TARGET_SIZES, EffectConfig, Preset, print_canvas_size


class TestEffectConfig:
    def test_canonical_json(self):
        cfg = EffectConfig("glass_dots", {"ior": 25, "blur_amount": 50})
        assert cfg.to_json() == '{"options":{"blur_amount":50,"ior":25},"variant":"glass_dots"}'

    def test_equality_and_hash_by_value(self):
        a = EffectConfig("pfp", {"a": 1, "b": 2})
        b = EffectConfig("pfp", {"b": 2, "a": 1})
        assert a == b
        assert hash(a) == hash(b)
        assert a != EffectConfig("pfp", {"a": 1, "b": 3})

    def test_immutable(self):
        cfg = EffectConfig("pfp", {"a": 1})
        with pytest.raises(TypeError):
            cfg.options["a"] = 2
        with pytest.raises(AttributeError):
            cfg.variant = "other"

    def test_with_options_copies(self):
        cfg = EffectConfig("pfp", {"a": 1})
        new = cfg.with_options(a=2, b=3)
        assert cfg.get("a") == 1
        assert dict(new.options) == {"a": 2, "b": 3}

    def test_merged_can_switch_variant(self):
        cfg = EffectConfig("pfp", {"a": 1}).merged({"variant": "wallpaper", "b": 2})
        assert cfg.variant == "wallpaper"
        assert dict(cfg.options) == {"a": 1, "b": 2}

    def test_json_roundtrip(self):
        cfg = EffectConfig("value_aliasing", {"pure_value": True, "lower_limit": 10})
        assert EffectConfig.from_json(cfg.to_json()) == cfg


class TestPreset:
    def test_save_load(self, tmp_path):
        p = Preset(1, EffectConfig("wallpaper", {"resolution": 70}), target="desktop")
        path = str(tmp_path / "sub" / "preset.json")
        p.save(path)
        loaded = Preset.load(path)
        assert loaded.config == p.config
        assert loaded.target == "desktop"
        assert json.loads((tmp_path / "sub" / "preset.json").read_text())["variant"] == "wallpaper"

    def test_defaults_when_fields_missing(self):
        p = Preset.from_json('{"variant": "pfp"}')
        assert p.version == 1
        assert p.target == "phone"
        assert dict(p.config.options) == {}


class TestSizes:
    def test_targets(self):
        assert TARGET_SIZES["phone"] == (1260, 2800)
        assert TARGET_SIZES["desktop"] == (3840, 2160)

    def test_print_orientation(self):
        assert print_canvas_size("us_8x10") == (2400, 3000)
        assert print_canvas_size("us_8x10", "landscape") == (3000, 2400)
        assert print_canvas_size("iso_a4") == (2481, 3507)

    def test_original_ratio(self):
        assert print_canvas_size("original") == (3600, 3600)
        assert print_canvas_size("original", "landscape", (400, 200)) == (3600, 1800)
        assert print_canvas_size("original", "portrait", (400, 200)) == (1800, 3600)

    def test_ratio_group_present(self):
        assert PRINT_SIZES["ratio_16:9"].is_ratio
        assert PRINT_SIZES["ratio_3:2"].w == 18
