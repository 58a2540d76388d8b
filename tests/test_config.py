"""settings.txt parsing, defaults and the typed view on top."""

import pytest

from autopull.config import (
    DEFAULT_SETTINGS, AppConfig, coerce_value, load_config, load_settings, parse_settings,
)
from autopull.errors import SettingsError


class TestCoercion:
    @pytest.mark.parametrize("raw, expected", [
        ("2", 2),
        ("0.9", 0.9),
        ("-3", -3),
        ("true", True),
        ("False", False),
        ("esc", "esc"),
        ("1280,900", "1280,900"),
        ("", ""),
        ("[broken", "[broken"),
        ("a: b", "a: b"),
        ("null", "null"),
        ("010", 10),
        ("1:30", "1:30"),
        ("on", "on"),
        ("no", "no"),
        ("1e3", 1000.0),
    ])
    def test_values(self, raw, expected):
        value = coerce_value(raw)
        assert value == expected
        assert type(value) is type(expected)


class TestParse:
    def test_skips_comments_blank_and_junk(self):
        text = "# comment\n\nfive_stars_to_pull = 3\nnot a setting\n  debug=true  \n"
        assert parse_settings(text) == {"five_stars_to_pull": 3, "debug": True}

    def test_value_may_contain_equals(self):
        assert parse_settings("window_title=a=b") == {"window_title": "a=b"}


class TestLoadSettings:
    def test_missing_file_written_with_defaults(self, tmp_path):
        path = tmp_path / "settings.txt"
        settings = load_settings(str(path))
        assert path.exists()
        assert settings == DEFAULT_SETTINGS

    def test_defaults_round_trip_with_same_types(self, tmp_path):
        path = tmp_path / "settings.txt"
        load_settings(str(path))
        reloaded = load_settings(str(path))
        assert reloaded.keys() == DEFAULT_SETTINGS.keys()
        for key, value in DEFAULT_SETTINGS.items():
            assert reloaded[key] == value
            assert type(reloaded[key]) is type(value), key

    def test_file_overrides_and_unknown_keys_kept(self, tmp_path):
        path = tmp_path / "settings.txt"
        path.write_text("five_stars_to_pull=4\nfavourite_unit=Eleanor\nlucky=7\n")
        settings = load_settings(str(path))
        assert settings["five_stars_to_pull"] == 4
        assert settings["favourite_unit"] == "Eleanor"
        assert settings["lucky"] == 7
        assert settings["five_star_threshold"] == 0.9


class TestAppConfig:
    def test_defaults(self, tmp_path):
        cfg = load_config(str(tmp_path / "settings.txt"))
        assert cfg.stop.five_stars_to_pull == 2
        assert cfg.stop.quality_templates == []
        assert cfg.anchors.draw is None
        assert cfg.loop.draw_mode == "until_gone"
        assert cfg.loop.settle_delay == pytest.approx(0.3)
        assert cfg.loop.poll_interval == pytest.approx(0.05)
        assert cfg.display.reference_height == 1080
        assert cfg.extras == {}

    def test_anchors_and_names_parsed(self):
        cfg = AppConfig.from_settings({
            "draw_anchor": "1280,900",
            "next_anchor": " 10 , 20 ",
            "quality_templates": "eleanor, rafael,,",
        })
        assert cfg.anchors.draw == (1280, 900)
        assert cfg.anchors.dismiss == (10, 20)
        assert cfg.stop.quality_templates == ["eleanor", "rafael"]

    def test_extras_hold_unknown_keys(self):
        cfg = AppConfig.from_settings({"favourite_unit": "Eleanor"})
        assert cfg.extras == {"favourite_unit": "Eleanor"}

    def test_camel_case_keys_from_old_files(self, tmp_path):
        path = tmp_path / "settings.txt"
        path.write_text("fiveStarsToPull=4\nfiveStarsToScreenshot=3\n")
        cfg = load_config(str(path))
        assert cfg.stop.five_stars_to_pull == 4
        assert cfg.stop.five_stars_to_screenshot == 3
        assert cfg.extras == {}

    def test_current_key_beats_camel_case(self):
        cfg = AppConfig.from_settings({"fiveStarsToPull": 4, "five_stars_to_pull": 6})
        assert cfg.stop.five_stars_to_pull == 6

    def test_window_title_on_stays_text(self):
        cfg = AppConfig.from_settings(parse_settings("window_title=on\n"))
        assert cfg.display.window_title == "on"

    @pytest.mark.parametrize("settings", [
        {"draw_anchor": "12"},
        {"confirm_anchor": "a,b"},
        {"draw_mode": "forever"},
        {"roi_size": "big"},
    ])
    def test_bad_values_raise(self, settings):
        with pytest.raises(SettingsError):
            AppConfig.from_settings(settings)
