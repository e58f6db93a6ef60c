"""
Unit tests for catalog loading.
"""

import json
from pathlib import Path

import pytest

from rotatv.catalog import CatalogLoadError, catalog_from_dict, load_catalog, parse_duration


@pytest.mark.unit
class TestParseDuration:
    """Tests for parse_duration."""

    @pytest.mark.parametrize("value,expected", [
        (90, 90.0),
        (12.5, 12.5),
        ("45", 45.0),
        ("01:30", 90.0),
        ("1:02:03", 3723.0),
        ("PT3M44S", 224.0),
        ("PT1H3M20S", 3800.0),
        ("pt10s", 10.0),
    ])
    def test_valid(self, value, expected):
        assert parse_duration(value) == expected

    @pytest.mark.parametrize("value", [None, "", 0, -5, "abc", "aa:bb", "PT"])
    def test_invalid(self, value):
        assert parse_duration(value) is None


@pytest.mark.unit
class TestLoadCatalog:
    """Tests for load_catalog."""

    def test_load_yaml(self, temp_catalog_file: Path):
        catalog = load_catalog(temp_catalog_file)

        assert [item.id for item in catalog.vods] == ["a", "b", "c"]
        assert [item.id for item in catalog.rotation_items] == ["a", "b"]
        assert catalog.vods[0].duration_seconds == 90
        assert catalog.interstitials[0].play_seconds == 24
        assert catalog.special_interstitial.label == "Everybody Wow"
        assert catalog.fallback.duration_seconds == 600

    def test_load_json(self, temp_dir: Path):
        path = temp_dir / "catalog.json"
        path.write_text(json.dumps({"vods": [{"id": 7, "label": "Seven", "duration": 70}]}))

        catalog = load_catalog(path)

        assert catalog.vods[0].id == "7"
        assert catalog.interstitials == []
        assert catalog.special_interstitial is None

    def test_missing_file(self, temp_dir: Path):
        with pytest.raises(CatalogLoadError):
            load_catalog(temp_dir / "nope.yaml")

    def test_not_a_mapping(self, temp_dir: Path):
        path = temp_dir / "catalog.yaml"
        path.write_text("- just\n- a list\n")

        with pytest.raises(CatalogLoadError):
            load_catalog(path)

    def test_malformed_yaml(self, temp_dir: Path):
        path = temp_dir / "catalog.yaml"
        path.write_text("vods: [unclosed\n")

        with pytest.raises(CatalogLoadError):
            load_catalog(path)


@pytest.mark.unit
class TestCatalogFromDict:
    """Tests for catalog_from_dict."""

    def test_entry_without_id(self):
        with pytest.raises(CatalogLoadError):
            catalog_from_dict({"vods": [{"label": "x", "duration": 10}]})

    def test_entry_without_duration(self):
        with pytest.raises(CatalogLoadError):
            catalog_from_dict({"vods": [{"id": "x"}]})

    def test_section_must_be_list(self):
        with pytest.raises(CatalogLoadError):
            catalog_from_dict({"vods": {"id": "x"}})

    def test_duplicate_ids_keep_first(self):
        catalog = catalog_from_dict({"vods": [
            {"id": "x", "label": "First", "duration": 10},
            {"id": "x", "label": "Second", "duration": 20},
        ]})

        assert len(catalog.vods) == 1
        assert catalog.vods[0].label == "First"

    def test_label_defaults_to_id(self):
        catalog = catalog_from_dict({"vods": [{"id": "x", "duration": 10}]})

        assert catalog.vods[0].label == "x"

    def test_interstitials_not_in_rotation(self):
        catalog = catalog_from_dict({"interstitials": [{"id": "m", "duration": 5}]})

        assert catalog.interstitials[0].include_in_rotation is False
        assert catalog.find_interstitial("m") is not None
        assert catalog.find("m") is None

    def test_rooms_section(self):
        catalog = catalog_from_dict({"rooms": [
            {"id": 101, "group": "Eastern Palace", "label": "Big Key Room", "duration": 24},
        ]})

        room = catalog.find_room("101")
        assert room.label == "Eastern Palace - Big Key Room"
        assert room.duration_seconds == 24
        assert room.include_in_rotation is False
        assert catalog.find("101") is None
