"""
Tests for thresholds.yaml loading.
"""

from wealth_rm.clients.thresholds import (
    THRESHOLDS_PATH,
    RankingThresholds,
    get_thresholds,
    load_thresholds,
    reload_thresholds,
)


class TestLoadThresholds:
    def test_shipped_file_matches_defaults(self):
        assert THRESHOLDS_PATH.exists()
        assert load_thresholds() == RankingThresholds()

    def test_missing_file_uses_defaults(self, tmp_path):
        assert load_thresholds(tmp_path / "absent.yaml") == RankingThresholds()

    def test_partial_override(self, tmp_path):
        path = tmp_path / "thresholds.yaml"
        path.write_text("attention:\n  stale_contact_days: 30\nsearch:\n  semantic_min_query_length: 5\n")
        thresholds = load_thresholds(path)
        assert thresholds.stale_contact_days == 30
        assert thresholds.semantic_min_query_length == 5
        assert thresholds.missing_contact_days == 999

    def test_invalid_yaml_falls_back(self, tmp_path, caplog):
        path = tmp_path / "thresholds.yaml"
        path.write_text("attention: [unclosed\n")
        assert load_thresholds(path) == RankingThresholds()
        assert "using defaults" in caplog.text

    def test_non_mapping_falls_back(self, tmp_path):
        path = tmp_path / "thresholds.yaml"
        path.write_text("- just\n- a list\n")
        assert load_thresholds(path) == RankingThresholds()

    def test_bad_value_falls_back(self, tmp_path):
        path = tmp_path / "thresholds.yaml"
        path.write_text("attention:\n  stale_contact_days: soon\n")
        assert load_thresholds(path) == RankingThresholds()


class TestCaching:
    def test_get_is_cached_and_reload_replaces(self):
        first = get_thresholds()
        assert get_thresholds() is first
        assert reload_thresholds() == first
