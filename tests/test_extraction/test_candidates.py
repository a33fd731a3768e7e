"""Tests for candidate extraction."""

from place_extractor.core.constants import DEMO_TEXT
from place_extractor.extraction.candidates import (
    dedup_key,
    deduplicate,
    extract_candidates,
    looks_like_place,
    normalize_name,
    split_lines,
    split_location_hint,
)
from place_extractor.models import Candidate


class TestSplitLines:
    def test_splits_on_newlines_and_list_separators(self):
        text = "Kumamoto Castle; Suizenji Garden • Aso Shrine – Kurokawa Onsen — Beppu Station"
        assert split_lines(text) == [
            "Kumamoto Castle",
            "Suizenji Garden",
            "Aso Shrine",
            "Kurokawa Onsen",
            "Beppu Station",
        ]

    def test_strips_emoji_and_drops_empty_segments(self):
        text = "🏯 Kumamoto Castle ✨\n\n   \n⭐️ Suizenji Garden"
        assert split_lines(text) == ["Kumamoto Castle", "Suizenji Garden"]

    def test_strips_chevron_markers(self):
        assert split_lines("<<Dazaifu Tenmangu>>") == ["Dazaifu Tenmangu"]


class TestSplitLocationHint:
    def test_short_second_part_becomes_hint(self):
        assert split_location_hint("Hotel New Tsuruta, Beppu") == (
            "Hotel New Tsuruta",
            "Beppu",
        )

    def test_long_second_part_keeps_whole_line(self):
        line = "Hotel New Tsuruta, right next to the sea in Beppu city"
        assert split_location_hint(line) == (line, None)

    def test_empty_second_part_keeps_whole_line(self):
        assert split_location_hint("Tap Stay Hotel Saga,") == ("Tap Stay Hotel Saga,", None)

    def test_more_than_one_comma_keeps_whole_line(self):
        line = "Hotel, Beppu, Oita"
        assert split_location_hint(line) == (line, None)


class TestNormalizeName:
    def test_removes_brackets_quotes_and_trailing_punctuation(self):
        assert normalize_name('"[Nagasaki   House]"  Burabura!!') == "Nagasaki House Burabura"

    def test_collapses_whitespace(self):
        assert normalize_name("  Ambicia \t Sasebo ") == "Ambicia Sasebo"


class TestLooksLikePlace:
    def test_accepts_poi_suffix_case_insensitively(self):
        assert looks_like_place("the old onsen") is True
        assert looks_like_place("cheap business HOTEL") is True

    def test_accepts_title_case_phrase(self):
        assert looks_like_place("Nagasaki House Burabura") is True
        assert looks_like_place("Ambicia Sasebo") is True

    def test_rejects_lowercase_phrase_without_suffix(self):
        assert looks_like_place("foo") is False
        assert looks_like_place("we went shopping") is False

    def test_rejects_short_names(self):
        assert looks_like_place("Ab") is False

    def test_rejects_mixed_case_sentence(self):
        assert looks_like_place("Dinner at the port") is False


class TestDeduplicate:
    def _candidate(self, name: str, position: int, hint: str | None = None) -> Candidate:
        return Candidate(raw=name, main_name=name, hint_city=hint, position=position)

    def test_first_occurrence_wins(self):
        result = deduplicate(
            [
                self._candidate("Aso Shrine", 0),
                self._candidate("ASO shrine", 1),
            ]
        )
        assert [c.position for c in result] == [0]

    def test_hint_from_later_duplicate_is_merged(self):
        result = deduplicate(
            [
                self._candidate("Hiiragi Cottage", 0),
                self._candidate("Hiiragi Cottage", 1, "Hita"),
            ]
        )
        assert len(result) == 1
        assert result[0].position == 0
        assert result[0].hint_city == "Hita"

    def test_hintless_repeat_after_merge_is_dropped(self):
        result = deduplicate(
            [
                self._candidate("Hiiragi Cottage", 0),
                self._candidate("Hiiragi Cottage", 1, "Hita"),
                self._candidate("Hiiragi Cottage", 2),
                self._candidate("Hiiragi Cottage", 3, "Hita"),
            ]
        )
        assert [(c.position, c.hint_city) for c in result] == [(0, "Hita")]

    def test_different_hint_cities_stay_separate(self):
        result = deduplicate(
            [
                self._candidate("Station Hotel", 0, "Beppu"),
                self._candidate("Station Hotel", 1, "Oita"),
            ]
        )
        assert [c.hint_city for c in result] == ["Beppu", "Oita"]

    def test_key_ignores_case_and_punctuation(self):
        assert dedup_key("Dazaifu Tenmangu", "Fukuoka") == dedup_key(
            "dazaifu-tenmangu", "FUKUOKA"
        )


class TestExtractCandidates:
    def test_empty_input(self):
        assert extract_candidates("") == []
        assert extract_candidates(" \n ; \n") == []

    def test_scenario_rejects_lowercase_line(self):
        result = extract_candidates(
            "Nagasaki House Burabura\nfoo\nHotel New Tsuruta, Beppu"
        )
        assert result == [
            Candidate(
                raw="Nagasaki House Burabura",
                main_name="Nagasaki House Burabura",
                hint_city=None,
                position=0,
            ),
            Candidate(
                raw="Hotel New Tsuruta, Beppu",
                main_name="Hotel New Tsuruta",
                hint_city="Beppu",
                position=1,
            ),
        ]

    def test_is_deterministic(self):
        assert extract_candidates(DEMO_TEXT) == extract_candidates(DEMO_TEXT)

    def test_demo_text(self):
        result = extract_candidates(DEMO_TEXT)
        assert [c.main_name for c in result] == [
            "Itoshima Guesthouse Tomo",
            "Ambicia Sasebo",
            "Nagasaki House Burabura",
            "Obama Business Hotel",
            "Tap Stay Hotel Saga",
            "Hiiragi Cottage",
            "Hotel New Tsuruta",
            "The Grand Residence Hotel Hakata",
        ]
        assert result[3].hint_city == "Unzen"

    def test_positions_are_strictly_increasing_in_first_occurrence_order(self):
        text = "Aso Shrine\nBeppu Station\naso shrine\nKumamoto Castle\nBeppu Station"
        result = extract_candidates(text)
        positions = [c.position for c in result]
        assert positions == sorted(set(positions))
        assert [c.main_name for c in result] == [
            "Aso Shrine",
            "Beppu Station",
            "Kumamoto Castle",
        ]

    def test_hint_only_on_duplicate_surfaces_on_retained_candidate(self):
        result = extract_candidates("Hiiragi Cottage\nsome notes here\nHiiragi Cottage, Hita")
        assert len(result) == 1
        assert result[0].position == 0
        assert result[0].hint_city == "Hita"
        assert result[0].raw == "Hiiragi Cottage"
