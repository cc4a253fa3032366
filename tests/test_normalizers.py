"""Tests for field normalizers and per-provider result normalizers."""

import pytest

from sourcing.models import NEUTRAL_SCORE, OCCASIONS, SEASONS
from sourcing.normalizers import (
    NORMALIZER_REGISTRY,
    complete_occasion_scores,
    complete_season_scores,
    default_occasion_scores,
    default_season_scores,
    normalize_accord_strength,
    normalize_concentration,
    normalize_gender,
    normalize_gender_from_title,
    normalize_results_for_provider,
)
from sourcing.normalizers.fragella import normalize_fragella_result
from sourcing.normalizers.fragrancefinder import (
    IMAGE_CDN_TEMPLATE,
    build_image_url,
    extract_notes,
    normalize_fragrancefinder_result,
)
from sourcing.normalizers.parfumo import normalize_parfumo_entry, parse_accords


class TestGender:
    @pytest.mark.parametrize("raw", ["men", "Male", "for men", "Pour Homme", "masculine"])
    def test_masculine(self, raw):
        assert normalize_gender(raw) == "masculine"

    @pytest.mark.parametrize("raw", ["women", "Female", "for women", "Pour Femme", "feminine"])
    def test_feminine(self, raw):
        assert normalize_gender(raw) == "feminine"

    def test_women_is_never_read_as_men(self):
        assert normalize_gender("WOMEN") == "feminine"

    @pytest.mark.parametrize("raw", ["unisex", "for women and men", "", None, "???", 42])
    def test_unisex_and_garbage(self, raw):
        assert normalize_gender(raw) == "unisex"

    def test_from_title(self):
        assert normalize_gender_from_title("Bleu Pour Homme", "Brand") == "masculine"
        assert normalize_gender_from_title("Rose Pour Femme", "Brand") == "feminine"
        assert normalize_gender_from_title("Santal 33", "Le Labo") == "unisex"
        assert normalize_gender_from_title(None, None) == "unisex"


class TestConcentration:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("Extrait de Parfum", "Extrait"),
            ("Elixir", "Extrait"),
            ("EDP", "EDP"),
            ("eau de parfum", "EDP"),
            ("Eau de Toilette", "EDT"),
            ("edt", "EDT"),
            ("Eau de Cologne", "EDC"),
            ("Cologne", "EDC"),
            ("Parfum", "Parfum"),
            ("Body Mist", "Other"),
            ("", "Other"),
            (None, "Other"),
        ],
    )
    def test_mapping(self, raw, expected):
        assert normalize_concentration(raw) == expected


class TestAccordStrength:
    def test_numbers_pass_through_clamped(self):
        assert normalize_accord_strength(42) == 42
        assert normalize_accord_strength(150) == 100
        assert normalize_accord_strength(-5) == 0

    def test_numeric_strings(self):
        assert normalize_accord_strength("45%") == 45
        assert normalize_accord_strength(" 70 ") == 70

    @pytest.mark.parametrize(
        "label,expected",
        [("Dominant", 85), ("prominent", 65), ("Moderate", 40), ("subtle", 20)],
    )
    def test_labels(self, label, expected):
        assert normalize_accord_strength(label) == expected

    @pytest.mark.parametrize("raw", [None, "", "loud", {"x": 1}, float("nan")])
    def test_default(self, raw):
        assert normalize_accord_strength(raw) == 30


class TestScoreCompletion:
    def test_defaults_are_complete_and_neutral(self):
        seasons = default_season_scores()
        occasions = default_occasion_scores()
        assert [s.season for s in seasons] == list(SEASONS)
        assert [o.occasion for o in occasions] == list(OCCASIONS)
        assert all(s.score == NEUTRAL_SCORE for s in seasons)
        assert all(o.score == NEUTRAL_SCORE for o in occasions)

    def test_complete_season_scores_maps_labels_and_fills_gaps(self):
        scores = complete_season_scores([{"season": "Autumn", "score": 80}, {"name": "Summer", "value": "20"}])
        by_season = {s.season: s.score for s in scores}
        assert by_season == {"spring": 50, "summer": 20, "fall": 80, "winter": 50}

    def test_complete_occasion_scores_maps_labels_and_fills_gaps(self):
        scores = complete_occasion_scores([{"occasion": "Night Out", "score": 90}, {"name": "Office", "score": 30}])
        by_occasion = {o.occasion: o.score for o in scores}
        assert by_occasion["nightOut"] == 90
        assert by_occasion["professional"] == 30
        assert by_occasion["date"] == NEUTRAL_SCORE
        assert len(scores) == len(OCCASIONS)

    def test_unknown_labels_and_garbage_are_ignored(self):
        scores = complete_season_scores([{"season": "monsoon", "score": 99}, "junk", None, {"season": "winter"}])
        assert all(s.score == NEUTRAL_SCORE for s in scores)
        assert complete_season_scores(None) == default_season_scores()

    @pytest.mark.parametrize("raw", [5, "summer", {"season": "summer", "score": 90}, 3.5])
    def test_non_list_rankings_degrade_to_defaults(self, raw):
        assert complete_season_scores(raw) == default_season_scores()
        assert complete_occasion_scores(raw) == default_occasion_scores()


class TestFragellaNormalizer:
    def test_full_record(self):
        perfume = normalize_fragella_result(
            {
                "Name": "Sauvage",
                "Brand": "Dior",
                "Year": "2015",
                "Gender": "men",
                "OilType": "Eau de Toilette",
                "rating": "4.3",
                "Longevity": 8,
                "Sillage": 7,
                "Notes": {
                    "Top": [{"name": "Bergamot", "imageUrl": "https://img/bergamot.png"}],
                    "Middle": ["Pepper"],
                    "Base": "Ambroxan, Cedar",
                },
                "MainAccordsPercentage": {"fresh spicy": "Dominant", "woody": 55},
                "MainAccords": ["ignored"],
                "SeasonRanking": [{"name": "summer", "score": 90}],
                "OccasionRanking": [{"name": "casual", "score": 80}],
                "ImageUrl": "https://img/sauvage.jpg",
            }
        )
        assert perfume.id == "dior-sauvage-edt"
        assert perfume.year == 2015
        assert perfume.gender == "masculine"
        assert perfume.rating == pytest.approx(4.3)
        assert perfume.notes.top[0].image_url == "https://img/bergamot.png"
        assert [n.name for n in perfume.notes.middle] == ["Pepper"]
        assert [n.name for n in perfume.notes.base] == ["Ambroxan", "Cedar"]
        assert {a.name: a.percentage for a in perfume.accords} == {"fresh spicy": 85, "woody": 55}
        assert perfume.season_score("summer") == 90
        assert perfume.occasion_score("casual") == 80
        assert perfume.data_source == "fragella"

    def test_main_accords_fallback(self):
        perfume = normalize_fragella_result(
            {"Name": "X", "Brand": "Y", "MainAccords": [{"name": "citrus", "level": "subtle"}, "amber"]}
        )
        assert {a.name: a.percentage for a in perfume.accords} == {"citrus": 20, "amber": 30}

    def test_missing_fields_degrade_to_defaults(self):
        perfume = normalize_fragella_result({"Name": "Only Name"})
        assert perfume.brand == "Unknown"
        assert perfume.longevity == 5
        assert perfume.notes.is_empty()
        assert len(perfume.season_scores) == 4

    def test_record_without_name_and_brand_is_skipped(self):
        assert normalize_fragella_result({"Year": 2020}) is None

    def test_malformed_shapes_degrade_to_defaults(self):
        perfume = normalize_fragella_result(
            {
                "Name": "Sauvage",
                "Brand": "Dior",
                "SeasonRanking": 5,
                "OccasionRanking": "casual",
                "MainAccords": 7,
                "Year": float("inf"),
            }
        )
        assert perfume.year is None
        assert perfume.accords == []
        assert perfume.season_scores == default_season_scores()
        assert perfume.occasion_scores == default_occasion_scores()

    @pytest.mark.parametrize("raw", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_numbers_fall_back_to_defaults(self, raw):
        perfume = normalize_fragella_result(
            {"Name": "Sauvage", "Brand": "Dior", "rating": raw, "Longevity": raw, "Sillage": raw, "Year": raw}
        )
        assert perfume.rating == 0.0
        assert perfume.longevity == 5
        assert perfume.sillage == 5
        assert perfume.year is None

    def test_huge_year_is_dropped(self):
        perfume = normalize_fragella_result({"Name": "Sauvage", "Brand": "Dior", "Year": 10 ** 400})
        assert perfume.year is None

    def test_one_bad_record_does_not_drop_the_rest(self):
        results = normalize_results_for_provider(
            "fragella",
            [
                {"Name": "Sauvage", "Brand": "Dior", "OilType": "EDT"},
                {"Name": "Dune", "Brand": "Dior", "Year": float("inf"), "SeasonRanking": 5},
            ],
        )
        assert [p.id for p in results] == ["dior-sauvage-edt", "dior-dune"]


class TestFragranceFinderNormalizer:
    def test_structured_notes(self):
        notes = extract_notes({"notes": {"top": "Lemon, Mint", "middle": ["Rose"], "base": None}})
        assert [n.name for n in notes.top] == ["Lemon", "Mint"]
        assert [n.name for n in notes.middle] == ["Rose"]
        assert notes.base == []

    def test_list_notes_go_to_top(self):
        notes = extract_notes({"notes": ["Vanilla", "Tonka"]})
        assert [n.name for n in notes.top] == ["Vanilla", "Tonka"]

    def test_scent_notes_before_string(self):
        notes = extract_notes({"notes": "Iris", "scent_notes": ["Musk"]})
        assert [n.name for n in notes.top] == ["Musk"]

    def test_string_notes(self):
        notes = extract_notes({"notes": "Iris, Leather"})
        assert [n.name for n in notes.top] == ["Iris", "Leather"]

    def test_no_notes(self):
        assert extract_notes({}).is_empty()

    def test_image_url(self):
        assert build_image_url({"image": "https://cdn/x.jpg", "imageId": 7}) == "https://cdn/x.jpg"
        assert build_image_url({"image": "/relative.jpg", "imageId": 7}) == IMAGE_CDN_TEMPLATE.format(image_id=7)
        assert build_image_url({}) is None

    def test_record_uses_default_scores_and_unknown_brand(self):
        perfume = normalize_fragrancefinder_result(
            {"name": "Sauvage", "concentration": "EDT", "description": "Fresh", "gender": "women"}
        )
        assert perfume.brand == "Unknown"
        assert perfume.gender == "feminine"
        assert perfume.description == "Fresh"
        assert all(s.score == NEUTRAL_SCORE for s in perfume.season_scores)
        assert perfume.data_source == "fragrancefinder"


class TestParfumoNormalizer:
    def test_accords_weighted_by_position(self):
        accords = parse_accords("woody, spicy, amber, sweet")
        assert [a.percentage for a in accords] == [80, 65, 50, 35]
        assert parse_accords("") == []

    def test_entry(self):
        perfume = normalize_parfumo_entry(
            {
                "name": "Terre d'Hermes",
                "brand": "Hermes",
                "year": 2006,
                "concentration": "Eau de Toilette",
                "rating": 8.4,
                "accords": "woody, citrus",
                "top_notes": "Orange, Grapefruit",
                "mid_notes": "Pepper",
                "base_notes": "Vetiver",
            }
        )
        assert perfume.id == "hermes-terre-d-hermes-edt"
        assert perfume.rating == pytest.approx(4.2)
        assert [n.name for n in perfume.notes.top] == ["Orange", "Grapefruit"]
        assert perfume.data_source == "parfumo"

    def test_entry_without_name_and_brand(self):
        assert normalize_parfumo_entry({"name": "", "brand": ""}) is None


def test_registry_covers_every_provider():
    assert set(NORMALIZER_REGISTRY) == {"fragella", "fragrancefinder", "parfumo"}


def test_unknown_provider_raises():
    with pytest.raises(KeyError):
        normalize_results_for_provider("nope", [])
