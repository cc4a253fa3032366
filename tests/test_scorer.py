"""Tests for richness scoring."""

from conftest import make_perfume, make_rich_perfume

from sourcing.models import AccordStrength, FragranceNote, NotePyramid, SeasonScore
from sourcing.scorer import RICHNESS_WEIGHTS, richness_score


def test_empty_record_scores_zero():
    assert richness_score(make_perfume()) == 0


def test_every_field_counts():
    perfume = make_rich_perfume(image_url="https://img/x.jpg", year=2015, description="Fresh")
    assert richness_score(perfume) == sum(RICHNESS_WEIGHTS.values())


def test_accords_outweigh_image_and_year():
    with_accords = make_perfume(accords=[AccordStrength(name="woody", percentage=60)])
    with_extras = make_perfume(image_url="https://img/x.jpg", year=2015)
    assert richness_score(with_accords) > richness_score(with_extras)


def test_neutral_scores_do_not_count():
    neutral = make_perfume(season_scores=[SeasonScore(season="summer", score=50)])
    assert richness_score(neutral) == 0

    signal = make_perfume(season_scores=[SeasonScore(season="summer", score=51)])
    assert richness_score(signal) == RICHNESS_WEIGHTS["season_scores"]


def test_notes_counted_per_layer():
    perfume = make_perfume(notes=NotePyramid(top=[FragranceNote(name="Lemon")]))
    assert richness_score(perfume) == RICHNESS_WEIGHTS["top_notes"]


def test_score_is_deterministic():
    perfume = make_rich_perfume()
    assert richness_score(perfume) == richness_score(perfume.model_copy())
