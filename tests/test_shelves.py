from datetime import datetime, timezone

from conftest import make_perfume, make_rich_perfume
from models import CollectionEntry
from services.shelves import SHELF_DEFINITIONS, ShelfPerfume, get_shelf_definition, shelf_perfumes
from sourcing.models import AccordStrength, OccasionScore


def _item(perfume, owned=True, personal_rating=None):
    entry = CollectionEntry(
        perfume_id=perfume.id,
        added_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        owned=owned,
        personal_rating=personal_rating,
    )
    return ShelfPerfume.build(perfume, entry)


def _ids(items):
    return [item.perfume.id for item in items]


def test_shelf_ids_are_unique():
    ids = [shelf.id for shelf in SHELF_DEFINITIONS]
    assert len(ids) == len(set(ids))
    assert get_shelf_definition("family-woody").category == "family"


def test_effective_rating_prefers_personal_rating():
    assert _item(make_perfume(rating=3.0), personal_rating=4.5).effective_rating == 4.5
    assert _item(make_perfume(rating=3.0)).effective_rating == 3.0


def test_collection_and_wishlist():
    owned = _item(make_perfume())
    wished = _item(make_perfume(name="Dune"), owned=False)

    assert _ids(shelf_perfumes([owned, wished], "all")) == ["dior-sauvage-edt"]
    assert _ids(shelf_perfumes([owned, wished], "wishlist")) == ["dior-dune-edt"]


def test_top_rated_sorted_by_rating_then_name():
    items = [
        _item(make_perfume(name="Beta", rating=4.0)),
        _item(make_perfume(name="alpha", rating=4.0)),
        _item(make_perfume(name="Gamma", rating=4.8)),
        _item(make_perfume(name="Low", rating=3.9)),
    ]

    assert [i.perfume.name for i in shelf_perfumes(items, "top-rated")] == ["Gamma", "alpha", "Beta"]


def test_season_shelves_need_above_neutral_score():
    rich = _item(make_rich_perfume())
    neutral = _item(make_perfume(name="Dune"))

    assert _ids(shelf_perfumes([rich, neutral], "season-summer")) == ["dior-sauvage-edt"]
    assert shelf_perfumes([rich, neutral], "season-winter") == []
    assert shelf_perfumes([rich, neutral], "season-spring") == []


def test_time_shelves():
    day = _item(make_rich_perfume())
    night = _item(make_perfume(
        name="Night",
        occasion_scores=[
            OccasionScore(occasion="nightOut", score=90),
            OccasionScore(occasion="casual", score=20),
            OccasionScore(occasion="professional", score=10),
        ],
    ))
    both = _item(make_perfume(
        name="Both",
        occasion_scores=[
            OccasionScore(occasion="nightOut", score=70),
            OccasionScore(occasion="casual", score=70),
            OccasionScore(occasion="professional", score=70),
        ],
    ))
    neutral = _item(make_perfume(name="Neutral"))
    items = [day, night, both, neutral]

    assert set(_ids(shelf_perfumes(items, "time-day"))) == {"dior-sauvage-edt", "dior-both-edt"}
    assert set(_ids(shelf_perfumes(items, "time-night"))) == {"dior-night-edt", "dior-both-edt"}
    assert _ids(shelf_perfumes(items, "time-versatile")) == ["dior-both-edt"]


def test_occasion_shelves():
    items = [_item(make_rich_perfume()), _item(make_perfume(name="Dune"))]

    assert _ids(shelf_perfumes(items, "occasion-casual")) == ["dior-sauvage-edt"]
    assert shelf_perfumes(items, "occasion-nightOut") == []
    assert shelf_perfumes(items, "occasion-date") == []


def test_family_shelves_use_accord_threshold():
    woody = _item(make_perfume(name="Wood", accords=[AccordStrength(name="Woody", percentage=40)]))
    faint = _item(make_perfume(name="Faint", accords=[AccordStrength(name="woody", percentage=10)]))
    spanish = _item(make_perfume(name="Madera", accords=[AccordStrength(name="amaderado", percentage=60)]))

    assert set(_ids(shelf_perfumes([woody, faint, spanish], "family-woody"))) == {
        "dior-wood-edt", "dior-madera-edt",
    }
    assert shelf_perfumes([woody, faint, spanish], "family-floral") == []


def test_unknown_shelf_is_empty():
    assert shelf_perfumes([_item(make_perfume())], "no-such-shelf") == []
