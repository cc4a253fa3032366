import pytest

from conftest import make_perfume, make_rich_perfume
from exceptions import ResourceNotFoundError, ValidationError
from models import CollectionEntryUpdate, PriceEstimate
from services.catalog import CatalogService


class RecordingPropagator:
    def __init__(self):
        self.calls = []

    def put_perfume(self, user_id, perfume):
        self.calls.append(("put_perfume", user_id, perfume.id))

    def put_collection_entry(self, user_id, entry):
        self.calls.append(("put_entry", user_id, entry.perfume_id))

    def delete_collection_entry(self, user_id, perfume_id):
        self.calls.append(("delete_entry", user_id, perfume_id))


@pytest.fixture
def service(session):
    return CatalogService(session)


@pytest.mark.asyncio
async def test_add_and_get_perfume(service):
    saved = await service.add_perfume_to_catalog(make_rich_perfume())

    fetched = await service.get_perfume(saved.id)

    assert fetched == saved
    assert fetched.notes.top[0].name == "Bergamot"
    assert fetched.season_score("summer") == 80


@pytest.mark.asyncio
async def test_add_perfume_overwrites_same_identity(service):
    await service.add_perfume_to_catalog(make_perfume(rating=3.0))
    await service.add_perfume_to_catalog(make_perfume(rating=4.5))

    catalog = await service.list_catalog()

    assert len(catalog) == 1
    assert catalog[0].rating == 4.5


@pytest.mark.asyncio
async def test_add_perfume_without_identity(service):
    with pytest.raises(ValidationError):
        await service.add_perfume_to_catalog(make_perfume(name="", brand="", concentration="Other"))


@pytest.mark.asyncio
async def test_get_missing_perfume(service):
    with pytest.raises(ResourceNotFoundError):
        await service.get_perfume("nope")


@pytest.mark.asyncio
async def test_list_catalog_sorted_and_paged(service):
    for name, brand in [("Sauvage", "Dior"), ("Bleu", "Chanel"), ("Aventus", "Creed"), ("Dune", "Dior")]:
        await service.add_perfume_to_catalog(make_perfume(name=name, brand=brand))

    catalog = await service.list_catalog()
    assert [(p.brand, p.name) for p in catalog] == [
        ("Chanel", "Bleu"), ("Creed", "Aventus"), ("Dior", "Dune"), ("Dior", "Sauvage"),
    ]
    assert [p.name for p in await service.list_catalog(limit=2, offset=1)] == ["Aventus", "Dune"]


@pytest.mark.asyncio
async def test_search_local_catalog(service):
    await service.add_perfume_to_catalog(make_perfume())
    await service.add_perfume_to_catalog(make_perfume(name="Bleu de Chanel", brand="Chanel"))
    await service.add_perfume_to_catalog(make_perfume(name="100% Love", brand="Lab"))

    assert [p.name for p in await service.search_local_catalog("DIOR")] == ["Sauvage"]
    assert [p.name for p in await service.search_local_catalog("chan")] == ["Bleu de Chanel"]
    assert [p.name for p in await service.search_local_catalog("0%")] == ["100% Love"]
    assert await service.search_local_catalog("d") == []


@pytest.mark.asyncio
async def test_seed_only_once_and_only_when_empty(service):
    assert await service.seed_catalog_if_empty([make_perfume(), make_perfume(name="Dune")]) == 2
    assert await service.seed_catalog_if_empty([make_perfume(name="Fahrenheit")]) == 0

    catalog = await service.list_catalog()
    assert {p.data_source for p in catalog} == {"seed"}
    assert len(catalog) == 2


@pytest.mark.asyncio
async def test_seed_skips_non_empty_catalog(service):
    await service.add_perfume_to_catalog(make_perfume())
    assert await service.seed_catalog_if_empty([make_perfume(name="Dune")]) == 0


@pytest.mark.asyncio
async def test_add_to_collection_is_idempotent(service):
    await service.add_perfume_to_catalog(make_perfume())

    first = await service.add_to_collection("dior-sauvage-edt", owned=False)
    second = await service.add_to_collection("dior-sauvage-edt", owned=True)

    assert first.owned is False
    assert second.owned is False
    assert second.added_at == first.added_at


@pytest.mark.asyncio
async def test_add_to_collection_requires_catalog_record(service):
    with pytest.raises(ResourceNotFoundError):
        await service.add_to_collection("dior-sauvage-edt")


@pytest.mark.asyncio
async def test_accept_search_result(service):
    entry = await service.accept_search_result(make_rich_perfume(), owned=True)

    assert entry.perfume_id == "dior-sauvage-edt"
    assert (await service.get_perfume("dior-sauvage-edt")).rating == 4.3


@pytest.mark.asyncio
async def test_update_collection_entry(service):
    await service.accept_search_result(make_perfume())

    entry = await service.update_collection_entry(
        "dior-sauvage-edt",
        CollectionEntryUpdate(
            personal_rating=4.5,
            tags=["summer"],
            price_estimate=PriceEstimate(amount=5200, source="store"),
        ),
    )

    assert entry.personal_rating == 4.5
    assert entry.tags == ["summer"]
    assert entry.price_estimate["currency"] == "UYU"
    assert entry.owned is True
    assert entry.updated_at is not None


@pytest.mark.asyncio
async def test_update_missing_entry(service):
    with pytest.raises(ResourceNotFoundError):
        await service.update_collection_entry("nope", CollectionEntryUpdate(owned=False))


@pytest.mark.asyncio
async def test_remove_from_collection(service):
    await service.accept_search_result(make_perfume())

    assert await service.remove_from_collection("dior-sauvage-edt") is True
    assert await service.remove_from_collection("dior-sauvage-edt") is False
    assert await service.get_collection_entry("dior-sauvage-edt") is None
    # The catalog record stays
    assert await service.get_perfume("dior-sauvage-edt")


@pytest.mark.asyncio
async def test_collection_stats(service):
    await service.accept_search_result(make_perfume(rating=4.0))
    await service.accept_search_result(make_perfume(name="Dune", rating=3.0))
    await service.accept_search_result(make_perfume(name="Fahrenheit", rating=5.0), owned=False)
    await service.add_perfume_to_catalog(make_perfume(name="Eau Sauvage"))
    await service.update_collection_entry("dior-dune-edt", CollectionEntryUpdate(personal_rating=4.5))

    stats = await service.collection_stats()

    assert stats.total_in_collection == 2
    assert stats.total_wishlist == 1
    assert stats.total_catalog == 4
    assert stats.avg_rating == 4.2


@pytest.mark.asyncio
async def test_collection_stats_empty(service):
    stats = await service.collection_stats()
    assert stats.avg_rating == 0.0
    assert stats.total_in_collection == 0


@pytest.mark.asyncio
async def test_mutations_propagate_only_with_user(session):
    propagator = RecordingPropagator()
    service = CatalogService(session, propagator=propagator)

    await service.accept_search_result(make_perfume())
    assert propagator.calls == []

    await service.update_collection_entry("dior-sauvage-edt", CollectionEntryUpdate(owned=False), user_id="u1")
    await service.remove_from_collection("dior-sauvage-edt", user_id="u1")
    await service.accept_search_result(make_perfume(name="Dune"), user_id="u1")

    assert propagator.calls == [
        ("put_entry", "u1", "dior-sauvage-edt"),
        ("delete_entry", "u1", "dior-sauvage-edt"),
        ("put_perfume", "u1", "dior-dune-edt"),
        ("put_entry", "u1", "dior-dune-edt"),
    ]
