"""Tests for the cross-provider identity key."""

from sourcing.identity import build_key
from sourcing.models import Perfume


def test_build_key_joins_and_slugifies():
    assert build_key("Dior", "Sauvage", "EDT") == "dior-sauvage-edt"


def test_build_key_is_deterministic():
    assert build_key("Chanel", "Bleu de Chanel", "EDP") == build_key("Chanel", "Bleu de Chanel", "EDP")


def test_build_key_collapses_case_and_whitespace():
    assert build_key("  DIOR ", "sauvage", "edt") == build_key("Dior", "Sauvage", "EDT")
    assert build_key("Maison  Francis   Kurkdjian", "Baccarat Rouge 540") == (
        "maison-francis-kurkdjian-baccarat-rouge-540"
    )


def test_build_key_collapses_punctuation_runs():
    assert build_key("Yves Saint-Laurent", "L'Homme -- Intense!", None) == "yves-saint-laurent-l-homme-intense"


def test_build_key_skips_empty_parts():
    assert build_key("Dior", "Sauvage", None) == "dior-sauvage"
    assert build_key("Dior", "Sauvage", "") == "dior-sauvage"
    assert build_key("", "Sauvage", "EDT") == "sauvage-edt"


def test_build_key_has_no_edge_or_double_hyphens():
    key = build_key("--Brand--", "!!Name!!", "??")
    assert key == "brand-name"
    assert "--" not in key


def test_build_key_may_be_empty():
    assert build_key("", "", None) == ""
    assert build_key("ДИОР", "夜", None) == ""


def test_build_key_does_not_transliterate():
    assert build_key("Hermès", "Terre d'Hermès") != build_key("Hermes", "Terre d'Hermes")


def test_perfume_id_uses_canonical_concentration():
    edt = Perfume(name="Sauvage", brand="Dior", concentration="EDT")
    assert edt.id == "dior-sauvage-edt"

    other = Perfume(name="Sauvage", brand="Dior", concentration="Other")
    assert other.id == "dior-sauvage"


def test_perfume_id_ignores_provider_supplied_id():
    perfume = Perfume(id="whatever-the-provider-said", name="Sauvage", brand="Dior", concentration="EDT")
    assert perfume.id == "dior-sauvage-edt"
