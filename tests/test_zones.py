# tests/test_zones.py
import pytest

from app.intake import ComplaintType, InvalidZoneError, TreeKey, ZoneResolver
from app.intake.zones import Laterality, PathFailure, PathMatch, laterality_of, walk_zone_path


@pytest.fixture
def resolver():
    return ZoneResolver()


def test_broad_arm_needs_refinement_with_six_options(resolver):
    resolution = resolver.resolve("arm.left")

    assert resolution.needs_refinement is True
    assert resolution.zone is None
    assert len(resolution.options) == 6
    assert resolution.options[2].id == "arm.left.elbow_anterior"
    assert resolution.message.en == "Please specify the exact location on your left arm"


@pytest.mark.parametrize(
    "zone_id, count",
    [("leg.right", 6), ("chest", 8), ("abdomen", 7), ("back", 9), ("hand.left", 7), ("foot.right", 7)],
)
def test_refinement_option_counts(resolver, zone_id, count):
    assert len(resolver.resolve(zone_id).options) == count


def test_terminal_elbow_zone_resolves_with_laterality(resolver):
    resolution = resolver.resolve("arm.left.elbow_anterior")

    assert resolution.needs_refinement is False
    zone = resolution.zone
    assert zone.laterality is Laterality.LEFT
    assert zone.has_subparts is False
    assert zone.clinical_name == "Antecubital fossa, left"
    assert resolution.tree_key is TreeKey.LIMB_PAIN
    assert resolution.to_wire()["needsRefinement"] is False


def test_every_refinement_option_is_a_valid_zone(resolver):
    for broad in ("arm.right", "leg.left", "chest", "abdomen", "back", "hand.right", "foot.left"):
        for option in resolver.resolve(broad).options:
            assert resolver.validate(option.id).id == option.id


def test_unknown_segment_names_the_failing_segment(resolver):
    with pytest.raises(InvalidZoneError) as excinfo:
        resolver.resolve("arm.left.wing")

    assert excinfo.value.segment == "wing"
    assert excinfo.value.path == "arm.left"
    assert excinfo.value.field == "zoneId"


def test_walk_returns_typed_results():
    assert isinstance(walk_zone_path("chest.anterior.upper.left"), PathMatch)
    failure = walk_zone_path("chest.sideways")
    assert isinstance(failure, PathFailure)
    assert failure.segment == "sideways"
    assert failure.path == ("chest",)


@pytest.mark.parametrize(
    "zone_id, expected",
    [
        ("chest.anterior.upper.left", Laterality.LEFT),
        ("abdomen.quadrants.rlq", Laterality.MIDLINE),
        ("chest.anterior.middle.center", Laterality.BILATERAL),
        ("leg.right.knee_anterior", Laterality.RIGHT),
    ],
)
def test_laterality(zone_id, expected):
    assert laterality_of(zone_id) is expected


def test_posterior_chest_maps_to_back_pain_tree(resolver):
    assert resolver.tree_key_for("chest.posterior.lower.left") is TreeKey.BACK_PAIN
    assert resolver.tree_key_for("chest.anterior.upper.left") is TreeKey.CHEST_PAIN


def test_complaint_decides_when_zone_gives_no_specific_tree(resolver):
    assert resolver.tree_key_for(None, ComplaintType.COUGH) is TreeKey.RESPIRATORY
    assert resolver.tree_key_for(None) is TreeKey.GENERAL
    assert resolver.tree_key_for("abdomen.quadrants.rlq", ComplaintType.COUGH) is TreeKey.ABDOMINAL_PAIN


def test_subparts_and_area_listing(resolver):
    assert "arm.left.elbow_anterior" in resolver.get_subparts("arm.left")
    zones = resolver.get_zones_in_area("arm")
    assert "arm.left.forearm_posterior" in zones
    assert "arm.right.upper_anterior" in zones
    assert "arm" not in zones


def test_clinical_term(resolver):
    assert resolver.get_clinical_term("abdomen.quadrants.rlq")
