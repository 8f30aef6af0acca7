# app/intake/zones.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

from app.intake.errors import InvalidZoneError
from app.intake.stages import ComplaintType, TreeKey, exhaustive
from app.intake.taxonomy import BODY_TAXONOMY, ZoneNode
from app.records import LocalizedText, Record


class Laterality(str, Enum):
    LEFT = "left"
    RIGHT = "right"
    BILATERAL = "bilateral"
    MIDLINE = "midline"


class BroadZone(str, Enum):
    """Zones too coarse to triage on; the user must pick a sub-zone."""

    ARM_LEFT = "arm.left"
    ARM_RIGHT = "arm.right"
    LEG_LEFT = "leg.left"
    LEG_RIGHT = "leg.right"
    CHEST = "chest"
    ABDOMEN = "abdomen"
    BACK = "back"
    HAND_LEFT = "hand.left"
    HAND_RIGHT = "hand.right"
    FOOT_LEFT = "foot.left"
    FOOT_RIGHT = "foot.right"


_BROAD_ZONE_IDS = frozenset(z.value for z in BroadZone)


class RefinementOption(Record):
    id: str
    label: str


class ZoneRefinement(Record):
    message: LocalizedText
    options: Tuple[RefinementOption, ...]


class ResolvedZone(Record):
    id: str
    common_name: str
    clinical_name: str
    laterality: Laterality
    has_subparts: bool
    path: Tuple[str, ...]


class ZoneResolution(Record):
    zone_id: str
    needs_refinement: bool
    message: Optional[LocalizedText] = None
    options: Tuple[RefinementOption, ...] = ()
    zone: Optional[ResolvedZone] = None
    tree_key: Optional[TreeKey] = None


# ----------------------------------------------------------------------
# Refinement table
# ----------------------------------------------------------------------


def _limb_refinement(limb: str, side: str, labels: List[Tuple[str, str]]) -> ZoneRefinement:
    return ZoneRefinement(
        message=LocalizedText(
            en=f"Please specify the exact location on your {side} {limb}",
            ur="براہ کرم درست جگہ بتائیں",
        ),
        options=tuple(
            RefinementOption(id=f"{limb}.{side}.{part}", label=label) for part, label in labels
        ),
    )


_ARM_PARTS = [
    ("upper_anterior", "Front of upper arm"),
    ("upper_posterior", "Back of upper arm"),
    ("elbow_anterior", "Front of elbow"),
    ("elbow_posterior", "Back of elbow"),
    ("forearm_anterior", "Front of forearm"),
    ("forearm_posterior", "Back of forearm"),
]

_LEG_PARTS = [
    ("thigh_anterior", "Front of thigh"),
    ("thigh_posterior", "Back of thigh"),
    ("knee_anterior", "Front of knee (kneecap)"),
    ("knee_posterior", "Back of knee"),
    ("calf_anterior", "Shin"),
    ("calf_posterior", "Calf muscle"),
]

_HAND_PARTS = [
    ("palm", "Palm"),
    ("back", "Back of hand"),
    ("thumb", "Thumb"),
    ("index", "Index finger"),
    ("middle", "Middle finger"),
    ("ring", "Ring finger"),
    ("pinky", "Little finger"),
]

_FOOT_PARTS = [
    ("top", "Top of foot"),
    ("sole", "Sole"),
    ("heel", "Heel"),
    ("arch", "Arch"),
    ("ball", "Ball of foot"),
    ("big_toe", "Big toe"),
    ("toes", "Toes"),
]

REFINEMENTS: Dict[BroadZone, ZoneRefinement] = exhaustive(
    BroadZone,
    {
        BroadZone.ARM_LEFT: _limb_refinement("arm", "left", _ARM_PARTS),
        BroadZone.ARM_RIGHT: _limb_refinement("arm", "right", _ARM_PARTS),
        BroadZone.LEG_LEFT: _limb_refinement("leg", "left", _LEG_PARTS),
        BroadZone.LEG_RIGHT: _limb_refinement("leg", "right", _LEG_PARTS),
        BroadZone.HAND_LEFT: _limb_refinement("hand", "left", _HAND_PARTS),
        BroadZone.HAND_RIGHT: _limb_refinement("hand", "right", _HAND_PARTS),
        BroadZone.FOOT_LEFT: _limb_refinement("foot", "left", _FOOT_PARTS),
        BroadZone.FOOT_RIGHT: _limb_refinement("foot", "right", _FOOT_PARTS),
        BroadZone.CHEST: ZoneRefinement(
            message=LocalizedText(
                en="Which part of your chest hurts?",
                ur="آپ کے سینے کا کون سا حصہ درد کرتا ہے؟",
            ),
            options=(
                RefinementOption(id="chest.anterior.upper.left", label="Upper left chest"),
                RefinementOption(id="chest.anterior.upper.center", label="Upper center chest"),
                RefinementOption(id="chest.anterior.upper.right", label="Upper right chest"),
                RefinementOption(id="chest.anterior.middle.left", label="Middle left chest"),
                RefinementOption(id="chest.anterior.middle.center", label="Center of chest (breastbone)"),
                RefinementOption(id="chest.anterior.middle.right", label="Middle right chest"),
                RefinementOption(id="chest.lateral.left", label="Left side of chest"),
                RefinementOption(id="chest.lateral.right", label="Right side of chest"),
            ),
        ),
        BroadZone.ABDOMEN: ZoneRefinement(
            message=LocalizedText(
                en="Which part of your abdomen hurts?",
                ur="آپ کے پیٹ کا کون سا حصہ درد کرتا ہے؟",
            ),
            options=(
                RefinementOption(id="abdomen.quadrants.ruq", label="Upper right belly"),
                RefinementOption(id="abdomen.quadrants.epigastric", label="Upper middle belly"),
                RefinementOption(id="abdomen.quadrants.luq", label="Upper left belly"),
                RefinementOption(id="abdomen.quadrants.periumbilical", label="Around belly button"),
                RefinementOption(id="abdomen.quadrants.rlq", label="Lower right belly"),
                RefinementOption(id="abdomen.quadrants.suprapubic", label="Lower middle belly"),
                RefinementOption(id="abdomen.quadrants.llq", label="Lower left belly"),
            ),
        ),
        BroadZone.BACK: ZoneRefinement(
            message=LocalizedText(
                en="Which part of your back hurts?",
                ur="آپ کی کمر کا کون سا حصہ درد کرتا ہے؟",
            ),
            options=(
                RefinementOption(id="chest.posterior.upper.left", label="Upper left back"),
                RefinementOption(id="spine.thoracic.upper", label="Upper spine"),
                RefinementOption(id="chest.posterior.upper.right", label="Upper right back"),
                RefinementOption(id="chest.posterior.middle.left", label="Middle left back"),
                RefinementOption(id="spine.thoracic.mid", label="Middle spine"),
                RefinementOption(id="chest.posterior.middle.right", label="Middle right back"),
                RefinementOption(id="chest.posterior.lower.left", label="Lower left back"),
                RefinementOption(id="spine.lumbar.upper", label="Lower spine"),
                RefinementOption(id="chest.posterior.lower.right", label="Lower right back"),
            ),
        ),
    },
    "REFINEMENTS",
)


# ----------------------------------------------------------------------
# Tree-key mapping
# ----------------------------------------------------------------------

# Longest matching prefix wins.
ZONE_TREE_PREFIXES: Tuple[Tuple[str, TreeKey], ...] = (
    ("chest.posterior", TreeKey.BACK_PAIN),
    ("chest", TreeKey.CHEST_PAIN),
    ("abdomen", TreeKey.ABDOMINAL_PAIN),
    ("head", TreeKey.HEADACHE),
    ("spine", TreeKey.BACK_PAIN),
    ("back", TreeKey.BACK_PAIN),
    ("pelvis", TreeKey.PELVIC_PAIN),
    ("arm", TreeKey.LIMB_PAIN),
    ("hand", TreeKey.LIMB_PAIN),
    ("leg", TreeKey.LIMB_PAIN),
    ("foot", TreeKey.LIMB_PAIN),
)

COMPLAINT_TREES: Dict[ComplaintType, TreeKey] = exhaustive(
    ComplaintType,
    {
        ComplaintType.CHEST_PAIN: TreeKey.CHEST_PAIN,
        ComplaintType.HEADACHE: TreeKey.HEADACHE,
        ComplaintType.ABDOMINAL_PAIN: TreeKey.ABDOMINAL_PAIN,
        ComplaintType.FEVER: TreeKey.GENERAL,
        ComplaintType.COUGH: TreeKey.RESPIRATORY,
        ComplaintType.SHORTNESS_OF_BREATH: TreeKey.RESPIRATORY,
        ComplaintType.DIZZINESS: TreeKey.GENERAL,
        ComplaintType.RASH: TreeKey.GENERAL,
        ComplaintType.INJURY: TreeKey.LIMB_PAIN,
        ComplaintType.BACK_PAIN: TreeKey.BACK_PAIN,
        ComplaintType.JOINT_PAIN: TreeKey.LIMB_PAIN,
        ComplaintType.NAUSEA_VOMITING: TreeKey.ABDOMINAL_PAIN,
        ComplaintType.DIARRHEA: TreeKey.ABDOMINAL_PAIN,
        ComplaintType.URINARY_SYMPTOMS: TreeKey.PELVIC_PAIN,
        ComplaintType.GENERAL_WEAKNESS: TreeKey.GENERAL,
        ComplaintType.OTHER: TreeKey.GENERAL,
    },
    "COMPLAINT_TREES",
)


# ----------------------------------------------------------------------
# Path resolution
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class PathMatch:
    node: ZoneNode
    path: Tuple[str, ...]
    side: Optional[str] = None


@dataclass(frozen=True)
class PathFailure:
    segment: str
    path: Tuple[str, ...]


def walk_zone_path(zone_id: str, root: ZoneNode = BODY_TAXONOMY) -> Union[PathMatch, PathFailure]:
    """
    Walk ``zone_id`` segment by segment. Returns the node reached, or the
    first segment that does not exist at that point in the walk.
    """
    node = root
    walked: List[str] = []
    side: Optional[str] = None

    for segment in zone_id.split("."):
        nxt = node.child(segment) if segment else None
        if nxt is not None:
            node = nxt
        elif segment in node.sides and side is None:
            side = segment
        else:
            return PathFailure(segment=segment, path=tuple(walked))
        walked.append(segment)

    return PathMatch(node=node, path=tuple(walked), side=side)


def laterality_of(zone_id: str) -> Laterality:
    if "left" in zone_id:
        return Laterality.LEFT
    if "right" in zone_id:
        return Laterality.RIGHT
    if "center" in zone_id or "central" in zone_id:
        return Laterality.BILATERAL
    return Laterality.MIDLINE


def _is_prefix(prefix: str, zone_id: str) -> bool:
    return zone_id == prefix or zone_id.startswith(prefix + ".")


class ZoneResolver:
    """
    Turns a body-map selection into either a refinement prompt or a
    validated zone plus the complaint tree that applies to it.
    """

    def __init__(self, taxonomy: ZoneNode = BODY_TAXONOMY):
        self.taxonomy = taxonomy

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def needs_refinement(self, zone_id: str) -> bool:
        return zone_id in _BROAD_ZONE_IDS

    def refinement_for(self, zone_id: str) -> Optional[ZoneRefinement]:
        if not self.needs_refinement(zone_id):
            return None
        return REFINEMENTS[BroadZone(zone_id)]

    def validate(self, zone_id: str) -> ResolvedZone:
        """Raises InvalidZoneError naming the first unknown segment."""
        match = walk_zone_path(zone_id, self.taxonomy)
        if isinstance(match, PathFailure):
            raise InvalidZoneError(zone_id, match.segment, ".".join(match.path))

        node = match.node
        common_name = node.common_name
        clinical_name = node.clinical_name
        if match.side is not None:
            common_name = f"{common_name} ({match.side})"
            clinical_name = f"{clinical_name}, {match.side}"

        return ResolvedZone(
            id=zone_id,
            common_name=common_name,
            clinical_name=clinical_name,
            laterality=laterality_of(zone_id),
            has_subparts=node.has_subparts,
            path=match.path,
        )

    def resolve(self, zone_id: str, complaint: Optional[ComplaintType] = None) -> ZoneResolution:
        zone_id = zone_id.strip()
        refinement = self.refinement_for(zone_id)
        if refinement is not None:
            return ZoneResolution(
                zone_id=zone_id,
                needs_refinement=True,
                message=refinement.message,
                options=refinement.options,
            )

        zone = self.validate(zone_id)
        return ZoneResolution(
            zone_id=zone_id,
            needs_refinement=False,
            zone=zone,
            tree_key=self.tree_key_for(zone_id, complaint),
        )

    def tree_key_for(self, zone_id: Optional[str], complaint: Optional[ComplaintType] = None) -> TreeKey:
        """
        Zone mapping first; a zone that maps to the generic tree defers to
        the complaint's mapping.
        """
        key = TreeKey.GENERAL
        if zone_id:
            matches = [(p, k) for p, k in ZONE_TREE_PREFIXES if _is_prefix(p, zone_id)]
            if matches:
                key = max(matches, key=lambda pk: len(pk[0]))[1]
        if key is TreeKey.GENERAL and complaint is not None:
            key = COMPLAINT_TREES[ComplaintType(complaint)]
        return key

    # ------------------------------------------------------------------
    # Lookup helpers
    # ------------------------------------------------------------------

    def get_clinical_term(self, zone_id: str) -> str:
        return self.validate(zone_id).clinical_name

    def get_subparts(self, zone_id: str) -> List[str]:
        match = walk_zone_path(zone_id, self.taxonomy)
        if isinstance(match, PathFailure):
            raise InvalidZoneError(zone_id, match.segment, ".".join(match.path))
        return [f"{zone_id}.{key}" for key, _ in match.node.subnodes()]

    def get_zones_in_area(self, area: str) -> List[str]:
        """Every terminal zone id under ``area`` (sides expanded)."""
        match = walk_zone_path(area, self.taxonomy)
        if isinstance(match, PathFailure):
            raise InvalidZoneError(area, match.segment, ".".join(match.path))
        return list(_terminal_ids(area, match.node, side_taken=match.side is not None))


def _terminal_ids(prefix: str, node: ZoneNode, side_taken: bool = False):
    if node.sides and not side_taken:
        for side in node.sides:
            yield from _terminal_ids(f"{prefix}.{side}", node, side_taken=True)
        return
    if not node.has_subparts:
        yield prefix
        return
    for key, child in node.subnodes():
        yield from _terminal_ids(f"{prefix}.{key}", child)
