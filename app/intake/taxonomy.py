# app/intake/taxonomy.py
"""
Hierarchical body-zone taxonomy.

Zone ids are dot-separated paths through this tree, e.g.
``chest.anterior.upper.left`` or ``arm.left.elbow_anterior``. At each node
a path segment may name a direct child, a ``regions`` child, a ``parts``
child, or one of the node's ``sides`` (a side keeps the walk on the same
node and only annotates the names).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, Mapping, Tuple

SIDES = ("left", "right")


@dataclass(frozen=True)
class ZoneNode:
    common_name: str
    clinical_name: str
    children: Mapping[str, "ZoneNode"] = field(default_factory=dict)
    regions: Mapping[str, "ZoneNode"] = field(default_factory=dict)
    parts: Mapping[str, "ZoneNode"] = field(default_factory=dict)
    sides: Tuple[str, ...] = ()

    @property
    def has_subparts(self) -> bool:
        return bool(self.children or self.regions or self.parts)

    def child(self, segment: str) -> "ZoneNode | None":
        for table in (self.children, self.regions, self.parts):
            if segment in table:
                return table[segment]
        return None

    def subnodes(self) -> Iterator[Tuple[str, "ZoneNode"]]:
        for table in (self.children, self.regions, self.parts):
            yield from table.items()


def _z(common: str, clinical: str, **kwargs) -> ZoneNode:
    return ZoneNode(common_name=common, clinical_name=clinical, **kwargs)


def _lateral(prefix_common: str, prefix_clinical: str, with_center: bool = False) -> Dict[str, ZoneNode]:
    nodes = {
        "left": _z(f"{prefix_common} (left)", f"Left {prefix_clinical}"),
        "right": _z(f"{prefix_common} (right)", f"Right {prefix_clinical}"),
    }
    if with_center:
        nodes["center"] = _z(f"{prefix_common} (center)", f"Central {prefix_clinical}")
    return nodes


HEAD = _z(
    "Head",
    "Cranium",
    regions={
        "frontal": _z("Forehead", "Frontal region"),
        "temporal": _z("Temple", "Temporal region", children=_lateral("Temple", "temporal region")),
        "parietal": _z("Top of head", "Parietal region"),
        "occipital": _z("Back of head", "Occipital region"),
        "vertex": _z("Crown", "Vertex"),
        "face": _z("Face", "Facial region"),
    },
)

NECK = _z(
    "Neck",
    "Cervical region",
    regions={
        "anterior": _z("Front of neck", "Anterior cervical region"),
        "posterior": _z("Back of neck", "Posterior cervical region"),
        "lateral": _z("Side of neck", "Lateral cervical region", children=_lateral("Side of neck", "lateral cervical region")),
    },
)

CHEST = _z(
    "Chest",
    "Thorax",
    regions={
        "anterior": _z(
            "Front of chest",
            "Anterior thorax",
            regions={
                "upper": _z("Upper chest", "Infraclavicular region", children=_lateral("Upper chest", "infraclavicular region", with_center=True)),
                "middle": _z("Middle chest", "Mammary region", children=_lateral("Middle chest", "mammary region", with_center=True)),
                "lower": _z("Lower chest", "Inframammary region", children=_lateral("Lower chest", "inframammary region", with_center=True)),
            },
        ),
        "lateral": _z("Side of chest", "Lateral thorax", children=_lateral("Side of chest", "axillary region")),
        "posterior": _z(
            "Back",
            "Posterior thorax",
            regions={
                "upper": _z("Upper back", "Scapular region", children=_lateral("Upper back", "scapular region")),
                "middle": _z("Middle back", "Interscapular region", children=_lateral("Middle back", "interscapular region")),
                "lower": _z("Lower back (ribs)", "Infrascapular region", children=_lateral("Lower back (ribs)", "infrascapular region")),
            },
        ),
    },
)

ABDOMEN = _z(
    "Abdomen",
    "Abdominal region",
    regions={
        "quadrants": _z(
            "Belly",
            "Abdominal quadrants",
            regions={
                "ruq": _z("Upper right belly", "Right upper quadrant"),
                "luq": _z("Upper left belly", "Left upper quadrant"),
                "epigastric": _z("Upper middle belly", "Epigastric region"),
                "periumbilical": _z("Around belly button", "Periumbilical region"),
                "rlq": _z("Lower right belly", "Right lower quadrant"),
                "llq": _z("Lower left belly", "Left lower quadrant"),
                "suprapubic": _z("Lower middle belly", "Suprapubic region"),
            },
        ),
    },
)

SPINE = _z(
    "Spine",
    "Vertebral column",
    regions={
        "cervical": _z("Neck spine", "Cervical spine"),
        "thoracic": _z(
            "Upper and middle spine",
            "Thoracic spine",
            regions={
                "upper": _z("Upper spine", "Upper thoracic spine"),
                "mid": _z("Middle spine", "Mid thoracic spine"),
                "lower": _z("Lower thoracic spine", "Lower thoracic spine"),
            },
        ),
        "lumbar": _z(
            "Lower back",
            "Lumbar spine",
            regions={
                "upper": _z("Upper lower back", "Upper lumbar spine"),
                "lower": _z("Lower back", "Lower lumbar spine"),
            },
        ),
        "sacral": _z("Tailbone area", "Sacrum"),
    },
)

PELVIS = _z(
    "Pelvis",
    "Pelvic region",
    regions={
        "groin": _z("Groin", "Inguinal region", children=_lateral("Groin", "inguinal region")),
        "hip": _z("Hip", "Hip joint", children=_lateral("Hip", "hip joint")),
        "perineum": _z("Perineum", "Perineal region"),
        "lower": _z("Lower pelvis", "Hypogastric region"),
    },
)

ARM = _z(
    "Arm",
    "Upper limb",
    sides=SIDES,
    parts={
        "shoulder": _z("Shoulder", "Glenohumeral region"),
        "upper_anterior": _z("Front of upper arm", "Anterior brachial region"),
        "upper_posterior": _z("Back of upper arm", "Posterior brachial region"),
        "elbow_anterior": _z("Front of elbow", "Antecubital fossa"),
        "elbow_posterior": _z("Back of elbow", "Olecranon region"),
        "forearm_anterior": _z("Front of forearm", "Anterior antebrachial region"),
        "forearm_posterior": _z("Back of forearm", "Posterior antebrachial region"),
        "wrist": _z("Wrist", "Carpal region"),
    },
)

HAND = _z(
    "Hand",
    "Manus",
    sides=SIDES,
    parts={
        "palm": _z("Palm", "Palmar region"),
        "back": _z("Back of hand", "Dorsum of hand"),
        "thumb": _z("Thumb", "Pollex"),
        "index": _z("Index finger", "Second digit"),
        "middle": _z("Middle finger", "Third digit"),
        "ring": _z("Ring finger", "Fourth digit"),
        "pinky": _z("Little finger", "Fifth digit"),
    },
)

LEG = _z(
    "Leg",
    "Lower limb",
    sides=SIDES,
    parts={
        "thigh_anterior": _z("Front of thigh", "Anterior femoral region"),
        "thigh_posterior": _z("Back of thigh", "Posterior femoral region"),
        "knee_anterior": _z("Front of knee (kneecap)", "Patellar region"),
        "knee_posterior": _z("Back of knee", "Popliteal fossa"),
        "calf_anterior": _z("Shin", "Anterior crural region"),
        "calf_posterior": _z("Calf muscle", "Sural region"),
        "ankle": _z("Ankle", "Talocrural region"),
    },
)

FOOT = _z(
    "Foot",
    "Pes",
    sides=SIDES,
    parts={
        "top": _z("Top of foot", "Dorsum of foot"),
        "sole": _z("Sole", "Plantar region"),
        "heel": _z("Heel", "Calcaneal region"),
        "arch": _z("Arch", "Medial longitudinal arch"),
        "ball": _z("Ball of foot", "Metatarsal heads"),
        "big_toe": _z("Big toe", "Hallux"),
        "toes": _z("Toes", "Lesser digits"),
    },
)

BODY_TAXONOMY = _z(
    "Body",
    "Body",
    children={
        "head": HEAD,
        "neck": NECK,
        "chest": CHEST,
        "abdomen": ABDOMEN,
        "spine": SPINE,
        "pelvis": PELVIS,
        "arm": ARM,
        "hand": HAND,
        "leg": LEG,
        "foot": FOOT,
    },
)
