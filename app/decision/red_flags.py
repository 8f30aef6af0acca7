# app/decision/red_flags.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, FrozenSet, List

from app.decision.schema import ClinicalInput, PainSymptom, RedFlag


@dataclass(frozen=True)
class RedFlagRule:
    locations: FrozenSet[str]
    flag: str
    significance: str
    action: str
    when: Callable[[PainSymptom, frozenset], bool]


# Independent of the differential table: a flag can fire without any
# matching condition and vice versa.
RULES: List[RedFlagRule] = [
    RedFlagRule(
        frozenset({"head"}),
        "Thunderclap headache",
        "May indicate subarachnoid hemorrhage or other vascular event",
        "Emergency evaluation with neuroimaging required",
        lambda p, a: p.onset == "suddenly" and p.intensity >= 8,
    ),
    RedFlagRule(
        frozenset({"head"}),
        "Meningeal signs",
        "May indicate meningitis or other CNS infection",
        "Emergency evaluation with LP/imaging required",
        lambda p, a: "neck-stiffness" in a and "fever" in a,
    ),
    RedFlagRule(
        frozenset({"head"}),
        "Neurological symptoms with headache",
        "May indicate stroke, mass lesion, or increased ICP",
        "Emergency neurological evaluation required",
        lambda p, a: "visual-changes" in a and "confusion" in a,
    ),
    RedFlagRule(
        frozenset({"chest"}),
        "Cardiac-pattern pain radiation",
        "May indicate acute coronary syndrome",
        "Emergency cardiac workup (ECG, troponin) required",
        lambda p, a: "left-arm" in p.radiation or "jaw" in p.radiation,
    ),
    RedFlagRule(
        frozenset({"chest"}),
        "Acute dyspnea with chest pain",
        "May indicate PE, pneumothorax, or MI",
        "Emergency evaluation with imaging required",
        lambda p, a: "shortness-of-breath" in a and p.onset == "suddenly",
    ),
    RedFlagRule(
        frozenset({"abdomen"}),
        "GI bleeding",
        "Active bleeding requiring evaluation",
        "Emergency GI evaluation required",
        lambda p, a: "vomiting-blood" in a or "blood-in-stool" in a,
    ),
    RedFlagRule(
        frozenset({"abdomen"}),
        "Severe abdominal pain with fever",
        "May indicate surgical emergency (appendicitis, cholecystitis, etc.)",
        "Emergency surgical evaluation required",
        lambda p, a: p.intensity >= 8 and "fever" in a,
    ),
    RedFlagRule(
        frozenset({"lower-back", "upper-back"}),
        "Cauda equina syndrome",
        "Surgical emergency - risk of permanent neurological damage",
        "IMMEDIATE surgical consultation required",
        lambda p, a: "bowel-bladder-dysfunction" in a,
    ),
    RedFlagRule(
        frozenset({"lower-back", "upper-back"}),
        "Progressive neurological deficit",
        "May indicate cord compression or vascular event",
        "Urgent neurological/neurosurgical evaluation",
        lambda p, a: "progressive-weakness" in a,
    ),
]


def identify_red_flags(data: ClinicalInput) -> List[RedFlag]:
    pain = data.pain
    if pain is None:
        return []

    associated = frozenset(data.associated)
    return [
        RedFlag(flag=rule.flag, significance=rule.significance, action=rule.action)
        for rule in RULES
        if pain.location in rule.locations and rule.when(pain, associated)
    ]
