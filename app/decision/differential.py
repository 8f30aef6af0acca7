# app/decision/differential.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from app.decision.schema import (
    ClinicalInput,
    DifferentialEntry,
    PainSymptom,
    Probability,
    UrgencyLevel,
)

Predicate = Callable[[PainSymptom, frozenset], bool]


@dataclass(frozen=True)
class DifferentialRule:
    location: str
    condition: str
    probability: Probability
    supporting: Tuple[str, ...]
    when: Predicate
    urgency: Optional[UrgencyLevel] = None

    def entry(self) -> DifferentialEntry:
        return DifferentialEntry(
            condition=self.condition,
            probability=self.probability,
            supporting_features=self.supporting,
            urgency=self.urgency,
        )


def _has(values: Tuple[str, ...], *wanted: str) -> bool:
    return any(w in values for w in wanted)


# Evaluated in table order; that order is the tie-break for equal ranks.
RULES: List[DifferentialRule] = [
    # Head
    DifferentialRule(
        "head", "Migraine", Probability.HIGH,
        ("throbbing pain", "nausea", "photophobia"),
        lambda p, a: "throbbing" in p.quality
        and p.intensity >= 5
        and bool(a & {"nausea", "photophobia", "phonophobia"}),
    ),
    DifferentialRule(
        "head", "Tension-type headache", Probability.MODERATE,
        ("pressure quality", "bilateral"),
        lambda p, a: _has(p.quality, "pressure", "tight-band"),
    ),
    DifferentialRule(
        "head", "Cluster headache", Probability.MODERATE,
        ("severe unilateral pain", "autonomic symptoms"),
        lambda p, a: "sharp" in p.quality and p.intensity >= 8 and "eye-watering" in a,
    ),
    DifferentialRule(
        "head", "Subarachnoid hemorrhage (URGENT)", Probability.CONSIDER,
        ("thunderclap onset", "worst headache ever"),
        lambda p, a: p.onset == "suddenly" and p.intensity >= 8,
        UrgencyLevel.EMERGENCY,
    ),
    DifferentialRule(
        "head", "Meningitis (URGENT)", Probability.CONSIDER,
        ("fever", "neck stiffness", "headache"),
        lambda p, a: "fever" in a and "neck-stiffness" in a,
        UrgencyLevel.EMERGENCY,
    ),
    # Chest
    DifferentialRule(
        "chest", "Acute coronary syndrome (URGENT)", Probability.CONSIDER,
        ("crushing pain", "radiation to arm/jaw"),
        lambda p, a: _has(p.quality, "crushing", "pressure")
        or _has(p.radiation, "left-arm", "jaw"),
        UrgencyLevel.EMERGENCY,
    ),
    DifferentialRule(
        "chest", "Pulmonary embolism (URGENT)", Probability.CONSIDER,
        ("sharp pain", "dyspnea", "sudden onset"),
        lambda p, a: "sharp" in p.quality and "shortness-of-breath" in a,
        UrgencyLevel.URGENT,
    ),
    DifferentialRule(
        "chest", "Pleuritic chest pain", Probability.MODERATE,
        ("sharp pain", "worse with breathing"),
        lambda p, a: "sharp" in p.quality and p.timing == "worse-with-breathing",
    ),
    DifferentialRule(
        "chest", "GERD / Heartburn", Probability.MODERATE,
        ("burning pain", "meal-related"),
        lambda p, a: "burning" in p.quality and p.timing == "after-meals",
    ),
    DifferentialRule(
        "chest", "Costochondritis", Probability.MODERATE,
        ("sharp pain", "reproducible with palpation"),
        lambda p, a: "sharp" in p.quality and p.timing == "worse-with-movement",
    ),
    # Abdomen
    DifferentialRule(
        "abdomen", "Appendicitis", Probability.CONSIDER,
        ("RLQ pain", "progressive pain"),
        lambda p, a: p.subzone == "rlq" and p.intensity >= 5,
        UrgencyLevel.URGENT,
    ),
    DifferentialRule(
        "abdomen", "Cholecystitis", Probability.MODERATE,
        ("RUQ pain", "nausea", "post-prandial"),
        lambda p, a: p.subzone == "ruq" and "nausea" in a,
    ),
    DifferentialRule(
        "abdomen", "Pancreatitis", Probability.CONSIDER,
        ("epigastric pain", "radiation to back"),
        lambda p, a: "boring" in p.quality and "back" in p.radiation,
        UrgencyLevel.URGENT,
    ),
    DifferentialRule(
        "abdomen", "Gastroenteritis", Probability.MODERATE,
        ("diarrhea", "nausea", "crampy pain"),
        lambda p, a: "diarrhea" in a and "nausea" in a,
    ),
    # Lower back
    DifferentialRule(
        "lower-back", "Mechanical low back pain", Probability.HIGH,
        ("gradual onset", "worse with movement"),
        lambda p, a: p.onset != "suddenly" and p.intensity < 7,
    ),
    DifferentialRule(
        "lower-back", "Kidney stone", Probability.MODERATE,
        ("colicky pain", "radiation to groin"),
        lambda p, a: "sharp" in p.quality and "colicky" in p.quality and "groin" in p.radiation,
    ),
    DifferentialRule(
        "lower-back", "Cauda equina syndrome (URGENT)", Probability.CONSIDER,
        ("back pain", "bowel/bladder dysfunction"),
        lambda p, a: bool(a & {"bowel-bladder-dysfunction", "saddle-anesthesia"}),
        UrgencyLevel.EMERGENCY,
    ),
]


def rank_differential(entries: List[DifferentialEntry]) -> List[DifferentialEntry]:
    """
    Order by urgency rank, then probability rank, both descending.
    ``sorted`` is stable, so equal-rank entries keep insertion order.
    """
    return sorted(entries, key=lambda e: e.sort_key, reverse=True)


def generate_differential(data: ClinicalInput) -> List[DifferentialEntry]:
    pain = data.pain
    if pain is None:
        return []

    associated = frozenset(data.associated)
    entries = [
        rule.entry()
        for rule in RULES
        if rule.location == pain.location and rule.when(pain, associated)
    ]
    return rank_differential(entries)
