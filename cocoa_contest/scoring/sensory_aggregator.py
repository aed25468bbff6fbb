# cocoa_contest/scoring/sensory_aggregator.py
"""
Sensory Aggregator - Cocoa Contest Evaluation Engine
-----------------------------------------------------
Turns a judge's raw attribute intensities into composite group totals, a
14-point radar vector and a validated overall quality score.

Group formulas (each total = min(10, weighted sum), rounded half-up to 0.1):
    acidity       frutal + acetic + lactic + mineral_butyric
    fresh_fruit   berries + 0.8 citrus + 0.3 yellow_pulp + 0.3 dark + 0.3 tropical
    brown_fruit   dry + 0.8 brown + 0.3 overripe
    vegetal       grass_herb + 0.8 earthy
    floral        orange_blossom + 0.8 flowers
    wood          light + 0.8 dark + 0.3 resin
    spice         spices + 0.8 tobacco + 0.3 umami
    nut           kernel + 0.8 skin
    roast_degree  lactic + 0.8 mineral_butyric
    defects       dirty + animal + rotten + smoke + humid + moldy
                  + overfermented + other

A missing child scores 0 and is reported on the result as a
MissingAttribute; it never aborts the aggregation.
"""
import structlog
from dataclasses import dataclass, field
from decimal import Decimal
from numbers import Real
from typing import Any, Dict, List, Mapping, Tuple

from cocoa_contest.core.exceptions import MissingAttribute
from cocoa_contest.scoring.utils import ZERO, TEN, clamp, round_to, to_decimal

logger = structlog.get_logger(__name__)

_ONE = Decimal("1")
_MAJOR = Decimal("0.8")
_MINOR = Decimal("0.3")

GROUP_FORMULAS: Dict[str, Tuple[Tuple[str, Decimal], ...]] = {
    "acidity": (
        ("frutal", _ONE), ("acetic", _ONE), ("lactic", _ONE), ("mineral_butyric", _ONE),
    ),
    "fresh_fruit": (
        ("berries", _ONE), ("citrus", _MAJOR), ("yellow_pulp", _MINOR),
        ("dark", _MINOR), ("tropical", _MINOR),
    ),
    "brown_fruit": (("dry", _ONE), ("brown", _MAJOR), ("overripe", _MINOR)),
    "vegetal": (("grass_herb", _ONE), ("earthy", _MAJOR)),
    "floral": (("orange_blossom", _ONE), ("flowers", _MAJOR)),
    "wood": (("light", _ONE), ("dark", _MAJOR), ("resin", _MINOR)),
    "spice": (("spices", _ONE), ("tobacco", _MAJOR), ("umami", _MINOR)),
    "nut": (("kernel", _ONE), ("skin", _MAJOR)),
    "roast_degree": (("lactic", _ONE), ("mineral_butyric", _MAJOR)),
    "defects": tuple(
        (name, _ONE)
        for name in ("dirty", "animal", "rotten", "smoke", "humid", "moldy", "overfermented", "other")
    ),
}

LEAF_ATTRIBUTES: Tuple[str, ...] = ("cacao", "caramel_panela", "bitterness", "astringency")

# Radar axis order is fixed; charts compare evaluations point by point
RADAR_AXES: Tuple[Tuple[str, str], ...] = (
    ("Cacao", "cacao"),
    ("Acidity (Total)", "acidity"),
    ("Fresh Fruit (Total)", "fresh_fruit"),
    ("Brown Fruit (Total)", "brown_fruit"),
    ("Vegetal (Total)", "vegetal"),
    ("Floral (Total)", "floral"),
    ("Wood (Total)", "wood"),
    ("Spice (Total)", "spice"),
    ("Nut (Total)", "nut"),
    ("Caramel/Panela", "caramel_panela"),
    ("Bitterness", "bitterness"),
    ("Astringency", "astringency"),
    ("Roast Degree", "roast_degree"),
    ("Defects (Total)", "defects"),
)


@dataclass
class GroupScore:
    """Children as received (missing ones filled with 0) plus the clamped total."""
    children: Dict[str, Decimal]
    total: Decimal


@dataclass
class AggregatedEvaluation:
    """Output of SensoryAggregator.aggregate()."""
    leaves: Dict[str, Decimal]
    groups: Dict[str, GroupScore]
    radar: List[Tuple[str, Decimal]]
    overall_quality: Decimal
    passthrough: Dict[str, Any] = field(default_factory=dict)
    missing: List[MissingAttribute] = field(default_factory=list)

    @property
    def missing_paths(self) -> List[str]:
        return [f"{m.group}.{m.attribute}" for m in self.missing]

    def to_attributes(self) -> Dict[str, Any]:
        """
        Storable attribute tree. Feeding it back into aggregate() yields the
        same totals.
        """
        tree: Dict[str, Any] = {name: float(value) for name, value in self.leaves.items()}
        for name, group in self.groups.items():
            tree[name] = {
                "children": {k: float(v) for k, v in group.children.items()},
                "total": float(group.total),
            }
        tree.update(self.passthrough)
        return tree


def _intensity(path: str, raw: Any) -> Decimal:
    """Validate one intensity: a number (or {"value": n}) in [0, 10]."""
    if isinstance(raw, Mapping):
        if "value" not in raw:
            raise ValueError(f"{path}: expected a number or {{'value': n}}")
        raw = raw["value"]
    if isinstance(raw, bool) or not isinstance(raw, (Real, Decimal)):
        raise ValueError(f"{path}: intensity must be numeric, got {type(raw).__name__}")
    value = to_decimal(raw)
    if not value.is_finite() or value < ZERO or value > TEN:
        raise ValueError(f"{path}: intensity {raw} outside [0, 10]")
    return value


def _children_of(name: str, raw: Any) -> Mapping[str, Any]:
    if not isinstance(raw, Mapping):
        raise ValueError(f"{name}: expected a mapping of child attributes")
    if "children" in raw:
        children = raw["children"]
        if not isinstance(children, Mapping):
            raise ValueError(f"{name}.children: expected a mapping")
        return children
    return {k: v for k, v in raw.items() if k != "total"}


def validate_overall_quality(value: Any) -> Decimal:
    return _intensity("overall_quality", value)


class SensoryAggregator:
    """Pure aggregation of raw sensory attributes; holds no state."""

    def aggregate(self, attributes: Mapping[str, Any], overall_quality: Any) -> AggregatedEvaluation:
        """
        Args:
            attributes: Raw attribute tree. Groups may be flat child maps or
                        {"children": {...}}; leaves numbers or {"value": n}.
                        Any stored "total" is ignored and recomputed.
            overall_quality: Judge-supplied overall score in [0, 10].

        Returns:
            AggregatedEvaluation with leaves, group totals, radar vector and
            any MissingAttribute records.

        Raises:
            ValueError: an intensity is non-numeric or outside [0, 10].
        """
        quality = validate_overall_quality(overall_quality)
        missing: List[MissingAttribute] = []

        leaves: Dict[str, Decimal] = {}
        for leaf in LEAF_ATTRIBUTES:
            if leaf in attributes:
                leaves[leaf] = _intensity(leaf, attributes[leaf])
            else:
                leaves[leaf] = ZERO
                missing.append(MissingAttribute(leaf, "value"))

        groups: Dict[str, GroupScore] = {}
        for group, formula in GROUP_FORMULAS.items():
            raw_children = _children_of(group, attributes.get(group, {}))
            children: Dict[str, Decimal] = {
                child: _intensity(f"{group}.{child}", raw)
                for child, raw in raw_children.items()
            }
            weighted_sum = ZERO
            for child, weight in formula:
                if child not in children:
                    children[child] = ZERO
                    missing.append(MissingAttribute(group, child))
                weighted_sum += children[child] * weight
            groups[group] = GroupScore(
                children=children,
                total=round_to(clamp(weighted_sum, ZERO, TEN)),
            )

        passthrough = {
            k: v for k, v in attributes.items()
            if k not in GROUP_FORMULAS and k not in LEAF_ATTRIBUTES
        }

        values = dict(leaves)
        values.update({name: g.total for name, g in groups.items()})
        radar = [(label, values[key]) for label, key in RADAR_AXES]

        if missing:
            logger.warning(
                "sensory_attributes_missing",
                count=len(missing),
                attributes=[f"{m.group}.{m.attribute}" for m in missing],
            )

        return AggregatedEvaluation(
            leaves=leaves,
            groups=groups,
            radar=radar,
            overall_quality=quality,
            passthrough=passthrough,
            missing=missing,
        )
