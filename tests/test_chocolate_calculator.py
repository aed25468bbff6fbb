# tests/test_chocolate_calculator.py

"""
Chocolate Calculator Tests
"""

import pytest
from decimal import Decimal

from cocoa_contest.scoring.chocolate_calculator import (
    CATEGORY_WEIGHTS,
    SCORED_ATTRIBUTES,
    ChocolateCalculator,
)


def chocolate(level=5.0):
    return {category: {name: level for name in names} for category, names in SCORED_ATTRIBUTES.items()}


@pytest.fixture
def calculator():
    return ChocolateCalculator()


def test_weights_sum_to_one():
    assert sum(CATEGORY_WEIGHTS.values()) == Decimal("1.00")


def test_uniform_scores_give_same_weighted_score(calculator):
    result = calculator.calculate(chocolate(7.0))
    assert result.weighted_score == Decimal("7.00")
    assert all(score == Decimal("7.00") for score in result.category_scores.values())
    assert result.missing == []


def test_weighted_score(calculator):
    data = chocolate(0.0)
    data["flavor"] = {"sweetness": 8, "bitterness": 6, "acidity": 4, "flavor_intensity": 6}   # 6.0
    data["aroma"] = {"aroma_intensity": 9, "aroma_quality": 7}                               # 8.0
    data["texture"] = {"smoothness": 5, "melting": 5, "body": 5}                             # 5.0
    data["aftertaste"] = {"persistence": 3, "aftertaste_quality": 3, "final_balance": 3}     # 3.0
    data["appearance"] = {"color": 10, "gloss": 10, "surface_homogeneity": 10}               # 10.0
    result = calculator.calculate(data)
    # 0.40*6 + 0.25*8 + 0.20*5 + 0.10*3 + 0.05*10
    assert result.weighted_score == Decimal("6.20")
    assert result.category_scores["aroma"] == Decimal("8.00")


def test_category_score_rounded_to_two_places(calculator):
    data = chocolate(0.0)
    data["texture"] = {"smoothness": 1, "melting": 1, "body": 0}
    result = calculator.calculate(data)
    assert result.category_scores["texture"] == Decimal("0.67")


def test_missing_attribute_scores_zero(calculator):
    data = chocolate(6.0)
    del data["aroma"]["aroma_quality"]
    result = calculator.calculate(data)
    assert result.category_scores["aroma"] == Decimal("3.00")
    assert [(m.group, m.attribute) for m in result.missing] == [("aroma", "aroma_quality")]


def test_descriptive_notes_are_not_scored(calculator):
    data = chocolate(6.0)
    data["aroma"]["specific_notes"] = "red fruit, honey"
    data["flavor"]["flavor_notes"] = ["citrus"]
    result = calculator.calculate(data)
    assert result.category_scores["aroma"] == Decimal("6.00")
    assert result.notes == {
        "aroma": {"specific_notes": "red fruit, honey"},
        "flavor": {"flavor_notes": ["citrus"]},
    }


def test_out_of_range_intensity(calculator):
    data = chocolate(6.0)
    data["texture"]["body"] = 12
    with pytest.raises(ValueError):
        calculator.calculate(data)


def test_to_dict_includes_weighted_score(calculator):
    scores = calculator.calculate(chocolate(4.0)).to_dict()
    assert scores["weighted_score"] == 4.0
    assert set(scores) == set(CATEGORY_WEIGHTS) | {"weighted_score"}
