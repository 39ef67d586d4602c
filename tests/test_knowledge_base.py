from models.token_models import RiskLevel
from services.knowledge_base import (
    TOKEN_RISK_PATTERNS,
    get_pattern,
    get_patterns_by_category,
    get_patterns_by_risk_level,
    match_risk_patterns,
)


def test_catalog_contents():
    ids = [p.id for p in TOKEN_RISK_PATTERNS]
    assert len(ids) == 14
    assert len(set(ids)) == 14
    for pattern in TOKEN_RISK_PATTERNS:
        assert pattern.indicators
        assert pattern.mitigations


def test_lookups():
    assert get_pattern("HOLDING-001").category == "HOLDING"
    assert get_pattern("NOPE-001") is None
    assert {p.id for p in get_patterns_by_category("social")} == {"SOCIAL-001", "SOCIAL-002"}
    medium = {p.id for p in get_patterns_by_risk_level("medium")}
    assert medium == {"HOLDING-002", "TECHNICAL-002", "SOCIAL-001", "SOCIAL-002"}
    assert len(get_patterns_by_risk_level(RiskLevel.HIGH)) == 10


def test_no_match_on_empty_data():
    assert match_risk_patterns({}) == []


def test_holding_concentration_match():
    assert [p.id for p in match_risk_patterns({"top5_percentage": 50.1})] == ["HOLDING-001"]
    assert match_risk_patterns({"top5_percentage": 50.0}) == []


def test_creator_collapse_match():
    history = [
        {"price": 0.5, "initial_price": 1.0},
        {"price": 0.05, "initial_price": 1.0},
    ]
    assert [p.id for p in match_risk_patterns({"creator_history": history})] == ["CREATOR-001"]
    assert match_risk_patterns({"creator_history": [{"price": 0.05, "initial_price": None}]}) == []


def test_price_spike_match():
    assert [p.id for p in match_risk_patterns({"price_history": [1.0, 1.2, 1.7]})] == ["PRICE-001"]
    assert match_risk_patterns({"price_history": [1.0, 1.25]}) == []
    assert match_risk_patterns({"price_history": [0.0, 5.0]}) == []


def test_match_order_creator_holding_price():
    data = {
        "creator_history": [{"price": 0.01, "initial_price": 1.0}],
        "top5_percentage": 80.0,
        "price_history": [1.0, 2.0],
    }
    assert [p.id for p in match_risk_patterns(data)] == ["CREATOR-001", "HOLDING-001", "PRICE-001"]
