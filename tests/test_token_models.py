from models.token_models import (
    SOLANA_DEX_ADDRESSES,
    CleanedHoldingData,
    MaturityStage,
    ProjectQuality,
    RiskAssessment,
    RiskLevel,
    TokenCreator,
    CreatorToken,
    classify_market_cap,
    is_dex_address,
)


def test_classify_market_cap_boundaries():
    assert classify_market_cap(0) == ProjectQuality.MICRO
    assert classify_market_cap(99.99) == ProjectQuality.MICRO
    assert classify_market_cap(100) == ProjectQuality.SMALL
    assert classify_market_cap(499) == ProjectQuality.SMALL
    assert classify_market_cap(500) == ProjectQuality.MEDIUM
    assert classify_market_cap(2499) == ProjectQuality.MEDIUM
    assert classify_market_cap(2500) == ProjectQuality.LARGE
    assert classify_market_cap(1_000_000) == ProjectQuality.LARGE


def test_dex_allowlist():
    assert is_dex_address(SOLANA_DEX_ADDRESSES["Raydium Pool"])
    assert is_dex_address(SOLANA_DEX_ADDRESSES["Binance Hot Wallet"])
    assert not is_dex_address("7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU")


def test_to_dict_flattens_enums_and_nested_dataclasses():
    risk = RiskAssessment(risk_level=RiskLevel.HIGH, risk_score=9, detailed_analysis=["a"])
    assert risk.to_dict() == {"risk_level": "HIGH", "risk_score": 9, "detailed_analysis": ["a"]}

    creator = TokenCreator(address="abc", other_tokens=[CreatorToken(address="m1", name="One")])
    data = creator.to_dict()
    assert data["other_tokens"][0]["address"] == "m1"
    assert data["current_token"] is None


def test_cleaned_holding_defaults():
    cleaned = CleanedHoldingData()
    assert cleaned.total_holders == 0
    assert cleaned.non_dex_distribution.top5_percentage == 0.0
    assert cleaned.non_dex_distribution.details == []
    assert MaturityStage("LAUNCH") == MaturityStage.LAUNCH
