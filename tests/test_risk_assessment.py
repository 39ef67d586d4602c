import pytest

from analyzers.risk_assessment import (
    RiskAssessmentService,
    risk_level_for_score,
    top_non_dex_holding_percentage,
)
from models.token_models import (
    CreatorToken,
    RiskLevel,
    TokenContract,
    TokenCreator,
    TokenHolding,
)


def _holdings(non_dex, dex=0.0):
    holdings = [TokenHolding(address=f"w{i}", amount=p, percentage=p) for i, p in enumerate(non_dex)]
    if dex:
        holdings.append(TokenHolding(address="pool", amount=dex, percentage=dex, is_dex=True))
    return holdings


def _creator(launches=0):
    return TokenCreator(
        address="creator",
        other_tokens=[CreatorToken(address=f"m{i}", name=f"T{i}") for i in range(launches)],
    )


@pytest.fixture
def service():
    return RiskAssessmentService()


def test_score_thresholds():
    assert risk_level_for_score(0) == RiskLevel.LOW
    assert risk_level_for_score(3) == RiskLevel.LOW
    assert risk_level_for_score(4) == RiskLevel.MEDIUM
    assert risk_level_for_score(6) == RiskLevel.MEDIUM
    assert risk_level_for_score(7) == RiskLevel.HIGH


def test_top_twenty_ignores_exchanges():
    holdings = _holdings([1.0] * 25, dex=60.0)
    assert top_non_dex_holding_percentage(holdings) == 20.0


def test_clean_token_is_low_risk(service):
    result = service.assess_risk(_holdings([5.0, 4.0], dex=40.0), TokenContract(), _creator(), market_cap=250_000)

    assert result.risk_score == 0
    assert result.risk_level == RiskLevel.LOW
    assert result.detailed_analysis == []


def test_every_red_flag(service):
    contract = TokenContract(mint_authority="auth", freeze_authority="auth")
    result = service.assess_risk(_holdings([30.0, 25.0], dex=2.0), contract, _creator(11), market_cap=5_000)

    # 5 concentration + 4 mint + 3 freeze + 3 liquidity + 3 creator + 2 market cap
    assert result.risk_score == 20
    assert result.risk_level == RiskLevel.HIGH
    assert len(result.detailed_analysis) == 6
    assert "Mint authority is still enabled" in result.detailed_analysis


def test_moderate_flags(service):
    result = service.assess_risk(_holdings([20.0, 15.0], dex=8.0), TokenContract(), _creator(6), market_cap=None)

    # 3 concentration + 2 liquidity + 2 creator
    assert result.risk_score == 7
    assert result.risk_level == RiskLevel.HIGH


def test_unknown_market_cap_not_penalized(service):
    result = service.assess_risk(_holdings([1.0], dex=50.0), TokenContract(), _creator(), market_cap=None)
    assert result.risk_score == 0
