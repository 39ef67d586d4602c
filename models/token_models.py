"""
Data models for the token risk pipeline

Covers holder distribution, creator history, market-cap tiers, health metrics
and the events exchanged between the launch monitor and the analyzers.
"""

from dataclasses import dataclass, field, asdict
from typing import Optional, List, Dict, Any
from datetime import datetime
from enum import Enum


SOL_MINT = "So11111111111111111111111111111111111111112"
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"


class RiskLevel(Enum):
    """Overall risk verdict"""
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class TrustLevel(Enum):
    """How much a creator wallet can be trusted"""
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class ProjectQuality(Enum):
    """Market-cap tier of a project, measured in SOL"""
    MICRO = "MICRO"    # < 100 SOL
    SMALL = "SMALL"    # 100 - 500 SOL
    MEDIUM = "MEDIUM"  # 500 - 2500 SOL
    LARGE = "LARGE"    # >= 2500 SOL, a "moon" project


class MaturityStage(Enum):
    """Lifecycle phase of a token"""
    LAUNCH = "LAUNCH"
    STABILITY = "STABILITY"
    MATURITY = "MATURITY"


# Upper bounds in SOL
MARKET_CAP_TIERS = {
    "MICRO": 100,
    "SMALL": 500,
    "MEDIUM": 2500,
    "LARGE": 10000,
}

HEALTH_THRESHOLDS = {
    "HOLDER_CONCENTRATION": {
        "HEALTHY": {"max": 0.2},
        "WARNING": {"max": 0.4},
    },
    "LIQUIDITY_RATIO": {
        "HEALTHY": {"min": 5, "max": 15},
        "WARNING": {"min": 3, "max": 20},
    },
    "VOLUME_RATIO": {
        "HEALTHY": {"min": 0.1, "max": 0.5},
        "WARNING": {"min": 0.05, "max": 1.0},
    },
}

# Known DEX pools and CEX hot wallets, excluded from "real holder" concentration
SOLANA_DEX_ADDRESSES = {
    "Raydium Pool": "5Q544fKrFoe6tsEbD7S8EmxGTJYAKtTVhAW5Q5pge4j1",
    "Orca Pool": "3xgEGKwqqAVF3A3b2Xc95xJsGG8G5sCLxgAkLqoHzqXg",
    "Jupiter Pool": "JUP4Fb2cqiRUcaTHdrPC8h2gNsA2ETXiPDD33WcGuJB",
    "Meteora Pool": "MEisE1HzehtrDpAAT8PnLHjpSSkRYakotTuJRPjTpo8",
    "Bitget Pool": "A77HErqtfN1hLLpvZ9pCtu66FEtM8BveoaKbbMoZ4RiR",
    "Gate.io Pool": "u6PJ8DtQuPFnfmwHbGFULQ4u4EgjDiyYKjVEsynXq2w",
    "Binance Hot Wallet": "5tzFkiKscXHK5ZXCGbXZxZY3qhK9NwEHyQZtZdF4jYQN",
    "OKX Hot Wallet": "5VqYBPm3bu9Vw5r4YEVvFZFiGGJvpGGqTHgMbphpz3SE",
    "Bybit Hot Wallet": "BxhrajyEevdKyZcP1eiBPcbvxpEkfRt7TaQKSf1UXi6d",
    "KuCoin Hot Wallet": "2vxcmWoLy46yEMuJhcPt2nCPUvwrW8SWkFdNzuCRJfdr",
    "MEXC Hot Wallet": "9BVcYqEQxyccuwznvxXqDkSJFavvTyheiTYk231T1A8S",
}

ALL_DEX_ADDRESSES = frozenset(SOLANA_DEX_ADDRESSES.values())


def is_dex_address(address: str) -> bool:
    return address in ALL_DEX_ADDRESSES


def classify_market_cap(market_cap_sol: float) -> ProjectQuality:
    """Bucket a market cap (in SOL) into its tier"""
    if market_cap_sol < MARKET_CAP_TIERS["MICRO"]:
        return ProjectQuality.MICRO
    if market_cap_sol < MARKET_CAP_TIERS["SMALL"]:
        return ProjectQuality.SMALL
    if market_cap_sol < MARKET_CAP_TIERS["MEDIUM"]:
        return ProjectQuality.MEDIUM
    return ProjectQuality.LARGE


def _to_plain(items) -> Dict[str, Any]:
    """asdict() factory that flattens enums to their values"""
    return {
        key: value.value if isinstance(value, Enum) else value
        for key, value in items
    }


class _Serializable:
    def to_dict(self) -> Dict[str, Any]:
        return asdict(self, dict_factory=_to_plain)


# ============================================================================
# HOLDINGS
# ============================================================================

@dataclass
class TokenHolding(_Serializable):
    """One holder: the owner wallet (not the token account) and its share"""
    address: str
    amount: float
    percentage: float
    is_dex: bool = False
    total_holders: int = 0


@dataclass
class TokenHoldingInfo(_Serializable):
    holdings: List[TokenHolding] = field(default_factory=list)
    top5_non_dex_percentage: float = 0.0


@dataclass
class HolderDetail(_Serializable):
    address: str
    percentage: float
    rank: int


@dataclass
class NonDexDistribution(_Serializable):
    top5_percentage: float = 0.0
    top10_percentage: float = 0.0
    details: List[HolderDetail] = field(default_factory=list)


@dataclass
class CleanedHoldingData(_Serializable):
    total_holders: int = 0
    non_dex_holders: int = 0
    dex_holding_percentage: float = 0.0
    non_dex_distribution: NonDexDistribution = field(default_factory=NonDexDistribution)


# ============================================================================
# CREATOR
# ============================================================================

@dataclass
class CreatorToken(_Serializable):
    """A token previously launched by the same creator"""
    address: str
    name: str
    price: Optional[float] = None
    market_cap: Optional[float] = None  # USD
    timestamp: Optional[float] = None  # unix seconds


@dataclass
class CurrentToken(_Serializable):
    creation_time: float  # unix seconds
    raydium_pool: Optional[str] = None


@dataclass
class TokenCreator(_Serializable):
    address: str
    other_tokens: List[CreatorToken] = field(default_factory=list)
    creation_time: Optional[float] = None
    current_token: Optional[CurrentToken] = None


@dataclass
class ProjectSummary(_Serializable):
    name: str
    market_cap_sol: float
    market_cap_usd: float
    quality: ProjectQuality
    timestamp: float  # unix milliseconds


@dataclass
class CleanedCreatorData(_Serializable):
    """Creator history bucketed by market-cap tier"""
    address: str
    total_projects: int = 0
    projects_by_quality: Dict[str, int] = field(default_factory=dict)
    quality_distribution: Dict[str, float] = field(default_factory=dict)
    moon_projects: List[ProjectSummary] = field(default_factory=list)
    recent_projects: List[ProjectSummary] = field(default_factory=list)
    avg_market_cap: float = 0.0  # SOL
    success_rate: float = 0.0
    moon_rate: float = 0.0
    market_cap_tier: ProjectQuality = ProjectQuality.MICRO
    maturity_stage: MaturityStage = MaturityStage.LAUNCH
    age_in_hours: float = 0.0


# ============================================================================
# TOKEN / PRICE
# ============================================================================

@dataclass
class TokenContract(_Serializable):
    has_metadata: bool = False
    mint_authority: Optional[str] = None
    freeze_authority: Optional[str] = None
    supply: float = 0.0
    decimals: int = 0


@dataclass
class TokenInfo(_Serializable):
    """Name, symbol and mint configuration of a token"""
    address: str
    name: str
    symbol: str
    contract: TokenContract = field(default_factory=TokenContract)


@dataclass
class PriceInfo(_Serializable):
    price: Optional[float] = None
    market_cap: Optional[float] = None
    supply: Optional[float] = None


@dataclass
class PriceMetrics(_Serializable):
    usd_price: float
    sol_price: float
    sol_usd_price: float
    market_cap_in_sol: float
    volume_24h_in_sol: float
    liquidity_in_sol: float


@dataclass
class HealthMetrics(_Serializable):
    holder_count: int
    holder_distribution: float
    holders_healthy: bool
    liquidity_ratio: float
    liquidity_depth: float
    liquidity_healthy: bool
    volume_daily: float
    volume_ratio: float
    volume_healthy: bool


@dataclass
class TimeAdjustment(_Serializable):
    phase: MaturityStage
    expected_growth: float
    volatility_tolerance: float


@dataclass
class TierRecommendations(_Serializable):
    risk_level: RiskLevel = RiskLevel.LOW
    suggestions: List[str] = field(default_factory=list)
    warning_flags: List[str] = field(default_factory=list)


@dataclass
class MarketTierAnalysis(_Serializable):
    tier: ProjectQuality
    sol_metrics: PriceMetrics
    health_metrics: HealthMetrics
    time_adjustment: TimeAdjustment
    token_stage: MaturityStage
    recommendations: TierRecommendations


@dataclass
class RiskAssessment(_Serializable):
    risk_level: RiskLevel
    risk_score: int
    detailed_analysis: List[str] = field(default_factory=list)


# ============================================================================
# MONITOR
# ============================================================================

@dataclass
class WalletAge(_Serializable):
    created_at: float = 0.0  # unix milliseconds, 0 when unknown
    is_new_wallet: bool = True
    age_in_hours: float = 0.0


@dataclass
class CreatorHolding(_Serializable):
    balance: float = 0.0
    balance_usd: Optional[float] = None


@dataclass
class TimelineTokenInfo(_Serializable):
    """Everything the launch monitor knows about a freshly detected token"""
    token_name: str
    token_address: str
    created_at: float  # unix milliseconds
    creator: str
    launched_at: Optional[float] = None  # unix milliseconds, pool initialization
    creator_wallet_age: Optional[WalletAge] = None
    creator_holding: Optional[CreatorHolding] = None
    creator_tokens: List[CreatorToken] = field(default_factory=list)
    successful_tokens: int = 0
    price: Optional[float] = None


@dataclass
class NewTokenEvent(_Serializable):
    token_address: str
    signature: str
    timestamp: float = field(default_factory=lambda: datetime.now().timestamp() * 1000)
    sol_amount: float = 0.0
    token_amount: float = 0.0


@dataclass
class TokenLaunchEvent(_Serializable):
    token_address: str
    token_name: str
    creator: str
    launch_timestamp: float
    created_at: float
    transaction: str
    analysis: str
    tweets: List[str] = field(default_factory=list)
