"""
Data Cleaning Service

Turns raw holder lists and creator launch histories into the bucketed figures
the risk scorer and the LLM prompt consume:

- holder distribution with exchange wallets separated out
- creator projects classified into MICRO / SMALL / MEDIUM / LARGE market-cap
  tiers (measured in SOL), success and "moon" rates
- market tier health (liquidity / volume ratios) and time-based thresholds
"""

import time
from typing import Dict, List, Optional

from loguru import logger

from clients.jupiter_client import JupiterClient
from models.token_models import (
    HEALTH_THRESHOLDS,
    SOL_MINT,
    CleanedCreatorData,
    CleanedHoldingData,
    HealthMetrics,
    HolderDetail,
    MarketTierAnalysis,
    MaturityStage,
    NonDexDistribution,
    PriceInfo,
    PriceMetrics,
    ProjectQuality,
    ProjectSummary,
    RiskLevel,
    TierRecommendations,
    TimeAdjustment,
    TokenCreator,
    TokenHoldingInfo,
    classify_market_cap,
)
from utils.errors import PriceUnavailableError

STABILITY_WINDOW_HOURS = 72
LAUNCH_WINDOW_HOURS = 24


def _in_band(value: float, band: Dict[str, float]) -> bool:
    return band["min"] <= value <= band["max"]


def _safe_ratio(numerator: float, denominator: float) -> float:
    if not denominator:
        return float("inf") if numerator else 0.0
    return numerator / denominator


class DataCleaningService:
    """Normalizes holdings and creator history; evaluates market tier health"""

    def __init__(self, jupiter: Optional[JupiterClient] = None):
        self.jupiter = jupiter or JupiterClient()

    async def get_sol_price(self) -> float:
        """
        SOL/USD from Jupiter

        Raises:
            PriceUnavailableError: missing or non-positive price
        """
        sol_price = await self.jupiter.get_price(SOL_MINT)
        if sol_price is None or sol_price <= 0:
            raise PriceUnavailableError(SOL_MINT, "invalid SOL price")
        logger.debug(f"Current SOL price: ${sol_price:.2f}")
        return sol_price

    # ========================================================================
    # HOLDINGS
    # ========================================================================

    def clean_holding_data(self, holding_info: TokenHoldingInfo) -> CleanedHoldingData:
        holdings = holding_info.holdings
        total_holders = holdings[0].total_holders if holdings else 0

        dex_holdings = [h for h in holdings if h.is_dex]
        non_dex = sorted((h for h in holdings if not h.is_dex), key=lambda h: h.percentage, reverse=True)

        details = [
            HolderDetail(address=h.address, percentage=h.percentage, rank=i + 1)
            for i, h in enumerate(non_dex[:10])
        ]

        cleaned = CleanedHoldingData(
            total_holders=total_holders,
            non_dex_holders=len(non_dex),
            dex_holding_percentage=sum(h.percentage for h in dex_holdings),
            non_dex_distribution=NonDexDistribution(
                top5_percentage=sum(h.percentage for h in non_dex[:5]),
                top10_percentage=sum(h.percentage for h in non_dex[:10]),
                details=details,
            ),
        )

        logger.debug(
            f"Cleaned holdings: {cleaned.total_holders} holders, {cleaned.non_dex_holders} non-DEX, "
            f"DEX {cleaned.dex_holding_percentage:.2f}%, "
            f"top5 {cleaned.non_dex_distribution.top5_percentage:.2f}%, "
            f"top10 {cleaned.non_dex_distribution.top10_percentage:.2f}%"
        )
        return cleaned

    # ========================================================================
    # CREATOR
    # ========================================================================

    async def clean_creator_data(
        self,
        creator: TokenCreator,
        token_address: str,
        price_info: Optional[PriceInfo] = None,
    ) -> CleanedCreatorData:
        """
        Classify every project of the creator by market-cap tier

        The token being analyzed is appended as "Current Project" when its
        market cap is known and the creator history does not list it yet.
        """
        sol_price = await self.get_sol_price()
        now_ms = time.time() * 1000

        projects: List[tuple] = []  # (address, ProjectSummary)
        for token in creator.other_tokens:
            market_cap_usd = token.market_cap or 0.0
            market_cap_sol = market_cap_usd / sol_price
            projects.append((token.address, ProjectSummary(
                name=token.name,
                market_cap_sol=market_cap_sol,
                market_cap_usd=market_cap_usd,
                quality=classify_market_cap(market_cap_sol),
                timestamp=token.timestamp * 1000 if token.timestamp else now_ms,
            )))

        current_market_cap = price_info.market_cap if price_info and price_info.market_cap else None
        if current_market_cap and creator.current_token:
            if any(address == token_address for address, _ in projects):
                logger.debug(f"Current project {token_address} already in creator history")
            else:
                market_cap_sol = current_market_cap / sol_price
                projects.append((token_address, ProjectSummary(
                    name="Current Project",
                    market_cap_sol=market_cap_sol,
                    market_cap_usd=current_market_cap,
                    quality=classify_market_cap(market_cap_sol),
                    timestamp=creator.current_token.creation_time * 1000,
                )))

        summaries = [summary for _, summary in projects]
        total = len(summaries)

        counts = {quality.value.lower(): 0 for quality in ProjectQuality}
        for summary in summaries:
            counts[summary.quality.value.lower()] += 1
        distribution = {key: (count / total if total else 0.0) for key, count in counts.items()}

        moon_projects = [s for s in summaries if s.quality == ProjectQuality.LARGE]
        avg_market_cap = sum(s.market_cap_sol for s in summaries) / total if total else 0.0
        success_rate = (total - counts["micro"]) / total if total else 0.0
        moon_rate = counts["large"] / total if total else 0.0

        market_cap_tier = classify_market_cap(current_market_cap / sol_price if current_market_cap else 0.0)

        creation_time = creator.current_token.creation_time if creator.current_token else 0
        age_in_hours = (now_ms - creation_time * 1000) / 3_600_000 if creation_time else 0.0

        cleaned = CleanedCreatorData(
            address=creator.address,
            total_projects=total,
            projects_by_quality=counts,
            quality_distribution=distribution,
            moon_projects=moon_projects,
            recent_projects=sorted(summaries, key=lambda s: s.timestamp, reverse=True)[:5],
            avg_market_cap=avg_market_cap,
            success_rate=success_rate,
            moon_rate=moon_rate,
            market_cap_tier=market_cap_tier,
            maturity_stage=self._maturity_stage(creator, age_in_hours),
            age_in_hours=age_in_hours,
        )

        logger.info(
            f"👤 Creator {creator.address[:8]}...: {total} projects, "
            f"success {success_rate:.0%}, moon {moon_rate:.0%}, "
            f"tier {market_cap_tier.value}, stage {cleaned.maturity_stage.value}, "
            f"age {age_in_hours:.1f}h"
        )
        return cleaned

    @staticmethod
    def _maturity_stage(creator: TokenCreator, age_in_hours: float) -> MaturityStage:
        # no known current token counts as not yet pooled
        if creator.current_token is None or creator.current_token.raydium_pool is None:
            return MaturityStage.LAUNCH
        if age_in_hours <= STABILITY_WINDOW_HOURS:
            return MaturityStage.STABILITY
        return MaturityStage.MATURITY

    # ========================================================================
    # MARKET TIER
    # ========================================================================

    async def convert_to_sol_metrics(
        self,
        usd_price: float,
        market_cap_usd: float,
        volume_24h_usd: float,
        liquidity_usd: float,
    ) -> PriceMetrics:
        sol_usd = await self.get_sol_price()
        return PriceMetrics(
            usd_price=usd_price,
            sol_price=usd_price / sol_usd,
            sol_usd_price=sol_usd,
            market_cap_in_sol=market_cap_usd / sol_usd,
            volume_24h_in_sol=volume_24h_usd / sol_usd,
            liquidity_in_sol=liquidity_usd / sol_usd,
        )

    def evaluate_health_metrics(self, metrics: PriceMetrics, holding_data: CleanedHoldingData) -> HealthMetrics:
        """
        Liquidity ratio = market cap / liquidity, volume ratio = 24h volume / liquidity.
        Holder concentration is the top-5 non-DEX share as a fraction of supply.
        """
        liquidity_ratio = _safe_ratio(metrics.market_cap_in_sol, metrics.liquidity_in_sol)
        volume_ratio = _safe_ratio(metrics.volume_24h_in_sol, metrics.liquidity_in_sol)
        concentration = holding_data.non_dex_distribution.top5_percentage / 100

        return HealthMetrics(
            holder_count=holding_data.total_holders,
            holder_distribution=holding_data.non_dex_distribution.top5_percentage,
            holders_healthy=concentration <= HEALTH_THRESHOLDS["HOLDER_CONCENTRATION"]["HEALTHY"]["max"],
            liquidity_ratio=liquidity_ratio,
            liquidity_depth=metrics.liquidity_in_sol,
            liquidity_healthy=_in_band(liquidity_ratio, HEALTH_THRESHOLDS["LIQUIDITY_RATIO"]["HEALTHY"]),
            volume_daily=metrics.volume_24h_in_sol,
            volume_ratio=volume_ratio,
            volume_healthy=_in_band(volume_ratio, HEALTH_THRESHOLDS["VOLUME_RATIO"]["HEALTHY"]),
        )

    def get_time_based_adjustment(self, creation_time: Optional[float] = None) -> TimeAdjustment:
        """Growth / volatility expectations by token age (creation_time in unix seconds)"""
        if not creation_time:
            return TimeAdjustment(MaturityStage.MATURITY, expected_growth=0.01, volatility_tolerance=0.1)

        age_in_hours = (time.time() - creation_time) / 3600
        if age_in_hours <= LAUNCH_WINDOW_HOURS:
            return TimeAdjustment(MaturityStage.LAUNCH, expected_growth=0.1, volatility_tolerance=0.3)
        if age_in_hours <= STABILITY_WINDOW_HOURS:
            return TimeAdjustment(MaturityStage.STABILITY, expected_growth=0.05, volatility_tolerance=0.2)
        return TimeAdjustment(MaturityStage.MATURITY, expected_growth=0.01, volatility_tolerance=0.1)

    def generate_tier_recommendations(self, health: HealthMetrics) -> TierRecommendations:
        recommendations = TierRecommendations()

        if not health.holders_healthy:
            recommendations.warning_flags.append("Holdings are too concentrated")
            recommendations.risk_level = RiskLevel.HIGH

        if not health.liquidity_healthy:
            recommendations.warning_flags.append("Insufficient liquidity or abnormal market cap / liquidity ratio")
            recommendations.suggestions.append("Monitor liquidity changes closely")
            recommendations.risk_level = RiskLevel.HIGH

        if not health.volume_healthy:
            recommendations.warning_flags.append("Abnormal trading volume")
            recommendations.suggestions.append("Watch the trading volume trend")
            if recommendations.risk_level != RiskLevel.HIGH:
                recommendations.risk_level = RiskLevel.MEDIUM

        return recommendations

    async def evaluate_market_tier(
        self,
        usd_price: float,
        market_cap_usd: float,
        volume_24h_usd: float,
        liquidity_usd: float,
        holding_info: TokenHoldingInfo,
        creation_time: Optional[float] = None,
        raydium_pool: Optional[str] = None,
    ) -> MarketTierAnalysis:
        metrics = await self.convert_to_sol_metrics(usd_price, market_cap_usd, volume_24h_usd, liquidity_usd)
        holding_data = self.clean_holding_data(holding_info)
        health = self.evaluate_health_metrics(metrics, holding_data)
        adjustment = self.get_time_based_adjustment(creation_time)

        if raydium_pool is None:
            token_stage = MaturityStage.LAUNCH
        elif adjustment.phase == MaturityStage.LAUNCH:
            token_stage = MaturityStage.STABILITY
        else:
            token_stage = MaturityStage.MATURITY

        return MarketTierAnalysis(
            tier=classify_market_cap(metrics.market_cap_in_sol),
            sol_metrics=metrics,
            health_metrics=health,
            time_adjustment=adjustment,
            token_stage=token_stage,
            recommendations=self.generate_tier_recommendations(health),
        )
