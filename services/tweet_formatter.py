"""
Tweet formatting

Splits long analysis text into tweet-sized chunks and lays out the
six-part security report thread.
"""

import re
import textwrap
from datetime import datetime
from typing import List, Optional

from models.llm_models import LLMRiskAnalysis
from models.token_models import CleanedHoldingData, RiskAssessment, RiskLevel, TokenCreator, TokenInfo

MAX_TWEET_LENGTH = 280

SECURITY_SCORES = {
    RiskLevel.HIGH: 25,
    RiskLevel.MEDIUM: 50,
    RiskLevel.LOW: 75,
}

_PARAGRAPH_RE = re.compile(r"\n\s*\n")
_SENTENCE_RE = re.compile(r"[^.!?]+[.!?]+")


def _split_sentences(paragraph: str) -> List[str]:
    """Sentences ending in . ! or ?, plus any unterminated tail"""
    sentences = _SENTENCE_RE.findall(paragraph)
    consumed = sum(len(s) for s in sentences)
    tail = paragraph[consumed:]
    if tail.strip():
        sentences.append(tail)
    return sentences or [paragraph]


def _split_paragraph(paragraph: str, max_length: int) -> List[str]:
    chunks: List[str] = []
    current = ""

    for sentence in _split_sentences(paragraph):
        if len(current + sentence) <= max_length:
            current += sentence
            continue

        if current.strip():
            chunks.append(current.strip())
        current = ""

        if len(sentence.strip()) <= max_length:
            current = sentence
        else:
            chunks.extend(textwrap.wrap(sentence.strip(), max_length, break_long_words=True))

    if current.strip():
        chunks.append(current.strip())
    return chunks


def split_tweet_content(content: str, max_length: int = MAX_TWEET_LENGTH) -> List[str]:
    """
    Pack ``content`` into chunks of at most ``max_length`` characters

    Paragraphs (blank-line separated) are packed greedily and joined by a blank
    line. A paragraph that alone exceeds the limit is packed sentence by
    sentence; a single sentence over the limit is hard-wrapped.
    """
    tweets: List[str] = []
    current = ""

    for paragraph in (p.strip() for p in _PARAGRAPH_RE.split(content or "")):
        if not paragraph:
            continue

        candidate = f"{current}\n\n{paragraph}" if current else paragraph
        if len(candidate) <= max_length:
            current = candidate
            continue

        if current:
            tweets.append(current)
            current = ""

        if len(paragraph) <= max_length:
            current = paragraph
        else:
            tweets.extend(_split_paragraph(paragraph, max_length))

    if current:
        tweets.append(current)
    return [t for t in tweets if t]


def security_score(risk_level: RiskLevel) -> int:
    return SECURITY_SCORES.get(risk_level, SECURITY_SCORES[RiskLevel.HIGH])


def _creator_history_section(creator: TokenCreator) -> str:
    if not creator.other_tokens:
        return "👨‍💻 Creator History:\nNo other tokens found for this creator"

    entries = []
    for index, token in enumerate(creator.other_tokens, 1):
        market_cap = (
            f"${token.market_cap:,.0f}" if token.market_cap
            else "unavailable until the token launches on Raydium"
        )
        created = datetime.fromtimestamp(token.timestamp).strftime("%Y-%m-%d") if token.timestamp else "unknown"
        entries.append(
            f"{index}. {token.name}\n"
            f"   address: {token.address}\n"
            f"   market cap: {market_cap}\n"
            f"   created: {created}"
        )
    return "👨‍💻 Creator History:\n" + "\n\n".join(entries)


def build_security_sections(
    token: TokenInfo,
    holding: CleanedHoldingData,
    creator: TokenCreator,
    analysis: LLMRiskAnalysis,
    risk: Optional[RiskAssessment] = None,
    requested_by: Optional[str] = None,
) -> List[str]:
    """The six report sections: intro, basic info, creator history, risks, recommendation, conclusion"""
    requester = f"\n\nRequested by @{requested_by}" if requested_by else ""
    risk_lines = list(analysis.risk_factors)
    if risk:
        risk_lines += [f"- {line}" for line in risk.detailed_analysis]

    conclusion = (
        f"🏁 Conclusion:\nRisk Level: {analysis.risk_level.value}\n"
        f"Security Score: {security_score(analysis.risk_level)}/100"
    )
    if risk:
        conclusion += f"\nHeuristic Risk Score: {risk.risk_score} ({risk.risk_level.value})"
    conclusion += "\n\n#Web3Security #PumpToken"

    return [
        f"🔍 Security Analysis for {token.name} (${token.symbol}){requester}\n#TokenSecurity #Solana",
        (
            f"📊 Basic Information:\n- Name: {token.name}\n- Symbol: {token.symbol}\n"
            f"- Supply: {token.contract.supply:,.0f}\n- Holders: {holding.total_holders}"
        ),
        _creator_history_section(creator),
        "⚠️ Risk Analysis:\n" + ("\n".join(risk_lines) or "No specific risk factors reported"),
        f"💡 Recommendation:\n{analysis.recommendation or 'No recommendation available'}",
        conclusion,
    ]


def format_security_thread(
    token: TokenInfo,
    holding: CleanedHoldingData,
    creator: TokenCreator,
    analysis: LLMRiskAnalysis,
    risk: Optional[RiskAssessment] = None,
    requested_by: Optional[str] = None,
    max_length: int = MAX_TWEET_LENGTH,
) -> List[str]:
    """Security report as a list of tweets, each section split to fit"""
    tweets: List[str] = []
    for section in build_security_sections(token, holding, creator, analysis, risk, requested_by):
        tweets.extend(split_tweet_content(section, max_length))
    return tweets
