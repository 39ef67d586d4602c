"""Token security plugin: on-demand security report and pump.fun credibility score."""

from plugins.actions.analyze_pumpfun_token import analyze_pumpfun_token_action
from plugins.actions.analyze_token_security import analyze_token_security_action
from plugins.base import Plugin

security_plugin = Plugin(
    name="security",
    description="Token security analysis for pump.fun tokens on Solana",
    actions=[analyze_token_security_action, analyze_pumpfun_token_action],
)
