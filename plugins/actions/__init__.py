"""Chat actions of the security plugin."""

from .analyze_token_security import analyze_token_security_action, TokenSecurityPipeline
from .analyze_pumpfun_token import analyze_pumpfun_token_action, PumpfunTokenAnalyzer

__all__ = [
    'analyze_token_security_action',
    'TokenSecurityPipeline',
    'analyze_pumpfun_token_action',
    'PumpfunTokenAnalyzer',
]
