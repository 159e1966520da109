"""Risk engine error taxonomy.

None of these reach the caller of RiskAssessmentEngine.analyze(); the
engine recovers from each by degrading.
"""


class RiskEngineError(Exception):
    """Base exception for risk engine errors."""
    pass


class CatalogUnavailableError(RiskEngineError):
    """Keyword catalog could not be read. Recovered by the fallback analyzer."""
    pass


class ContextualUnavailableError(RiskEngineError):
    """Contextual analyzer call failed. Recovered with the local-only score."""
    pass
