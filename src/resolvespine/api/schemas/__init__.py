from resolvespine.api.schemas.common import HealthResponse, PackageSummary, ProblemDetail

__all__ = ["HealthResponse", "PackageSummary", "ProblemDetail"]
