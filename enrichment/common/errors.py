"""
Enrichment Error Taxonomy

Every failure the pipeline distinguishes has its own class. ``retryable``
marks the kinds the Synthesis Client retries internally; everything else is
either degraded silently (cache reads) or terminal for the current subject.
"""


class EnrichmentError(Exception):
    """Base class for all enrichment failures."""
    retryable = False


class CacheUnavailable(EnrichmentError):
    """Cache store could not be read. Callers treat it as a miss."""


class UpstreamSearchFailure(EnrichmentError):
    """Search provider request failed."""


class EmptyUpstreamResult(EnrichmentError):
    """Search provider returned nothing usable (insufficient data)."""


class GenerationEmptyResponse(EnrichmentError):
    """Generation provider returned an empty completion."""
    retryable = True


class ProviderError(EnrichmentError):
    """Generation provider call failed or is unavailable."""
    retryable = True


class JsonExtractionFailure(EnrichmentError):
    """No balanced JSON structure found, or the extracted text is not JSON."""
    retryable = True


class SchemaValidationFailure(EnrichmentError):
    """Extracted JSON does not match the caller's schema."""
    retryable = True

    def __init__(self, message: str, details=None):
        super().__init__(message)
        self.details = details or []


class PersistenceFailure(EnrichmentError):
    """Write to the persistence collaborator failed."""
