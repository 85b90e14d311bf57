"""Domain errors and failure typing."""


class PipelineError(Exception):
    """Base class for fuelwatch failures."""

    error_code = "PIPELINE_ERROR"


class ConfigError(PipelineError):
    """Raised for invalid or missing configuration."""

    error_code = "CONFIG_ERROR"


class StageError(PipelineError):
    """Raised for failures scoped to one retailer within a cycle."""

    error_code = "STAGE_ERROR"


class SourceUnavailable(StageError):
    """Network failure, timeout, or non-2xx response from a retailer feed."""

    error_code = "SOURCE_UNAVAILABLE"


class InvalidFormat(StageError):
    """Upstream payload does not have the expected feed structure."""

    error_code = "INVALID_FORMAT"


class GeocodeUnavailable(PipelineError):
    """The geocoding collaborator failed or rejected the postcode."""

    error_code = "GEOCODE_UNAVAILABLE"


class StoreNotFound(PipelineError):
    """No object is stored at the requested path."""

    error_code = "STORE_NOT_FOUND"


class PersistConflict(PipelineError):
    """A conditional write lost against a concurrent writer."""

    error_code = "PERSIST_CONFLICT"


class InvalidCriteria(PipelineError):
    """Malformed caller input on the query path."""

    error_code = "INVALID_CRITERIA"
