"""Error taxonomy.

Every error carries the HTTP status it maps to; the API registers a single
handler for ``BizforgeError`` and never inspects subclasses individually.
"""

from http import HTTPStatus


class BizforgeError(Exception):
    """Base class for all domain errors."""

    status_code: int = HTTPStatus.INTERNAL_SERVER_ERROR
    code: str = "internal_error"

    def __init__(self, message: str | None = None):
        self.message = message or self.__class__.__doc__ or self.code
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.code, "detail": self.message}


class ConfigurationError(BizforgeError):
    """A required setting is missing."""

    code = "configuration_error"


class Unauthorized(BizforgeError):
    """Missing or invalid caller identity."""

    status_code = HTTPStatus.UNAUTHORIZED
    code = "unauthorized"


class InvalidToken(Unauthorized):
    """The identity token could not be verified."""

    code = "invalid_token"


class Forbidden(BizforgeError):
    """The caller does not own the requested resource."""

    status_code = HTTPStatus.FORBIDDEN
    code = "forbidden"


class NotFound(BizforgeError):
    """The requested resource does not exist."""

    status_code = HTTPStatus.NOT_FOUND
    code = "not_found"


class StageConflict(BizforgeError):
    """The requested stage is not the version's current stage."""

    status_code = HTTPStatus.CONFLICT
    code = "stage_conflict"


class PreconditionFailed(BizforgeError):
    """The version is not ready for the requested operation."""

    status_code = HTTPStatus.PRECONDITION_FAILED
    code = "precondition_failed"


class SchemaViolation(BizforgeError):
    """Provider response is missing required fields."""

    status_code = HTTPStatus.BAD_GATEWAY
    code = "schema_violation"


class GenerationExhausted(BizforgeError):
    """All generation attempts for a stage failed."""

    status_code = HTTPStatus.BAD_GATEWAY
    code = "generation_exhausted"

    def __init__(self, stage: str, attempts: int, last_error: Exception | None = None):
        self.stage = stage
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Stage '{stage}' failed after {attempts} attempts: {last_error}")


class PipelineStageFailure(BizforgeError):
    """A pipeline stage failed; the version stays resumable at that stage."""

    status_code = HTTPStatus.BAD_GATEWAY
    code = "pipeline_stage_failure"

    def __init__(self, version_id: str, stage: str, cause: Exception | None = None):
        self.version_id = version_id
        self.stage = stage
        self.cause = cause
        super().__init__(
            f"Stage '{stage}' failed; version {version_id} remains resumable at '{stage}'"
        )

    def to_dict(self) -> dict:
        return {**super().to_dict(), "stage": self.stage, "resumable": True}


class BuildSubmissionFailure(BizforgeError):
    """The build provider rejected or failed the build request."""

    status_code = HTTPStatus.BAD_GATEWAY
    code = "build_submission_failure"


class BuildProviderError(BizforgeError):
    """The build provider could not be reached or returned an error."""

    status_code = HTTPStatus.BAD_GATEWAY
    code = "build_provider_error"


class ArtifactUploadError(BizforgeError):
    """Uploading artifacts to the artifact store failed."""

    status_code = HTTPStatus.BAD_GATEWAY
    code = "artifact_upload_error"


class AccountingFailure(BizforgeError):
    """Usage could not be recorded. Never surfaced to the caller."""

    code = "accounting_failure"
