"""Custom exception hierarchy for ragcore.

All library exceptions inherit from :class:`RAGCoreError`, which carries an
optional ``provider_name`` so error handlers can identify which external
service (e.g. "openai", "sqlite") caused the failure.

    RAGCoreError  (base -- catch-all for any ragcore error)
    +-- RAGError                 (embedding or document-store failure)
    |   +-- DuplicateDocumentError (same text already stored for the user)
    +-- IngestionError           (pipeline-level ingestion failure)
    +-- DocumentNotFoundError    (missing or foreign document)
    +-- ConfigurationError       (startup / missing config)
    +-- ProviderUnavailableError (external service down / unreachable)
"""


class RAGCoreError(Exception):
    """Base exception for all ragcore errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name``.  ``__str__`` prefixes the provider name in brackets
    for structured log output, e.g. ``[openai] Rate limit exceeded``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


class RAGError(RAGCoreError):
    """Raised when an embedding, summarization or document-store call fails."""

    def __init__(
        self,
        message: str = "RAG operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class DuplicateDocumentError(RAGError):
    """Raised when a user already has a document with the same content hash."""

    def __init__(
        self,
        message: str = "Document already exists",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class IngestionError(RAGCoreError):
    """Raised when document ingestion fails as a whole.

    The failing document (if it was already created) carries the same
    message in its ``processing_error`` field.
    """

    def __init__(
        self,
        message: str = "Document ingestion failed",
        provider_name: str | None = None,
        document_id: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self._document_id = document_id

    @property
    def document_id(self) -> str | None:
        return self._document_id


class DocumentNotFoundError(RAGCoreError):
    """Raised when a document does not exist or belongs to another user."""

    def __init__(
        self,
        message: str = "Document not found",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ConfigurationError(RAGCoreError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ProviderUnavailableError(RAGCoreError):
    """Raised when an external service or provider is unreachable."""

    def __init__(
        self,
        message: str = "External service is unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
