"""Error types raised across the ingestion pipeline."""


class TallyError(Exception):
    """Base class for errors surfaced to callers of the pipeline."""


class DocumentDecodeError(TallyError, ValueError):
    """The uploaded bytes could not be read as a statement document."""


class EmptyDocumentError(TallyError, ValueError):
    """The document decoded but contained no pages."""


class StoreError(TallyError, RuntimeError):
    """A persistence or mapping store operation failed.

    The underlying driver error is chained as ``__cause__``.
    """
