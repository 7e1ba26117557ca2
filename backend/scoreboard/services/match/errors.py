class ScoreboardError(Exception):
    """Base for failures surfaced to the operator."""


class StoreUnavailable(ScoreboardError):
    """The document store failed a read or write; nothing was committed."""


class UploadFailure(ScoreboardError):
    """The blob store rejected a logo asset."""
