class NotFoundError(LookupError):
    """Raised when a referenced order, expense or session row does not exist."""
