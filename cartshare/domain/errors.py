# cartshare/domain/errors.py


class ShareableCartError(Exception):
    """Baza dla bledow domeny shared cart. `message` jest czytelny dla uzytkownika."""

    message = "Shared cart operation failed."

    def __init__(self, message: str | None = None):
        self.message = message or self.message
        super().__init__(self.message)


class NotFound(ShareableCartError):
    message = "This share link is invalid."


class Expired(ShareableCartError):
    message = "This share link has expired."


class AlreadyFinalized(ShareableCartError):
    """Proba przejscia ze stanu terminalnego (paid / cancelled / expired)."""

    def __init__(self, status: str, message: str | None = None):
        self.status = status
        if message is None:
            message = (
                "This cart was already paid for."
                if status == "paid"
                else f"This shared cart is already {status}."
            )
        super().__init__(message)


class InvalidMetadata(ShareableCartError, ValueError):
    message = "Invalid share settings."


class NotOwner(ShareableCartError, PermissionError):
    message = "Only the owner of this shared cart can do that."


class TransientStoreError(ShareableCartError):
    message = "Storage is temporarily unavailable, please retry."
