"""
Error taxonomy for the paste store.
"""


class PasteStoreError(Exception):
    """Base class for every error raised by pastestore."""


class InvalidArgument(PasteStoreError):
    """Malformed create/list parameters. The caller's fault, do not retry."""


class DuplicateKey(PasteStoreError):
    """A paste with this id already exists. Regenerate the id and retry."""

    def __init__(self, paste_id: str):
        self.paste_id = paste_id
        super().__init__(f"Paste {paste_id} already exists")


class NotFound(PasteStoreError):
    """Stats or delete on an id that does not exist."""

    def __init__(self, paste_id: str):
        self.paste_id = paste_id
        super().__init__(f"Paste {paste_id} not found")


class NotAvailable(PasteStoreError):
    """
    Consume on an id that is expired, view-exhausted or missing.

    The three cases are deliberately indistinguishable.
    """

    def __init__(self, paste_id: str):
        self.paste_id = paste_id
        super().__init__("Paste not found, expired, or view limit exceeded")


class StoreError(PasteStoreError):
    """Backend or transaction failure. Nothing was applied; safe to retry."""
