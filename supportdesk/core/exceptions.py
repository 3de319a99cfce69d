from typing import Iterable


class SupportDeskError(Exception):
    """Base error for ticket operations."""
    pass


class StoreError(SupportDeskError):
    """A record insert or select failed."""
    pass


class StorageError(SupportDeskError):
    """An attachment upload failed."""
    pass


class AttachmentError(SupportDeskError):
    """One attachment of a submission could not be stored."""

    def __init__(self, file_name: str, detail: str):
        self.file_name = file_name
        super().__init__(f"{file_name}: {detail}")


class TicketValidationError(SupportDeskError):
    """The submitted form or its attachments are not acceptable."""

    def __init__(self, problems: Iterable[str]):
        self.problems = list(problems)
        super().__init__("; ".join(self.problems))


class SubmissionClosedError(SupportDeskError):
    """The submission already succeeded and cannot be reused."""
    pass
